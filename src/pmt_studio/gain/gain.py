"""
Single photoelectron analysis of PMT waveforms. For every waveform: estimate the noise, find the pulses,
then accumulate their amplitudes, integrals, and average shape per channel.
"""
import logging
from enum import Enum

import numpy as np

from pmt_studio.dsp.current_to_charge import integrate_variants
from pmt_studio.dsp.find_baseline import baseline_correct, estimate_noise
from pmt_studio.dsp.pulse_finding import find_pulses
from pmt_studio.dsp.pulse_selection import isolation_mask, window_in_bounds
from pmt_studio.errors import ConfigurationError, PulseFindingSaturation
from pmt_studio.gain.accumulator import GainAccumulator, JobSummary
from pmt_studio.raw.read_raw import Waveform
from pmt_studio.util.channel_map import ChannelIndex, ChannelMap
from pmt_studio.util.parse_json_config import GainConfig

logger = logging.getLogger(__name__)

DAPHNE = "daphne"


class WaveformStatus(Enum):
    SUCCESS = "success"
    NO_PULSES = "no_pulses"
    SATURATED = "saturated"
    SKIPPED = "skipped"


class GainAnalysisEngine:
    """
    Runs the single photoelectron analysis over waveforms and writes the results into a :class:`.GainAccumulator`.

    Parameters
    ----------
    config
        The analysis parameters
    channel_map
        Detector and electronics type of each channel
    channel_index
        The channels to analyze; its dense index is the accumulator index
    accumulator
        Where the amplitudes, integrals, and shapes go. Must have one entry per channel in `channel_index`

    Notes
    -----
    The SPE count of a channel is incremented in only one place, depending on which analyses are on:
    by the average shape if `do_avgspe`, otherwise by the amplitudes if `do_amp`, otherwise by the integrals.
    Each of these applies its own cuts, so the count depends on the configuration.
    """

    def __init__(
        self,
        config: GainConfig,
        channel_map: ChannelMap,
        channel_index: ChannelIndex,
        accumulator: GainAccumulator,
    ):
        config.validate()
        if len(accumulator) != len(channel_index):
            raise ConfigurationError(
                f"Accumulator has {len(accumulator)} channels but {len(channel_index)} were selected"
            )
        self.config = config
        self.channel_map = channel_map
        self.channel_index = channel_index
        self.accumulator = accumulator

    @classmethod
    def from_config(cls, config: GainConfig, channel_map: ChannelMap) -> "GainAnalysisEngine":
        """
        Build the channel index and a fresh accumulator from the config
        """
        channel_index = ChannelIndex.from_channel_map(
            channel_map, config.use_all_pmts, config.selected_pmts
        )
        accumulator = GainAccumulator(
            channel_index.channels,
            config.lowbin,
            config.hibin,
            config.amp_bins,
            config.integ_bins,
        )
        return cls(config, channel_map, channel_index, accumulator)

    @property
    def summary(self) -> JobSummary:
        return self.accumulator.summary

    def sampling_frequency(self, channel: int) -> float:
        """
        In MHz, set by the readout electronics of the channel
        """
        if channel in self.channel_map and self.channel_map.electronics_type(channel) == DAPHNE:
            return self.config.daphne_frequency
        return self.config.optical_frequency

    def _skip(self, waveform: Waveform, reason: str) -> WaveformStatus:
        logger.debug("Skipping channel %d in event %d: %s", waveform.channel, waveform.event, reason)
        self.summary.n_skipped += 1
        return WaveformStatus.SKIPPED

    def process_waveform(self, waveform: Waveform) -> WaveformStatus:
        """
        Analyze one waveform and accumulate its pulses.

        Returns the :class:`WaveformStatus` of the analysis. Only configuration errors are raised.
        """
        cfg = self.config
        idx = self.channel_index.index_of(waveform.channel)
        if idx == -1:
            return self._skip(waveform, "channel not selected")
        if waveform.channel not in self.channel_map:
            return self._skip(waveform, "channel not in the channel map")
        if self.channel_map.pd_type(waveform.channel) not in cfg.opdets_to_plot:
            return self._skip(waveform, "detector type not analyzed")
        if len(waveform) == 0:
            return self._skip(waveform, "empty waveform")

        samples = np.asarray(waveform.samples, dtype=np.float64)
        n_samples = len(samples)

        noise = estimate_noise(samples, cfg.nbmin_factor, cfg.nbmax_factor, cfg.n2bmin_factor)
        wvfm = baseline_correct(samples, noise)
        thresh = noise.std * cfg.nstdev

        try:
            pulses = find_pulses(wvfm, thresh, thresh, cfg.spe_region_start)
        except PulseFindingSaturation as e:
            logger.warning(
                "Analysis failure on channel %d in event %d: threshold setting unsuccessful (%s)",
                waveform.channel,
                waveform.event,
                e,
            )
            self.summary.n_failed += 1
            self.summary.n_saturated += 1
            return WaveformStatus.SATURATED

        if len(pulses) == 0:
            logger.info(
                "Analysis failure on channel %d in event %d: no SPEs found",
                waveform.channel,
                waveform.event,
            )
            self.summary.n_failed += 1
            return WaveformStatus.NO_PULSES

        in_bounds = [
            window_in_bounds(p.peak_index, n_samples, cfg.lowbin, cfg.hibin) for p in pulses
        ]

        # average SPE shape
        if cfg.do_avgspe:
            sample_period = 1 / self.sampling_frequency(waveform.channel)
            isolated = isolation_mask(pulses, sample_period, cfg.isolation_window, cfg.cut)
            for pulse, ok, selected in zip(pulses, in_bounds, isolated):
                if not (ok and selected):
                    continue
                peak = pulse.peak_index
                self.accumulator.add_shape(idx, wvfm[peak - cfg.lowbin : peak + cfg.hibin + 1])
                self.accumulator.count_spe(idx)

        # amplitudes
        if cfg.do_amp:
            for pulse, ok in zip(pulses, in_bounds):
                if not ok:
                    continue
                self.accumulator.fill_amplitude(idx, wvfm[pulse.peak_index])
                if not cfg.do_avgspe:
                    self.accumulator.count_spe(idx)

        # integrals
        if cfg.do_integ:
            manual_bounds = (cfg.manual_bound_lo, cfg.manual_bound_hi)
            for pulse, ok in zip(pulses, in_bounds):
                if not ok:
                    continue
                integrals = integrate_variants(wvfm, pulse.peak_index, thresh, manual_bounds)
                for name, integral in integrals.items():
                    if integral is not None:
                        self.accumulator.fill_integral(idx, name, integral.value)
                if not cfg.do_avgspe and not cfg.do_amp:
                    self.accumulator.count_spe(idx)

        logger.debug(
            "Analysis successful on channel %d in event %d: %d SPEs found",
            waveform.channel,
            waveform.event,
            len(pulses),
        )
        self.summary.n_success += 1
        self.summary.total_spes += len(pulses)
        return WaveformStatus.SUCCESS

    def process_event(self, event_id: int, waveforms: list) -> list:
        """
        Analyze every waveform of an event, in order. Returns their statuses.
        """
        if not self.config.all_events and event_id != self.config.event_id:
            return []
        if len(waveforms) == 0:
            logger.info("No waveforms found in event %d", event_id)
            self.summary.n_skipped += 1
            return []

        logger.info("Processing event %d, %d waveforms", event_id, len(waveforms))
        return [self.process_waveform(wf) for wf in waveforms]

    def finalize(self) -> JobSummary:
        """
        Close the job: normalize the average shapes and report the success/failure tally.
        Call once, after the last waveform.
        """
        summary = self.accumulator.finalize()
        logger.info(
            "Analyses complete. SPEs analyzed from %d waveforms. Analysis failed on %d waveforms (%d saturated), %d skipped.",
            summary.n_success,
            summary.n_failed,
            summary.n_saturated,
            summary.n_skipped,
        )
        logger.info("Total SPEs found: %d", summary.total_spes)
        return summary

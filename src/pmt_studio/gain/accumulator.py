"""
Per-channel accumulation of single photoelectron amplitudes, integrals, and average pulse shapes
"""
import logging
from dataclasses import dataclass

import numpy as np
from uncertainties import ufloat

from pmt_studio.dsp.current_to_charge import INTEGRAL_VARIANTS

logger = logging.getLogger(__name__)

AMP_BINS = (50, 0, 200)  # number of bins, low edge, high edge in ADC
INTEG_BINS = (50, 0, 500)  # ADC*samples


class Histogram1D:
    """
    A fixed-binning histogram filled one value at a time, with an underflow and an overflow bin.

    Running sums of the weights and weighted values are kept alongside the bin contents so the
    mean and its error don't suffer from the binning.
    """

    def __init__(self, n_bins: int, low: float, high: float):
        if n_bins <= 0 or high <= low:
            raise ValueError(f"Invalid binning ({n_bins}, {low}, {high})")
        self.n_bins = int(n_bins)
        self.low = float(low)
        self.high = float(high)
        self.counts = np.zeros(self.n_bins + 2)  # [underflow, bins..., overflow]
        self.entries = 0
        self.sum_w = 0.0
        self.sum_wx = 0.0
        self.sum_wx2 = 0.0

    @property
    def edges(self) -> np.array:
        return np.linspace(self.low, self.high, self.n_bins + 1)

    @property
    def contents(self) -> np.array:
        """Bin contents without the underflow and overflow"""
        return self.counts[1:-1]

    @property
    def underflow(self) -> float:
        return self.counts[0]

    @property
    def overflow(self) -> float:
        return self.counts[-1]

    def find_bin(self, x: float) -> int:
        if x < self.low:
            return 0
        if x >= self.high:
            return self.n_bins + 1
        return int((x - self.low) / (self.high - self.low) * self.n_bins) + 1

    def fill(self, x: float, weight: float = 1.0) -> None:
        self.counts[self.find_bin(x)] += weight
        self.entries += 1
        self.sum_w += weight
        self.sum_wx += weight * x
        self.sum_wx2 += weight * x * x

    def mean(self):
        """
        Mean of the filled values and its standard error, as a `ufloat`
        """
        if self.sum_w == 0:
            return ufloat(np.nan, np.nan)
        mu = self.sum_wx / self.sum_w
        var = max(self.sum_wx2 / self.sum_w - mu**2, 0.0)
        return ufloat(mu, np.sqrt(var / self.sum_w))


class ChannelAccumulator:
    """
    Everything accumulated for one channel over the job
    """

    def __init__(self, channel: int, lowbin: int, hibin: int, amp_bins=AMP_BINS, integ_bins=INTEG_BINS):
        self.channel = channel
        self.lowbin = lowbin
        self.hibin = hibin
        self.n_spe = 0
        self.amplitude = Histogram1D(*amp_bins)
        self.integrals = {name: Histogram1D(*integ_bins) for name, _, _ in INTEGRAL_VARIANTS}
        self.shape_sum = np.zeros(lowbin + hibin + 1)
        self.avg_shape = None

    @property
    def shape_axis(self) -> np.array:
        """Samples from the peak for each entry of the average shape"""
        return np.arange(-self.lowbin, self.hibin + 1)


@dataclass
class JobSummary:
    n_success: int = 0
    n_failed: int = 0
    n_saturated: int = 0
    n_skipped: int = 0
    total_spes: int = 0


class GainAccumulator:
    """
    The job-level context the analysis engine writes into.

    Holds one :class:`ChannelAccumulator` per selected channel, indexed by the dense channel index,
    and the waveform success/failure tally. :meth:`finalize` must be called once after the last
    waveform has been processed; it normalizes the average shapes by the SPE counts.

    Parameters
    ----------
    channels
        The channel numbers, in dense index order
    lowbin
        Number of samples before the peak kept for the average shape
    hibin
        Number of samples after the peak kept for the average shape
    """

    def __init__(self, channels: list, lowbin: int, hibin: int, amp_bins=AMP_BINS, integ_bins=INTEG_BINS):
        self.channels = [
            ChannelAccumulator(ch, lowbin, hibin, amp_bins, integ_bins) for ch in channels
        ]
        self.summary = JobSummary()
        self.finalized = False

    def __len__(self):
        return len(self.channels)

    def __getitem__(self, idx: int) -> ChannelAccumulator:
        return self.channels[idx]

    def _check_open(self):
        if self.finalized:
            raise RuntimeError("Accumulator has already been finalized")

    def fill_amplitude(self, idx: int, amplitude: float) -> None:
        self._check_open()
        self.channels[idx].amplitude.fill(amplitude)

    def fill_integral(self, idx: int, name: str, integral: float) -> None:
        self._check_open()
        self.channels[idx].integrals[name].fill(integral)

    def add_shape(self, idx: int, window: np.array) -> None:
        self._check_open()
        self.channels[idx].shape_sum += window

    def count_spe(self, idx: int, n: int = 1) -> None:
        self._check_open()
        self.channels[idx].n_spe += n

    def finalize(self) -> JobSummary:
        """
        Normalize the average shapes. Channels that saw no SPEs keep an all-NaN shape.
        """
        self._check_open()
        logger.info("Normalising average SPEs...")
        for chan in self.channels:
            if chan.n_spe == 0:
                logger.warning("No SPEs counted on channel %d, leaving its average shape empty", chan.channel)
                chan.avg_shape = np.full_like(chan.shape_sum, np.nan)
            else:
                chan.avg_shape = chan.shape_sum / chan.n_spe
        self.finalized = True
        return self.summary

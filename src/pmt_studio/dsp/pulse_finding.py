"""
Threshold pulse finder that walks a baseline subtracted waveform and returns candidate single photoelectron pulses

The running peak of a new pulse starts at the trigger sample with a height of 0. The SBND PMTGainAna analyzer
resets it to sample 0 instead; the two differ only for pulses with no sample above 0.
"""
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from pmt_studio.errors import PulseFindingSaturation

MAX_PULSES = 200  # a waveform with this many pulses is treated as threshold setting failure
MIN_PULSE_WIDTH = 2  # pulses must be strictly wider than this, in samples


@dataclass(frozen=True)
class Pulse:
    """
    A candidate pulse found by :func:`find_pulses`

    Attributes
    ----------
    start
        Index one sample before the rising threshold crossing
    end
        Index of the sample that fell below the falling threshold
    peak_index
        Index of the tallest sample in the pulse
    peak_height
        Baseline subtracted height of the tallest sample
    """

    start: int
    end: int
    peak_index: int
    peak_height: float

    @property
    def width(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class InPulse:
    start: int
    peak_index: int
    peak_value: float


FinderState = Union[Idle, InPulse]


def _start_pulse(i: int) -> InPulse:
    # the start is moved back a sample to catch the onset of the pulse
    start = i - 1 if i - 1 > 0 else i
    return InPulse(start=start, peak_index=i, peak_value=0.0)


def _track_peak(state: InPulse, i: int, value: float) -> InPulse:
    if value > state.peak_value:
        return InPulse(start=state.start, peak_index=i, peak_value=value)
    return state


def _end_pulse(state: InPulse, i: int) -> Optional[Pulse]:
    if i - state.start > MIN_PULSE_WIDTH:
        return Pulse(
            start=state.start,
            end=i,
            peak_index=state.peak_index,
            peak_height=state.peak_value,
        )
    return None


def step(
    state: FinderState,
    i: int,
    value: float,
    rise_threshold: float,
    fall_threshold: float,
) -> tuple[FinderState, Optional[Pulse]]:
    """
    Advance the finder by one sample.

    Returns the next state and, when a pulse was closed and is wide enough, the finished :class:`Pulse`
    """
    if isinstance(state, Idle):
        if value > rise_threshold:
            return _start_pulse(i), None
        return state, None

    if value < fall_threshold:
        return Idle(), _end_pulse(state, i)
    return _track_peak(state, i, value), None


def find_pulses(
    w_in: np.array,
    rise_threshold: float,
    fall_threshold: float,
    t_start_in: int = 0,
    max_pulses: int = MAX_PULSES,
) -> list[Pulse]:
    """
    Find the pulses in a baseline subtracted, positive polarity waveform.

    Parameters
    ----------
    w_in
        The baseline subtracted waveform
    rise_threshold
        A pulse opens on the first sample strictly above this value
    fall_threshold
        An open pulse closes on the first sample strictly below this value
    t_start_in
        Index to start searching from, used to skip pre-trigger artifacts
    max_pulses
        Safety cap on the number of pulses in one waveform

    Returns
    -------
    pulses
        The found pulses, ordered in time. An empty list if nothing crossed threshold.

    Notes
    -----
    A pulse that is still open when the waveform ends is dropped.
    Raises :class:`.PulseFindingSaturation` if `max_pulses` pulses are found, so that a noisy waveform
    with a badly set threshold doesn't contribute anything.
    """
    if t_start_in < 0:
        raise ValueError("The starting index must be positive")

    pulses = []
    state = Idle()
    values = np.asarray(w_in, dtype=np.float64).tolist()
    for i in range(int(t_start_in), len(values)):
        state, pulse = step(state, i, values[i], rise_threshold, fall_threshold)
        if pulse is not None:
            pulses.append(pulse)
            if len(pulses) >= max_pulses:
                raise PulseFindingSaturation(len(pulses))

    return pulses

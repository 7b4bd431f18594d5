"""
Processors to integrate single photoelectron pulses, with several competing definitions of the integration window
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from pmt_studio.errors import OutOfBoundsWindow

ZERO_MODE_LEVEL = 10  # ADC, raw zero-mode walks stop at this level instead of 0 to stay out of the noise
LOCAL_BASELINE_OFFSET = 50  # samples either side of the peak used for the local baseline
LOCAL_BASELINE_MAX_WALK = 50  # cap on the bound search when a local baseline is subtracted


class BoundMode(Enum):
    ZERO = "zero"
    THRESHOLD = "threshold"
    MANUAL = "manual"


@dataclass(frozen=True)
class PulseIntegral:
    """
    Integral of a pulse and the inclusive sample indices it was summed over
    """

    value: float
    first: int
    last: int


# name, bound mode, local baseline subtraction
INTEGRAL_VARIANTS = [
    ("zeromode", BoundMode.ZERO, False),
    ("threshmode", BoundMode.THRESHOLD, False),
    ("manualmode", BoundMode.MANUAL, False),
    ("zeromodeB", BoundMode.ZERO, True),
    ("threshmodeB", BoundMode.THRESHOLD, True),
    ("manualmodeB", BoundMode.MANUAL, True),
]


def local_baseline(
    w_in: np.array, peak_index: int, offset: int = LOCAL_BASELINE_OFFSET
) -> float:
    """
    Average of the samples `offset` before and `offset` after the peak
    """
    if peak_index - offset < 0 or peak_index + offset >= len(w_in):
        raise OutOfBoundsWindow(
            f"Local baseline at {peak_index} +/- {offset} is outside of a {len(w_in)} sample waveform"
        )
    return (w_in[peak_index - offset] + w_in[peak_index + offset]) / 2


def walk_bound(
    w_in: np.array,
    peak_index: int,
    direction: int,
    level: float,
    baseline: float = 0.0,
    max_walk: Optional[int] = None,
) -> int:
    """
    Walk away from the peak while the baseline subtracted waveform stays above `level`.

    Parameters
    ----------
    w_in
        The baseline corrected waveform
    peak_index
        Index to start walking from
    direction
        -1 to walk to the left of the peak, +1 to walk to the right
    level
        The walk continues while the sample is strictly above this
    baseline
        Subtracted from every sample before the comparison
    max_walk
        Stop after this many steps even if the waveform never drops below `level`

    Returns
    -------
    offset
        Number of samples from the peak to the last sample above `level`, or -1 if the peak itself is not above it

    Notes
    -----
    The walk stops one sample past the bound, and the returned offset steps back from it.
    It also stops at the edge of the waveform.
    """
    n_samples = len(w_in)
    steps = 0
    value = w_in[peak_index] - baseline
    while value > level:
        steps += 1
        idx = peak_index + direction * steps
        if idx < 0 or idx >= n_samples:
            break
        value = w_in[idx] - baseline
        if max_walk is not None and steps == max_walk:
            break
    return steps - 1


def integrate_window(
    w_in: np.array, peak_index: int, ilo: int, ihi: int, baseline: float = 0.0
) -> PulseIntegral:
    """
    Sum the baseline subtracted waveform over [peak_index - ilo, peak_index + ihi], inclusive
    """
    first = peak_index - ilo
    last = peak_index + ihi
    if first < 0 or last >= len(w_in):
        raise OutOfBoundsWindow(
            f"Integration window [{first}, {last}] is outside of a {len(w_in)} sample waveform"
        )
    value = float(np.sum(np.asarray(w_in[first : last + 1]) - baseline))
    return PulseIntegral(value=value, first=first, last=last)


def integrate_pulse(
    w_in: np.array,
    peak_index: int,
    mode: BoundMode,
    threshold: float,
    subtract_local_baseline: bool = False,
    manual_bounds: tuple[int, int] = (0, 0),
) -> PulseIntegral:
    """
    Find the integration bounds around a peak with the given bound mode, then integrate the pulse.

    Parameters
    ----------
    w_in
        The baseline corrected waveform
    peak_index
        Index of the pulse peak
    mode
        `ZERO` walks until the waveform drops to the zero-mode level, `THRESHOLD` walks until it drops to
        `threshold`, `MANUAL` uses `manual_bounds`
    threshold
        The noise threshold, i.e. the noise standard deviation times the configured multiplier
    subtract_local_baseline
        If true, subtract :func:`local_baseline` from every sample before comparing and summing
    manual_bounds
        Number of samples (before, after) the peak to integrate over in `MANUAL` mode

    Notes
    -----
    With a local baseline the zero-mode level is 0 instead of :data:`ZERO_MODE_LEVEL`, and the walks are capped at
    :data:`LOCAL_BASELINE_MAX_WALK` samples. Without one the walks only stop at the edge of the waveform.
    """
    baseline = 0.0
    max_walk = None
    zero_level = ZERO_MODE_LEVEL
    if subtract_local_baseline:
        baseline = local_baseline(w_in, peak_index)
        max_walk = LOCAL_BASELINE_MAX_WALK
        zero_level = 0

    if mode is BoundMode.MANUAL:
        ilo, ihi = manual_bounds
    else:
        level = zero_level if mode is BoundMode.ZERO else threshold
        ilo = walk_bound(w_in, peak_index, -1, level, baseline, max_walk)
        ihi = walk_bound(w_in, peak_index, 1, level, baseline, max_walk)
        if ilo < 0 or ihi < 0:
            # the peak is not above the level, so the window is empty
            return PulseIntegral(value=0.0, first=peak_index - ilo, last=peak_index + ihi)

    return integrate_window(w_in, peak_index, ilo, ihi, baseline)


def integrate_variants(
    w_in: np.array,
    peak_index: int,
    threshold: float,
    manual_bounds: tuple[int, int],
) -> dict:
    """
    Run :func:`integrate_pulse` for every entry of :data:`INTEGRAL_VARIANTS`.

    Returns a dictionary keyed by variant name. A variant whose window runs out of the waveform maps to None.
    """
    integrals = {}
    for name, mode, subtract in INTEGRAL_VARIANTS:
        try:
            integrals[name] = integrate_pulse(
                w_in,
                peak_index,
                mode,
                threshold,
                subtract_local_baseline=subtract,
                manual_bounds=manual_bounds,
            )
        except OutOfBoundsWindow:
            integrals[name] = None
    return integrals

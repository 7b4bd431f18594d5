"""
Cuts applied to candidate pulses before they are used for shape averaging, amplitudes, and integrals
"""
import numpy as np

from pmt_studio.dsp.pulse_finding import Pulse


def window_in_bounds(peak_index: int, n_samples: int, low: int, high: int) -> bool:
    """
    Check that the inclusive window [peak_index - low, peak_index + high] fits inside the waveform
    """
    return (peak_index - low >= 0) and (peak_index + high < n_samples)


def isolation_mask(
    pulses: list[Pulse],
    sample_period: float,
    isolation_window: float,
    isolation_enabled: bool = True,
) -> np.array:
    """
    Flag the pulses that are not preceded by another pulse too closely.

    Parameters
    ----------
    pulses
        Candidate pulses from :func:`.pulse_finding.find_pulses`
    sample_period
        Time between samples, in the same units as `isolation_window`
    isolation_window
        A pulse whose peak comes less than this long after another pulse's peak is rejected
    isolation_enabled
        If false every pulse passes

    Returns
    -------
    mask
        Boolean array, true for pulses that pass the cut

    Notes
    -----
    Only an earlier neighbor rejects a pulse; the first pulse of a close pair is kept.
    """
    if not isolation_enabled:
        return np.ones(len(pulses), dtype=bool)

    peak_times = np.array([p.peak_index for p in pulses], dtype=np.float64) * sample_period
    separations = peak_times[:, None] - peak_times[None, :]
    too_close = (separations > 0) & (separations < isolation_window)
    return ~np.any(too_close, axis=1)


def select_isolated(
    pulses: list[Pulse],
    sample_period: float,
    isolation_window: float,
    isolation_enabled: bool = True,
) -> list[Pulse]:
    """
    Return the pulses passing :func:`isolation_mask`
    """
    mask = isolation_mask(pulses, sample_period, isolation_window, isolation_enabled)
    return [p for p, keep in zip(pulses, mask) if keep]

"""
Processors for finding the baseline and noise level of input waveforms
"""
from dataclasses import dataclass

import numpy as np

from pmt_studio.errors import InvalidNoiseWindow


@dataclass(frozen=True)
class NoiseStatistics:
    """
    Baseline mean and standard deviation computed over the noise windows of one waveform

    Attributes
    ----------
    mean
        The baseline, in ADC counts
    std
        The standard deviation of the samples around the baseline
    n_samples
        The number of samples that went into the estimate
    pre_window
        The inclusive (first, last) sample indices of the pre-peak noise window
    post_window
        The half-open (first, stop) sample indices of the post-peak noise window
    """

    mean: float
    std: float
    n_samples: int
    pre_window: tuple
    post_window: tuple


def validate_noise_factors(
    nbmin_factor: float, nbmax_factor: float, n2bmin_factor: float
) -> None:
    """
    Check that the noise-window fractions can give a non-empty window for any waveform.

    Parameters
    ----------
    nbmin_factor
        Start of the pre-peak window, as a multiple of the extreme sample index
    nbmax_factor
        End of the pre-peak window, as a multiple of the extreme sample index
    n2bmin_factor
        Start of the post-peak window, as a fraction of the waveform length
    """
    if nbmin_factor < 0 or nbmax_factor < 0:
        raise InvalidNoiseWindow("Pre-peak noise window factors must be positive")
    if nbmin_factor > nbmax_factor:
        raise InvalidNoiseWindow(
            f"Pre-peak noise window is inverted: nbmin_factor={nbmin_factor} > nbmax_factor={nbmax_factor}"
        )
    if nbmax_factor > 1:
        # keeps the pre-peak window at or before the extreme sample of every waveform
        raise InvalidNoiseWindow(
            f"Pre-peak noise window must end before the peak, got nbmax_factor={nbmax_factor}"
        )
    if not 0 <= n2bmin_factor < 1:
        raise InvalidNoiseWindow(
            f"Post-peak noise window must start inside the waveform, got n2bmin_factor={n2bmin_factor}"
        )


def find_extreme_sample(wf_in: np.array) -> int:
    """
    Return the index of the lowest raw sample, i.e. the tallest peak of a negative polarity waveform.
    The first occurrence wins on ties.
    """
    if len(wf_in) == 0:
        raise InvalidNoiseWindow("Cannot find the extreme sample of an empty waveform")
    return int(np.argmin(wf_in))


def noise_windows(
    n_samples: int,
    extreme_idx: int,
    nbmin_factor: float,
    nbmax_factor: float,
    n2bmin_factor: float,
) -> tuple[tuple[int, int], tuple[int, int]]:
    """
    Compute the sample ranges used for the noise analysis.

    Parameters
    ----------
    n_samples
        Length of the waveform
    extreme_idx
        Index of the lowest raw sample, see :func:`find_extreme_sample`
    nbmin_factor
        Start of the pre-peak window, as a multiple of the extreme sample index
    nbmax_factor
        End of the pre-peak window, as a multiple of the extreme sample index
    n2bmin_factor
        Start of the post-peak window, as a fraction of the waveform length

    Returns
    -------
    pre_window
        Inclusive (first, last) indices of the pre-peak window
    post_window
        Half-open (first, stop) indices of the post-peak window, which always runs to the end of the waveform
    """
    pre_lo = int(nbmin_factor * extreme_idx)
    pre_hi = int(nbmax_factor * extreme_idx)
    post_lo = int(n2bmin_factor * n_samples)

    if pre_lo < 0 or pre_hi < pre_lo or pre_hi >= n_samples:
        raise InvalidNoiseWindow(
            f"Pre-peak noise window [{pre_lo}, {pre_hi}] is not inside a {n_samples} sample waveform"
        )
    if post_lo < 0 or post_lo >= n_samples:
        raise InvalidNoiseWindow(
            f"Post-peak noise window [{post_lo}, {n_samples}) is empty"
        )

    return (pre_lo, pre_hi), (post_lo, n_samples)


def estimate_noise(
    wf_in: np.array,
    nbmin_factor: float,
    nbmax_factor: float,
    n2bmin_factor: float,
) -> NoiseStatistics:
    """
    Calculate the baseline and its standard deviation from the two noise windows of a waveform.

    Parameters
    ----------
    wf_in
        Raw waveform in ADC counts
    nbmin_factor
        Start of the pre-peak window, as a multiple of the extreme sample index
    nbmax_factor
        End of the pre-peak window, as a multiple of the extreme sample index
    n2bmin_factor
        Start of the post-peak window, as a fraction of the waveform length

    Notes
    -----
    The two windows are concatenated rather than merged, so a sample that falls in both windows is counted twice.
    The variance is the mean squared deviation from the baseline over the same samples.
    """
    wf_in = np.asarray(wf_in, dtype=np.float64)
    extreme_idx = find_extreme_sample(wf_in)
    pre_window, post_window = noise_windows(
        len(wf_in), extreme_idx, nbmin_factor, nbmax_factor, n2bmin_factor
    )

    noise = np.concatenate(
        [
            wf_in[pre_window[0] : pre_window[1] + 1],
            wf_in[post_window[0] : post_window[1]],
        ]
    )
    m = len(noise)
    mean = np.sum(noise) / m
    std = np.sqrt(np.sum((mean - noise) ** 2) / m)

    return NoiseStatistics(
        mean=float(mean),
        std=float(std),
        n_samples=m,
        pre_window=pre_window,
        post_window=post_window,
    )


def baseline_correct(wf_in: np.array, noise: NoiseStatistics) -> np.array:
    """
    Subtract the waveform from its baseline, flipping negative-going PMT pulses to positive ones
    """
    return noise.mean - np.asarray(wf_in, dtype=np.float64)

import pytest
import numpy as np

from pmt_studio.dsp.find_baseline import (
    NoiseStatistics,
    validate_noise_factors,
    find_extreme_sample,
    noise_windows,
    estimate_noise,
    baseline_correct,
)
from pmt_studio.errors import ConfigurationError, InvalidNoiseWindow


def test_flat_waveform():
    wf = np.full(1000, 1500.0)
    noise = estimate_noise(wf, 0.1, 0.5, 0.8)

    assert noise.mean == 1500
    assert noise.std == 0
    assert np.array_equal(baseline_correct(wf, noise), np.zeros(1000))


def test_find_extreme_sample():
    wf = np.array([5, 3, 7, 1, 1, 9])
    # the first of the two minima
    assert find_extreme_sample(wf) == 3


def test_noise_windows():
    pre, post = noise_windows(100, 40, 0.25, 0.5, 0.8)
    assert pre == (10, 20)
    assert post == (80, 100)

    # fractions are truncated like integer casts
    pre, post = noise_windows(99, 7, 0.5, 1.5, 0.55)
    assert pre == (3, 10)
    assert post == (54, 99)


def test_estimate_noise():
    """
    Pre-peak window of 11 samples at 10, post-peak window of 20 samples alternating 8 and 12.
    The mean is 10, the variance is 20 * 4 / 31.
    """
    wf = np.full(100, 10.0)
    wf[40] = 0  # the tallest peak of a negative polarity waveform
    wf[80:] = np.tile([8.0, 12.0], 10)

    noise = estimate_noise(wf, 0.25, 0.5, 0.8)

    assert isinstance(noise, NoiseStatistics)
    assert noise.n_samples == 31
    assert noise.pre_window == (10, 20)
    assert noise.post_window == (80, 100)
    assert noise.mean == pytest.approx(10)
    assert noise.std == pytest.approx(np.sqrt(80 / 31))


def test_estimate_noise_overlapping_windows():
    # windows [0, 10] and [5, 20) overlap, overlapping samples count twice
    wf = np.arange(20, 0, -1, dtype=float)
    wf[10] = -100
    noise = estimate_noise(wf, 0, 1, 0.25)

    samples = np.concatenate([wf[0:11], wf[5:20]])
    assert noise.n_samples == 26
    assert noise.mean == pytest.approx(np.mean(samples))
    assert noise.std == pytest.approx(np.std(samples))


def test_baseline_correct_flips_polarity():
    wf = np.array([100.0, 100.0, 60.0, 100.0])
    noise = NoiseStatistics(mean=100.0, std=0.0, n_samples=3, pre_window=(0, 1), post_window=(3, 4))
    assert np.array_equal(baseline_correct(wf, noise), [0.0, 0.0, 40.0, 0.0])


def test_invalid_noise_windows():
    wf = np.full(100, 10.0)
    wf[50] = 0

    # pre-peak window runs past the end of the waveform
    with pytest.raises(InvalidNoiseWindow):
        estimate_noise(wf, 0.5, 3, 0.8)

    with pytest.raises(InvalidNoiseWindow):
        noise_windows(100, 50, 0.1, 0.5, 1.0)

    with pytest.raises(InvalidNoiseWindow):
        estimate_noise(np.array([]), 0.1, 0.5, 0.8)


def test_validate_noise_factors():
    validate_noise_factors(0.1, 0.5, 0.8)

    with pytest.raises(InvalidNoiseWindow) as exc_info:
        validate_noise_factors(0.5, 0.1, 0.8)
    assert isinstance(exc_info.value, ConfigurationError)

    with pytest.raises(InvalidNoiseWindow):
        validate_noise_factors(-0.1, 0.5, 0.8)

    with pytest.raises(InvalidNoiseWindow):
        validate_noise_factors(0.1, 0.5, 1)

    validate_noise_factors(0, 1, 0.8)
    with pytest.raises(InvalidNoiseWindow):
        validate_noise_factors(0, 1.5, 0.8)

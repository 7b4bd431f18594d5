"""
Processors for simulating digitized PMT waveforms containing single photoelectron pulses.
"""
from scipy import signal
import numpy as np


def spe_template(
    n_samples: int, tau_rise: float = 2.0, tau_fall: float = 8.0, amplitude: float = 1.0
) -> np.array:
    """
    Model a single photoelectron pulse as the impulse response of a two-pole shaper, sampled once per sample.

    Parameters
    ----------
    n_samples
        Length of the template
    tau_rise
        Rise time constant, in samples
    tau_fall
        Fall time constant, in samples
    amplitude
        Height of the pulse at its peak, positive
    """
    shaper = signal.TransferFunction(
        [1], [tau_rise * tau_fall, tau_rise + tau_fall, 1]
    )
    t = np.arange(n_samples, dtype=np.float64)
    _, y = signal.impulse(shaper, T=t)
    return amplitude * y / np.amax(y)


def synthetic_waveform(
    n_samples: int,
    pulse_positions: list,
    template: np.array,
    baseline: float = 1000.0,
    noise_sigma: float = 0.0,
    dither: float = 0.0,
    dither_phase: int = 0,
    rng: np.random.Generator = None,
) -> np.array:
    """
    Create a negative polarity waveform in ADC counts, with a copy of `template` starting at each pulse position.

    Parameters
    ----------
    n_samples
        Length of the waveform
    pulse_positions
        Index of the first sample of each pulse
    template
        Positive pulse shape, subtracted from the baseline. Truncated at the end of the waveform
    baseline
        Resting level of the waveform
    noise_sigma
        Standard deviation of Gaussian noise added to every sample
    dither
        Amplitude of a deterministic +/- alternating pattern added to every sample. Waveforms with an even and
        an odd `dither_phase` have opposite patterns, so their average is dither free
    dither_phase
        Sign of the first dither sample, + if even
    rng
        Random generator used for the Gaussian noise
    """
    wf = np.full(n_samples, baseline, dtype=np.float64)
    template = np.asarray(template, dtype=np.float64)
    for pos in pulse_positions:
        n = min(len(template), n_samples - pos)
        if n <= 0:
            continue
        wf[pos : pos + n] -= template[:n]

    if dither:
        wf += dither * (-1.0) ** (np.arange(n_samples) + dither_phase)

    if noise_sigma > 0:
        rng = np.random.default_rng() if rng is None else rng
        wf += rng.normal(0, noise_sigma, n_samples)

    return wf

"""
Exceptions raised by the gain analysis chain
"""


class ConfigurationError(ValueError):
    """
    Raised when the analysis parameters cannot produce a valid analysis. Fatal for the whole job.
    """


class InvalidNoiseWindow(ConfigurationError):
    """
    Raised when the noise-window fractions give an empty, inverted, or out-of-trace sample range
    """


class PulseFindingSaturation(RuntimeError):
    """
    Raised when the pulse finder hits its safety cap on the number of pulses in one waveform
    """

    def __init__(self, n_pulses: int):
        super().__init__(f"Pulse finding saturated after {n_pulses} pulses")
        self.n_pulses = n_pulses


class OutOfBoundsWindow(IndexError):
    """
    Raised when the sample window around a pulse peak runs outside of the trace
    """

"""
Submodule for accumulating single photoelectron pulses into per-channel gain observables
"""

from pmt_studio.gain.accumulator import (
    Histogram1D,
    ChannelAccumulator,
    GainAccumulator,
    JobSummary,
)
from pmt_studio.gain.gain import GainAnalysisEngine, WaveformStatus

__all__ = [
    "Histogram1D",
    "ChannelAccumulator",
    "GainAccumulator",
    "JobSummary",
    "GainAnalysisEngine",
    "WaveformStatus",
]

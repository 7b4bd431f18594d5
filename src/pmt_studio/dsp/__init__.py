"""
Submodule for tools dedicated to processing PMT waveforms
"""

from pmt_studio.dsp.find_baseline import (
    NoiseStatistics,
    find_extreme_sample,
    noise_windows,
    estimate_noise,
    baseline_correct,
)
from pmt_studio.dsp.pulse_finding import Pulse, find_pulses
from pmt_studio.dsp.pulse_selection import (
    window_in_bounds,
    isolation_mask,
    select_isolated,
)
from pmt_studio.dsp.current_to_charge import (
    BoundMode,
    PulseIntegral,
    INTEGRAL_VARIANTS,
    local_baseline,
    walk_bound,
    integrate_pulse,
    integrate_variants,
)

__all__ = [
    "NoiseStatistics",
    "find_extreme_sample",
    "noise_windows",
    "estimate_noise",
    "baseline_correct",
    "Pulse",
    "find_pulses",
    "window_in_bounds",
    "isolation_mask",
    "select_isolated",
    "BoundMode",
    "PulseIntegral",
    "INTEGRAL_VARIANTS",
    "local_baseline",
    "walk_bound",
    "integrate_pulse",
    "integrate_variants",
]

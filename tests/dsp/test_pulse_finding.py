import pytest
import numpy as np

from pmt_studio.dsp.pulse_finding import (
    MAX_PULSES,
    Idle,
    InPulse,
    Pulse,
    find_pulses,
    step,
)
from pmt_studio.errors import PulseFindingSaturation


def test_flat_waveform_has_no_pulses():
    assert find_pulses(np.zeros(1000), 0, 0) == []
    assert find_pulses(np.full(1000, 3.0), 3.0, 3.0) == []


def test_single_pulse():
    w_in = np.zeros(100)
    w_in[40:50] = [2, 5, 9, 14, 20, 14, 9, 5, 2, 1]

    pulses = find_pulses(w_in, 1.5, 1.5)

    # 9 samples above threshold, the start is moved back one sample
    assert pulses == [Pulse(start=39, end=49, peak_index=44, peak_height=20)]
    assert pulses[0].width == 10


def test_narrow_pulses_are_dropped():
    # a single sample over threshold spans exactly 2 samples and is not a pulse
    w_in = np.zeros(100)
    w_in[50] = 5
    assert find_pulses(w_in, 1, 1) == []

    # two samples over threshold are just wide enough
    w_in[51] = 6
    assert find_pulses(w_in, 1, 1) == [Pulse(start=49, end=52, peak_index=51, peak_height=6)]


def test_peak_defaults_to_the_trigger_sample():
    # nothing inside the pulse is above 0, so the running peak never moves
    w_in = np.array([-10, -10, -0.5, -0.5, -0.5, -10])
    assert find_pulses(w_in, -1, -5) == [Pulse(start=1, end=5, peak_index=2, peak_height=0.0)]


def test_opening_sample_is_not_the_peak():
    w_in = np.zeros(100)
    w_in[50:52] = [7, 6]
    assert find_pulses(w_in, 1, 1) == [Pulse(start=49, end=52, peak_index=51, peak_height=6)]


def test_start_is_clamped_at_the_first_sample():
    w_in = np.array([0, 5, 5, 5, 0, 0], dtype=float)
    assert find_pulses(w_in, 1, 1) == [Pulse(start=1, end=4, peak_index=2, peak_height=5)]


def test_unterminated_pulse_is_dropped():
    w_in = np.zeros(100)
    w_in[20:25] = [3, 6, 8, 6, 3]
    w_in[-5:] = 10

    pulses = find_pulses(w_in, 1, 1)

    assert len(pulses) == 1
    assert pulses[0].peak_index == 22


def test_rise_and_fall_thresholds():
    w_in = np.array([0, 6, 4, 3, 1, 0], dtype=float)
    assert find_pulses(w_in, 5, 2) == [Pulse(start=1, end=4, peak_index=2, peak_height=4)]

    # without the lower falling threshold the pulse closes too early to count
    assert find_pulses(w_in, 5, 5) == []


def test_start_offset():
    w_in = np.zeros(100)
    w_in[10:14] = [3, 6, 6, 3]
    w_in[60:64] = [3, 6, 6, 3]

    assert len(find_pulses(w_in, 1, 1)) == 2
    pulses = find_pulses(w_in, 1, 1, t_start_in=30)
    assert [p.peak_index for p in pulses] == [61]

    assert find_pulses(w_in, 1, 1, t_start_in=500) == []

    with pytest.raises(ValueError):
        find_pulses(w_in, 1, 1, t_start_in=-1)


def test_saturation():
    # every block of 5 samples holds one 3 sample wide pulse
    w_in = np.tile([0, 0, 5, 5, 0], MAX_PULSES + 1).astype(float)
    with pytest.raises(PulseFindingSaturation) as exc_info:
        find_pulses(w_in, 1, 1)
    assert exc_info.value.n_pulses == MAX_PULSES

    w_in = np.tile([0, 0, 5, 5, 0], MAX_PULSES - 1).astype(float)
    assert len(find_pulses(w_in, 1, 1)) == MAX_PULSES - 1

    w_in = np.tile([0, 0, 5, 5, 0], 10).astype(float)
    with pytest.raises(PulseFindingSaturation):
        find_pulses(w_in, 1, 1, max_pulses=5)


def test_step():
    state, pulse = step(Idle(), 10, 0.5, 1, 1)
    assert state == Idle() and pulse is None

    state, pulse = step(Idle(), 10, 3, 1, 1)
    assert state == InPulse(start=9, peak_index=10, peak_value=0.0)
    assert pulse is None

    state, pulse = step(state, 11, 4, 1, 1)
    assert state == InPulse(start=9, peak_index=11, peak_value=4)

    state, pulse = step(state, 12, 2, 1, 1)
    assert state == InPulse(start=9, peak_index=11, peak_value=4)

    state, pulse = step(state, 13, 0, 1, 1)
    assert state == Idle()
    assert pulse == Pulse(start=9, end=13, peak_index=11, peak_height=4)

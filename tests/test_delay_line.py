"""Test the static, modulated and ping-pong delay lines.

Run: uv run pytest tests/test_delay_line.py

Impulses make the timing visible: a delay of D samples moves the 1.0 from
index 0 to index D.
"""

import numpy as np
import os
import pytest
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.delay_line import (
    InterpolatedDelayLine, ModulatedDelayLine, PingPongDelay, cubic_interpolate,
)

SR = 44100


def make_impulse(n=64):
    signal = np.zeros(n)
    signal[0] = 1.0
    return signal


def run(node, signal):
    return np.array([node.process(x) for x in signal])


# ---------------------------------------------------------------------------
# Test 1: cubic interpolation endpoints and precondition
# ---------------------------------------------------------------------------
def test_cubic_endpoints_are_exact():
    rng = np.random.default_rng(7)
    for _ in range(100):
        ym1, y0, y1, y2 = rng.normal(size=4) * 1000.0
        assert cubic_interpolate(ym1, y0, y1, y2, 0.0) == y0
        assert cubic_interpolate(ym1, y0, y1, y2, 1.0) == y1


def test_cubic_reproduces_a_line():
    for dt in [0.1, 0.25, 0.5, 0.9]:
        assert cubic_interpolate(-1.0, 0.0, 1.0, 2.0, dt) == pytest.approx(dt)


@pytest.mark.parametrize("dt", [-0.01, 1.01, 2.0])
def test_cubic_rejects_dt_outside_unit_interval(dt):
    with pytest.raises(ValueError):
        cubic_interpolate(0.0, 0.0, 0.0, 0.0, dt)


# ---------------------------------------------------------------------------
# Test 2: static delay line
# ---------------------------------------------------------------------------
def test_zero_delay_is_identity():
    rng = np.random.default_rng(1)
    signal = rng.normal(size=500) * 10000.0
    dl = InterpolatedDelayLine(64, 0.0, gain=1.0, feedback=0.7, wet=0.3)
    assert dl.integer_lag == 0 and dl.fractional_offset == 0.0
    out = run(dl, signal)
    assert np.array_equal(out, signal)


def test_single_echo():
    dl = InterpolatedDelayLine(100, 10, wet=1.0)
    out = run(dl, make_impulse())
    expected = np.zeros(64)
    expected[10] = 1.0
    assert np.array_equal(out, expected)


def test_wet_dry_mix():
    dl = InterpolatedDelayLine(100, 10, wet=0.25)
    out = run(dl, make_impulse())
    assert out[0] == pytest.approx(0.75)
    assert out[10] == pytest.approx(0.25)


def test_feedback_repeats_decay():
    dl = InterpolatedDelayLine(100, 10, gain=1.0, feedback=0.5, wet=1.0)
    out = run(dl, make_impulse(45))
    assert out[10] == pytest.approx(1.0)
    assert out[20] == pytest.approx(0.5)
    assert out[30] == pytest.approx(0.25)
    assert out[40] == pytest.approx(0.125)
    assert np.count_nonzero(out) == 4


def test_pushed_value_is_the_feedback_input():
    dl = InterpolatedDelayLine(100, 10, gain=0.5, feedback=0.0, wet=1.0)
    out = run(dl, make_impulse())
    # gain scales what enters the line, not the dry path
    assert out[10] == pytest.approx(0.5)


def test_fractional_delay_splits_between_neighbours():
    dl = InterpolatedDelayLine(100, 10.5, wet=1.0)
    assert dl.integer_lag == 11
    assert dl.fractional_offset == pytest.approx(0.5)
    out = run(dl, make_impulse())
    assert out[10] == pytest.approx(out[11])
    assert out[10] == pytest.approx(0.5625)
    assert out.sum() == pytest.approx(1.0)


@pytest.mark.parametrize("delay", [0.5, 1.5])
def test_short_fractional_delay_passes_constant_input(delay):
    # Lags under 3 samples interpolate toward the incoming sample rather
    # than slots that have not been written yet.
    dl = InterpolatedDelayLine(64, delay, wet=1.0)
    out = run(dl, np.ones(32))
    assert out[10:] == pytest.approx(np.ones(22))


def test_short_fractional_delay_with_feedback_stays_bounded():
    dl = InterpolatedDelayLine(64, 1.5, gain=0.5, feedback=0.5, wet=1.0)
    out = run(dl, np.ones(400))
    # steady state of y = 0.5 * x + 0.5 * y
    assert out[-1] == pytest.approx(1.0, abs=1e-6)


def test_from_ms():
    dl = InterpolatedDelayLine.from_ms(SR, 2.0, 200.0, feedback=0.15, wet=0.5)
    assert dl.buffer.capacity == 2 * SR
    assert dl.integer_lag == 8820


def test_static_delay_validation():
    with pytest.raises(ValueError):
        InterpolatedDelayLine(100, 10, wet=1.5)
    with pytest.raises(ValueError):
        InterpolatedDelayLine(100, 10, wet=-0.1)
    with pytest.raises(ValueError):
        InterpolatedDelayLine(10, 8)
    with pytest.raises(ValueError):
        InterpolatedDelayLine.from_ms(SR, 0.1, 200.0)


# ---------------------------------------------------------------------------
# Test 3: modulated delay line
# ---------------------------------------------------------------------------
def test_constant_lfo_is_a_fixed_delay():
    dl = ModulatedDelayLine(64, 10.0, lambda t: 0.5, SR, wet=1.0)
    out = run(dl, make_impulse())
    # 0.5 * 10 + 1 sample of look-ahead
    assert out[6] == pytest.approx(1.0)
    assert np.count_nonzero(out) == 1


def test_fractional_lag_interpolates_linearly():
    dl = ModulatedDelayLine(64, 10.0, lambda t: 0.55, SR, wet=1.0)
    out = run(dl, make_impulse())
    assert out[6] == pytest.approx(0.5)
    assert out[7] == pytest.approx(0.5)


def test_lookahead_variants_differ_by_one_sample():
    # Two historical rounding schemes exist; both are kept selectable.
    with_lookahead = run(ModulatedDelayLine(64, 10.0, lambda t: 0.55, SR, wet=1.0,
                                            lookahead=True), make_impulse())
    without = run(ModulatedDelayLine(64, 10.0, lambda t: 0.55, SR, wet=1.0,
                                     lookahead=False), make_impulse())
    assert not np.allclose(with_lookahead, without)
    assert np.allclose(with_lookahead[1:], without[:-1])


def test_zero_modulation_bypasses_interpolation():
    rng = np.random.default_rng(3)
    signal = rng.normal(size=200)
    dl = ModulatedDelayLine(64, 10.0, lambda t: 0.0, SR, feedback=0.4, wet=0.6)
    out = run(dl, signal)
    assert np.allclose(out, signal)


def test_lfo_sees_elapsed_time():
    seen = []

    def lfo(t):
        seen.append(t)
        return 0.0
    dl = ModulatedDelayLine(64, 10.0, lfo, 100.0)
    run(dl, np.zeros(3))
    assert seen == pytest.approx([0.01, 0.02, 0.03])
    dl.reset()
    dl.process(0.0)
    assert seen[-1] == pytest.approx(0.01)


def test_modulated_validation():
    with pytest.raises(ValueError):
        ModulatedDelayLine(10, 8.0, lambda t: 1.0, SR)
    with pytest.raises(ValueError):
        ModulatedDelayLine(64, 8.0, lambda t: 1.0, SR, wet=2.0)
    with pytest.raises(ValueError):
        ModulatedDelayLine.from_ms(SR, 0.001, 7.0, lambda t: 1.0)


# ---------------------------------------------------------------------------
# Test 4: ping-pong cross-wiring
# ---------------------------------------------------------------------------
def test_ping_pong_bounces_between_channels():
    pp = PingPongDelay(100, 10, gain=1.0, feedback=0.5, wet=1.0)
    frames = [(0.0, 1.0)] + [(0.0, 0.0)] * 35
    out = np.array([pp.process(f) for f in frames])
    left, right = out[:, 0], out[:, 1]
    # right input comes out on the left first, then bounces back
    assert left[10] == pytest.approx(1.0)
    assert right[10] == 0.0
    assert right[20] == pytest.approx(0.5)
    assert left[20] == 0.0
    assert left[30] == pytest.approx(0.25)
    assert np.count_nonzero(left) == 2
    assert np.count_nonzero(right) == 1


def test_ping_pong_zero_delay_swaps_channels():
    pp = PingPongDelay(16, 0, wet=1.0)
    assert pp.process((1.0, 2.0)) == (2.0, 1.0)


def test_ping_pong_channels_own_their_buffers():
    pp = PingPongDelay(100, 10)
    assert pp.left.buffer is not pp.right.buffer


def test_ping_pong_short_fractional_delay_settles_on_swapped_input():
    pp = PingPongDelay(64, 0.5, wet=1.0)
    out = [pp.process((1.0, 2.0)) for _ in range(16)]
    assert out[-1] == pytest.approx((2.0, 1.0))

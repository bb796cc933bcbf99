"""Test waveform generators, Karplus-Strong and chain plumbing.

Run: uv run pytest tests/test_signals.py
"""

import itertools
import math
import numpy as np
import os
import pytest
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from engine.chain import Dual, chain, multiplex
from engine.effects import echo, vibrato
from engine.pluck import KarplusStrong, pluck, pluck_noise
from shared.signals import (
    adsr, clipper, generate, lfo, modulate, saw, sinusoid, square, sum_waves,
    triangle, white_noise,
)


# ---------------------------------------------------------------------------
# Test 1: sampling
# ---------------------------------------------------------------------------
def test_generate_count_includes_endpoint():
    times = list(generate(10, 1.0, lambda t: t))
    assert len(times) == 11
    assert times[0] == 0.0
    assert times[-1] == pytest.approx(1.0)
    assert len(list(generate(44100, 2.0, lambda t: 0.0))) == 88201


def test_generate_is_lazy_and_unbounded():
    calls = []
    gen = generate(100, None, lambda t: calls.append(t) or t)
    assert calls == []
    assert list(itertools.islice(gen, 5)) == pytest.approx([0.0, 0.01, 0.02, 0.03, 0.04])


# ---------------------------------------------------------------------------
# Test 2: waveforms
# ---------------------------------------------------------------------------
def test_sinusoid_is_cosine_based():
    w = sinusoid(2.0, 1.0)
    assert w(0.0) == 2.0
    assert w(0.25) == pytest.approx(0.0, abs=1e-12)
    assert sinusoid(1.0, 1.0, math.pi)(0.0) == pytest.approx(-1.0)


def test_white_noise_is_seeded():
    a = white_noise(3.0, np.random.default_rng(5))
    b = white_noise(3.0, np.random.default_rng(5))
    assert [a(0.0) for _ in range(10)] == [b(0.0) for _ in range(10)]
    w = white_noise(3.0, np.random.default_rng(6))
    values = np.array([w(0.0) for _ in range(5000)])
    assert values.min() >= -3.0 and values.max() < 3.0
    assert abs(values.mean()) < 0.2


def test_periodic_shapes():
    sq = square(1.0, 1.0)
    assert sq(0.25) == 1.0 and sq(0.75) == -1.0
    sw = saw(1.0, 1.0)
    assert sw(0.0) == -1.0 and sw(0.5) == pytest.approx(0.0)
    tri = triangle(1.0, 1.0)
    assert tri(0.0) == 0.0
    assert tri(0.125) == pytest.approx(0.5)
    assert tri(0.25) == pytest.approx(1.0)
    assert tri(0.75) == pytest.approx(-1.0)


def test_lfo_range():
    osc = lfo(3.0, 0.0, 0.4)
    values = [osc(t / 1000.0) for t in range(1000)]
    assert min(values) >= 0.6 - 1e-12 and max(values) <= 1.0 + 1e-12
    assert lfo(3.0, 0.0, 0.0)(0.123) == 1.0
    assert lfo(1.0, math.pi, 1.0)(0.0) == pytest.approx(0.0, abs=1e-12)


def test_adsr_segments():
    env = adsr(0.1, 1.0, 0.1, 0.5, 0.1, 0.1)
    assert env(0.05) == pytest.approx(0.5)
    assert env(0.15) == pytest.approx(0.75)
    assert env(0.25) == pytest.approx(0.5)
    assert env(0.35) == pytest.approx(0.25)
    assert env(0.5) == 0.0


def test_clipper_modulate_sum():
    clip = clipper(-2.0)
    assert [clip(s) for s in (-5.0, 1.0, 5.0)] == [-2.0, 1.0, 2.0]
    assert modulate(lambda t: 3.0, lambda t: t)(2.0) == 6.0
    assert sum_waves([lambda t: 1.0, lambda t: t])(2.0) == 3.0


# ---------------------------------------------------------------------------
# Test 3: Karplus-Strong
# ---------------------------------------------------------------------------
def test_pluck_starts_from_two_level_table():
    ks = pluck(100.0, 8000.0, 200.0, np.random.default_rng(1))
    first = [ks(0.0) for _ in range(40)]
    assert set(first) <= {100.0, -100.0}


def test_pluck_decays():
    out = np.array(list(generate(8000, 0.5, pluck(100.0, 8000.0, 200.0,
                                                  np.random.default_rng(2)))))
    assert np.abs(out[-40:]).mean() < np.abs(out[:40]).mean()
    assert np.abs(out).max() <= 100.0


def test_pluck_is_reproducible():
    a = list(generate(8000, 0.1, pluck_noise(1.0, 8000.0, 200.0, np.random.default_rng(3))))
    b = list(generate(8000, 0.1, pluck_noise(1.0, 8000.0, 200.0, np.random.default_rng(3))))
    assert a == b


def test_drum_blend_stays_bounded():
    ks = KarplusStrong(8000.0, 100.0, np.random.default_rng(4), blend=0.5)
    out = np.array([ks() for _ in range(2000)])
    assert np.abs(out).max() <= 1.0


def test_pitch_too_high_raises():
    with pytest.raises(ValueError):
        KarplusStrong(8000.0, 6000.0, np.random.default_rng(0))


# ---------------------------------------------------------------------------
# Test 4: chains
# ---------------------------------------------------------------------------
def test_chain_order():
    f = chain(lambda x: x + 1, lambda x: x * 10)
    assert f(1) == 20
    with pytest.raises(ValueError):
        chain()


def test_chain_through_effects():
    voice = chain(sinusoid(1000.0, 440.0), echo(8000, 1.0, 100.0, wet=1.0))
    out = list(generate(8000, 0.2, voice))
    assert not any(out[:800])
    assert out[800] == pytest.approx(1000.0)


def test_multiplex():
    gen = multiplex(lambda t: t, lambda t: -t)
    assert gen(2.0) == (2.0, -2.0)


def test_dual_runs_independent_nodes():
    left = vibrato(8000, 7.0, 2.0)
    right = vibrato(8000, 7.0, 2.0)
    stereo = Dual(left, right)
    frames = [stereo((1.0, 0.0)) for _ in range(10)]
    assert all(r == 0.0 for _, r in frames)
    assert left.buffer is not right.buffer
    with pytest.raises(ValueError):
        Dual(left, left)

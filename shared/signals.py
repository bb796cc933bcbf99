"""Waveform generators and modulators: functions of time t (seconds).

These are the stateless sources that feed delay lines and filters.
Anything random takes an explicit numpy Generator so chains stay
reproducible under a seed.
"""

import itertools
import math


def generate(sf: float, tau, wave):
    """Lazily sample `wave` at t = 0, 1/sf, 2/sf, ... up to tau inclusive.

    tau=None never stops; truncate with itertools.islice or by pairing
    with a finite channel in the encoder.
    """
    if tau is None:
        indices = itertools.count()
    else:
        indices = range(int(math.floor(tau * sf + 1e-9)) + 1)
    for i in indices:
        yield wave(i / sf)


def sinusoid(a: float, f: float, ph: float = 0.0):
    w = 2.0 * math.pi * f
    return lambda t: a * math.cos(w * t + ph)


def white_noise(a: float, rng):
    """Uniform noise in [-a, a). `rng` is a numpy.random.Generator."""
    return lambda t: 2.0 * a * (rng.random() - 0.5)


def square(a: float, f: float):
    half = 0.5 / f
    return lambda t: a if t % (2.0 * half) <= half else -a


def saw(a: float, f: float):
    period = 1.0 / f
    return lambda t: -a + 2.0 * a * f * (t % period)


def triangle(a: float, f: float):
    slope = 4.0 * a * f

    def wave(t):
        cycle = int(4.0 * f * t)
        tau = t - cycle / 4.0 / f
        quarter = cycle % 4
        if quarter == 0:
            return tau * slope
        if quarter == 1:
            return a - tau * slope
        if quarter == 2:
            return -tau * slope
        return -a + tau * slope
    return wave


def lfo(f: float, phase: float = 0.0, depth: float = 1.0):
    """Low-frequency oscillator in [1 - depth, 1]. depth=0 is a constant 1."""
    if depth == 0.0:
        return lambda t: 1.0
    osc = sinusoid(1.0, f, phase)
    return lambda t: (osc(t) + 1.0) * 0.5 * depth + (1.0 - depth)


def adsr(attack_t, attack_level, decay_t, sustain_ratio, sustain_t, release_t):
    """Piecewise-linear envelope: attack, decay, sustain, release, then 0."""
    sustain_level = attack_level * sustain_ratio
    decay_start = attack_t
    sustain_start = decay_start + decay_t
    release_start = sustain_start + sustain_t
    release_end = release_start + release_t

    def env(t):
        if 0.0 <= t < decay_start:
            return t * attack_level / attack_t
        if decay_start <= t < sustain_start:
            slope = (sustain_ratio - 1.0) * attack_level / decay_t
            return attack_level + (t - decay_start) * slope
        if sustain_start <= t < release_start:
            return sustain_level
        if release_start <= t < release_end:
            return sustain_level - (t - release_start) * sustain_level / release_t
        return 0.0
    return env


def clipper(level: float):
    """Hard clip to [-|level|, |level|]."""
    lim = abs(level)
    return lambda s: max(-lim, min(lim, s))


def modulate(wave, modulator):
    return lambda t: wave(t) * modulator(t)


def sum_waves(waves):
    waves = list(waves)
    return lambda t: sum(w(t) for w in waves)

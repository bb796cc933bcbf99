"""Karplus-Strong plucked string on a RingSampleBuffer wavetable."""

from primitives.ring_buffer import RingSampleBuffer


def two_level_random(a: float, rng):
    """Wavetable init: each slot is +a or -a with equal probability."""
    return lambda i: a if rng.integers(2) else -a


def white_noise(a: float, rng):
    """Wavetable init: uniform noise in [-a, a)."""
    return lambda i: 2.0 * a * (rng.random() - 0.5)


class KarplusStrong:
    """Plucked string (blend=1.0) or snare-like drum (blend=0.5).

    The wavetable holds one period of round(fs/f) samples. Each call
    outputs the oldest slot and writes back the average of it and its
    predecessor, which lowpasses the loop and makes the tone decay.

    Called as a generator (the time argument is ignored).
    """

    def __init__(self, fs: float, f: float, rng, blend: float = 1.0, init=None):
        n = int(round(fs / f))
        if n < 2:
            raise ValueError(f"pitch {f} Hz too high for {fs} Hz sampling")
        self.rng = rng
        self.blend = blend
        self.wavetable = RingSampleBuffer(n, lag=n, init=init or white_noise(1.0, rng))

    def process(self, _t: float = 0.0) -> float:
        w = self.wavetable
        out = w.read(0)
        y = 0.5 * (out + w.read(-1))
        if self.blend != 1.0 and self.rng.random() > self.blend:
            y = -y
        w.push(y)
        return out

    __call__ = process


def pluck(a: float, fs: float, f: float, rng) -> KarplusStrong:
    """Plucked string with a two-level random wavetable of amplitude a."""
    return KarplusStrong(fs, f, rng, init=two_level_random(a, rng))


def pluck_noise(a: float, fs: float, f: float, rng) -> KarplusStrong:
    """Plucked string with a white-noise wavetable of amplitude a."""
    return KarplusStrong(fs, f, rng, init=white_noise(a, rng))

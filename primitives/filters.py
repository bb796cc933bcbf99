"""Filters: one generic direct-form evaluator, many coefficient designs.

Difference equation:
    y[n] = b0*x[n] + b1*x[n-1] + ... + bM*x[n-M]
           - (a1*y[n-1] + a2*y[n-2] + ... + aN*y[n-N])

Every design below (one-pole, resonator, biquad, allpass, comb) only
derives (ff, fb) coefficient lists and hands them to FilterEvaluator.
"""

import numpy as np
from scipy.signal import freqz

from primitives.dsp import direct_form
from primitives.ring_buffer import RingSampleBuffer


class FilterEvaluator:
    """Direct-form recursive/non-recursive filter.

    ff: feed-forward coefficients b0..bM
    fb: feedback coefficients a1..aN (the implicit a0 = 1 is not passed)

    Keeps two moving windows (past inputs, past outputs) and evaluates each
    output sample as a dot product against the reversed coefficients.
    """

    def __init__(self, ff, fb=()):
        self.ff = np.asarray(ff, dtype=np.float64)
        self.fb = np.asarray(fb, dtype=np.float64)
        if self.ff.size == 0:
            raise ValueError("filter needs at least one feed-forward coefficient")
        self._rev_ff = self.ff[::-1].copy()
        self._rev_fb = self.fb[::-1].copy()
        self._ff_window = RingSampleBuffer(self.ff.size)
        self._fb_window = RingSampleBuffer(self.fb.size) if self.fb.size else None
        self.is_fir = not np.any(self.fb)

    def process(self, s: float) -> float:
        self._ff_window.push(s)
        acc = float(np.dot(self._rev_ff, self._ff_window.window()))
        if not self.is_fir:
            acc -= float(np.dot(self._rev_fb, self._fb_window.window()))
        if self._fb_window is not None:
            self._fb_window.push(acc)
        return acc

    __call__ = process

    def reset(self):
        self._ff_window.reset()
        if self._fb_window is not None:
            self._fb_window.reset()


def impulse_response(filt, n: int) -> np.ndarray:
    """Response of a filter to a unit impulse followed by n - 1 zeros.

    `filt` is either a FilterEvaluator (stepped in place, so pass a fresh
    one) or an (ff, fb) pair, which is rendered with the batch kernel.
    """
    impulse = np.zeros(n)
    impulse[0] = 1.0
    if isinstance(filt, FilterEvaluator):
        return np.array([filt.process(x) for x in impulse])
    ff, fb = filt
    return direct_form(impulse, np.asarray(ff, dtype=np.float64),
                       np.asarray(fb, dtype=np.float64))


def frequency_response(ff, fb, fs: float, n: int = 512):
    """(freqs_hz, magnitude, phase_radians) of a coefficient set."""
    a = np.concatenate(([1.0], np.asarray(fb, dtype=np.float64)))
    freqs, h = freqz(np.asarray(ff, dtype=np.float64), a, worN=n, fs=fs)
    return freqs, np.abs(h), np.angle(h)


# ---------------------------------------------------------------------------
# First-order and resonator designs
# ---------------------------------------------------------------------------

def lowpass_one_pole(fs: float, fc: float) -> FilterEvaluator:
    """Single-pole lowpass. Unity gain at DC."""
    theta = 2.0 * np.pi * fc / fs
    b1 = -np.exp(-theta)
    a0 = 1.0 + b1
    return FilterEvaluator([a0], [b1])


def highpass_one_pole(fs: float, fc: float) -> FilterEvaluator:
    """First-order highpass (bilinear transform). Zero gain at DC."""
    theta = 2.0 * np.pi * fc / fs
    k = np.tan(theta / 2.0)
    alpha = 1.0 + k
    a1 = -(1.0 - k) / alpha
    b0 = 1.0 / alpha
    b1 = -1.0 / alpha
    return FilterEvaluator([b0, b1], [a1])


def _resonator_poles(fs, fc, q):
    theta = 2.0 * np.pi * fc / fs
    w = fc / q
    b2 = np.exp(-2.0 * np.pi * w / fs)
    b1 = -4.0 * b2 / (1.0 + b2) * np.cos(theta)
    return b1, b2


def simple_resonator(fs: float, fc: float, q: float) -> FilterEvaluator:
    """Two-pole resonator normalized to unity gain at fc."""
    b1, b2 = _resonator_poles(fs, fc, q)
    a0 = (1.0 - b2) * np.sqrt(1.0 - b1 * b1 / 4.0 / b2)
    return FilterEvaluator([a0], [b1, b2])


def smith_angell(fs: float, fc: float, q: float) -> FilterEvaluator:
    """Smith-Angell resonator: zeros at DC and Nyquist keep the skirts down."""
    b1, b2 = _resonator_poles(fs, fc, q)
    a0 = 1.0 - np.sqrt(b2)
    return FilterEvaluator([a0, 0.0, -a0], [b1, b2])


# ---------------------------------------------------------------------------
# Biquads (RBJ cookbook), normalized by a0
# ---------------------------------------------------------------------------

def _biquad(b0, b1, b2, a0, a1, a2) -> FilterEvaluator:
    return FilterEvaluator([b0 / a0, b1 / a0, b2 / a0], [a1 / a0, a2 / a0])


def biquad_lowpass(freq, q, sr) -> FilterEvaluator:
    """Lowpass. freq in Hz, q is resonance (0.707 = Butterworth)."""
    w0 = 2.0 * np.pi * freq / sr
    alpha = np.sin(w0) / (2.0 * q)
    cos_w0 = np.cos(w0)
    return _biquad((1.0 - cos_w0) / 2.0, 1.0 - cos_w0, (1.0 - cos_w0) / 2.0,
                   1.0 + alpha, -2.0 * cos_w0, 1.0 - alpha)


def biquad_highpass(freq, q, sr) -> FilterEvaluator:
    w0 = 2.0 * np.pi * freq / sr
    alpha = np.sin(w0) / (2.0 * q)
    cos_w0 = np.cos(w0)
    return _biquad((1.0 + cos_w0) / 2.0, -(1.0 + cos_w0), (1.0 + cos_w0) / 2.0,
                   1.0 + alpha, -2.0 * cos_w0, 1.0 - alpha)


def biquad_bandpass(freq, q, sr) -> FilterEvaluator:
    """Bandpass (constant 0 dB peak gain)."""
    w0 = 2.0 * np.pi * freq / sr
    alpha = np.sin(w0) / (2.0 * q)
    cos_w0 = np.cos(w0)
    return _biquad(alpha, 0.0, -alpha,
                   1.0 + alpha, -2.0 * cos_w0, 1.0 - alpha)


def biquad_low_shelf(freq, gain_db, sr) -> FilterEvaluator:
    """Low shelf, boost/cut below freq. gain_db in dB."""
    A = 10.0 ** (gain_db / 40.0)
    w0 = 2.0 * np.pi * freq / sr
    alpha = np.sin(w0) / 2.0 * np.sqrt(2.0)  # Q=0.707 (Butterworth slope)
    cos_w0 = np.cos(w0)
    k = 2.0 * np.sqrt(A) * alpha
    return _biquad(A * ((A + 1) - (A - 1) * cos_w0 + k),
                   2.0 * A * ((A - 1) - (A + 1) * cos_w0),
                   A * ((A + 1) - (A - 1) * cos_w0 - k),
                   (A + 1) + (A - 1) * cos_w0 + k,
                   -2.0 * ((A - 1) + (A + 1) * cos_w0),
                   (A + 1) + (A - 1) * cos_w0 - k)


def biquad_high_shelf(freq, gain_db, sr) -> FilterEvaluator:
    """High shelf, boost/cut above freq. gain_db in dB."""
    A = 10.0 ** (gain_db / 40.0)
    w0 = 2.0 * np.pi * freq / sr
    alpha = np.sin(w0) / 2.0 * np.sqrt(2.0)
    cos_w0 = np.cos(w0)
    k = 2.0 * np.sqrt(A) * alpha
    return _biquad(A * ((A + 1) + (A - 1) * cos_w0 + k),
                   -2.0 * A * ((A - 1) + (A + 1) * cos_w0),
                   A * ((A + 1) + (A - 1) * cos_w0 - k),
                   (A + 1) - (A - 1) * cos_w0 + k,
                   2.0 * ((A - 1) - (A + 1) * cos_w0),
                   (A + 1) - (A - 1) * cos_w0 - k)


# ---------------------------------------------------------------------------
# Delay-based designs
# ---------------------------------------------------------------------------

def allpass(delay_samples: int, gain: float = 0.5) -> FilterEvaluator:
    """Schroeder allpass: y[n] = -g*x[n] + x[n-D] + g*y[n-D].

    Passes all frequencies at equal amplitude but smears their timing.
    """
    if delay_samples < 1:
        raise ValueError(f"allpass delay must be at least 1, got {delay_samples}")
    ff = np.zeros(delay_samples + 1)
    ff[0] = -gain
    ff[-1] = 1.0
    fb = np.zeros(delay_samples)
    fb[-1] = -gain
    return FilterEvaluator(ff, fb)


def comb(delay_samples: int, feedback: float) -> FilterEvaluator:
    """Feedback comb: y[n] = x[n] + feedback*y[n-D]. Rings at fs/D Hz."""
    if delay_samples < 1:
        raise ValueError(f"comb delay must be at least 1, got {delay_samples}")
    fb = np.zeros(delay_samples)
    fb[-1] = -feedback
    return FilterEvaluator([1.0], fb)

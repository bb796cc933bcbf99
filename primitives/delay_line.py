"""Delay lines built on the ring buffer: static, LFO-modulated and ping-pong.

Every delay line follows the same per-sample recipe:
    1. Read the delayed ("wet") sample y from the buffer
    2. Push gain * x + feedback * y (the feedback path closes the loop)
    3. Output wet * y + (1 - wet) * x
"""

import math

from primitives.ring_buffer import RingSampleBuffer

# Slots reserved beyond the largest lag for interpolation neighbours.
INTERPOLATION_HEADROOM = 4

# Modulated lags closer than this to the look-ahead offset bypass interpolation.
UNITY_EPSILON = 1e-7


def cubic_interpolate(y_m1: float, y0: float, y1: float, y2: float, dt: float) -> float:
    """4-point cubic interpolation between y0 (dt=0) and y1 (dt=1).

    y_m1 and y2 are the outer neighbours that shape the curve. The
    coefficients are Catmull-Rom (c1 = (y1 - y_m1) / 2) rather than the
    c1 = y1 - y_m1 form, which lands on y2 - y_m1 at dt=1 instead of y1.
    With Catmull-Rom the curve passes through y0 and y1 exactly.
    """
    if dt < 0.0 or dt > 1.0:
        raise ValueError(f"dt must be between 0.0 and 1.0, got {dt}")
    if dt == 1.0:
        return y1
    c0 = y0
    c1 = 0.5 * (y1 - y_m1)
    c2 = y_m1 - 2.5 * y0 + 2.0 * y1 - 0.5 * y2
    c3 = 0.5 * (y2 - y_m1) + 1.5 * (y0 - y1)
    return ((c3 * dt + c2) * dt + c1) * dt + c0


def _check_wet(wet: float):
    if wet < 0.0 or wet > 1.0:
        raise ValueError(f"wet must be between 0.0 and 1.0, got {wet}")


def _check_capacity(lag: int, capacity: int):
    if lag + INTERPOLATION_HEADROOM > capacity:
        raise ValueError(f"buffer size not large enough: lag of {lag} samples "
                         f"needs capacity >= {lag + INTERPOLATION_HEADROOM}, "
                         f"got {capacity}")


class InterpolatedDelayLine:
    """Fixed (possibly fractional) delay with feedback and wet/dry mix.

    A delay of d samples is held as integer_lag = ceil(d) plus a
    fractional_offset = integer_lag - d in [0, 1). The fractional part is
    recovered by cubic interpolation toward the next newer sample.
    """

    def __init__(self, capacity: int, delay_samples: float,
                 gain: float = 1.0, feedback: float = 0.0, wet: float = 0.5):
        _check_wet(wet)
        if delay_samples < 0:
            raise ValueError(f"delay must be non-negative, got {delay_samples}")
        self.integer_lag = int(math.ceil(delay_samples))
        self.fractional_offset = self.integer_lag - delay_samples
        _check_capacity(self.integer_lag, capacity)
        self.gain = gain
        self.feedback = feedback
        self.wet = wet
        self.buffer = RingSampleBuffer(capacity, lag=self.integer_lag)

    @classmethod
    def from_ms(cls, fs: float, buffer_sec: float, delay_ms: float,
                gain: float = 1.0, feedback: float = 0.0, wet: float = 0.5):
        """Build from a sample rate, buffer length in seconds and delay in ms."""
        return cls(int(fs * buffer_sec), delay_ms / 1000.0 * fs,
                   gain=gain, feedback=feedback, wet=wet)

    @property
    def is_identity(self) -> bool:
        return self.integer_lag == 0 and self.fractional_offset == 0.0

    def tap(self, incoming: float = None) -> float:
        """The delayed sample at the current position (no state change).

        For lags under 3 samples the cubic's newer neighbours fall on slots
        not written yet. Those take `incoming`, an estimate of the value
        about to be pushed, or else hold the newest written sample.
        """
        b = self.buffer
        if self.fractional_offset == 0.0:
            return b.read(0)
        # read(k) is the sample pushed integer_lag - k pushes ago.
        newest = self.integer_lag - 1
        if incoming is None:
            incoming = b.read(newest)
        y1 = b.read(1) if newest >= 1 else incoming
        y2 = b.read(2) if newest >= 2 else incoming
        return cubic_interpolate(b.read(-1), b.read(0), y1, y2,
                                 self.fractional_offset)

    def push(self, value: float):
        self.buffer.push(value)

    def process(self, x: float) -> float:
        if self.is_identity:
            # Zero delay: the delayed sample is the input itself, so never
            # read the buffer's unwritten slots.
            self.buffer.push(self.gain * x + self.feedback * x)
            return x
        # The push needs y, so its feedback term is estimated from read(0).
        y = self.tap(self.gain * x + self.feedback * self.buffer.read(0))
        self.buffer.push(self.gain * x + self.feedback * y)
        return self.wet * y + (1.0 - self.wet) * x

    __call__ = process

    def reset(self):
        self.buffer.reset()


class ModulatedDelayLine:
    """Delay whose lag follows a low-frequency control function.

    Per sample the target lag is d = lfo(t) * max_lag + offset, where the
    offset is one sample of look-ahead when `lookahead` is set and zero
    otherwise. The buffer is read at ceil(d) and linearly interpolated one
    slot forward by the fractional complement.

    Flanger, vibrato and chorus are all this class with different LFOs.
    """

    def __init__(self, capacity: int, max_lag_samples: float, lfo, fs: float,
                 gain: float = 1.0, feedback: float = 0.0, wet: float = 0.5,
                 lookahead: bool = True):
        _check_wet(wet)
        self.offset = 1.0 if lookahead else 0.0
        _check_capacity(int(math.ceil(max_lag_samples + self.offset)), capacity)
        self.max_lag = max_lag_samples
        self.lfo = lfo
        self.fs = fs
        self.gain = gain
        self.feedback = feedback
        self.wet = wet
        self.lookahead = lookahead
        self.buffer = RingSampleBuffer(capacity)
        self.n = 0

    @classmethod
    def from_ms(cls, fs: float, buffer_sec: float, delay_ms: float, lfo,
                gain: float = 1.0, feedback: float = 0.0, wet: float = 0.5,
                lookahead: bool = True):
        if buffer_sec * 1000.0 < delay_ms:
            raise ValueError(f"buffer size not large enough: {buffer_sec}s "
                             f"buffer for {delay_ms}ms delay")
        return cls(int(fs * buffer_sec), delay_ms / 1000.0 * fs, lfo, fs,
                   gain=gain, feedback=feedback, wet=wet, lookahead=lookahead)

    def process(self, x: float) -> float:
        self.n += 1
        t = self.n / self.fs
        d = self.lfo(t) * self.max_lag + self.offset
        d_int = math.ceil(d)
        frac = d_int - d
        b = self.buffer
        b.set_lag(d_int)
        if abs(d - self.offset) < UNITY_EPSILON:
            y = x
        else:
            y = b.read(0) * (1.0 - frac) + b.read(1) * frac
        b.push(self.gain * x + self.feedback * y)
        return self.wet * y + (1.0 - self.wet) * x

    __call__ = process

    def reset(self):
        self.buffer.reset()
        self.n = 0


class PingPongDelay:
    """Stereo echo that bounces between channels.

    The left line is fed the right input (plus the right line's
    recirculation) and vice versa, so each repeat lands on the opposite
    side from the one before.
    """

    def __init__(self, capacity: int, delay_samples: float,
                 gain: float = 1.0, feedback: float = 0.0, wet: float = 0.5):
        self.left = InterpolatedDelayLine(capacity, delay_samples,
                                          gain=gain, feedback=feedback, wet=wet)
        self.right = InterpolatedDelayLine(capacity, delay_samples,
                                           gain=gain, feedback=feedback, wet=wet)
        self.gain = gain
        self.feedback = feedback
        self.wet = wet

    @classmethod
    def from_ms(cls, fs: float, buffer_sec: float, delay_ms: float,
                gain: float = 1.0, feedback: float = 0.0, wet: float = 0.5):
        return cls(int(fs * buffer_sec), delay_ms / 1000.0 * fs,
                   gain=gain, feedback=feedback, wet=wet)

    def process(self, frame):
        l, r = frame
        if self.left.is_identity:
            yl, yr = r, l
        else:
            # Each side's next push depends on the other side's output,
            # approximated by the sample at the other line's read cursor.
            fb_l = self.feedback * self.right.buffer.read(0)
            fb_r = self.feedback * self.left.buffer.read(0)
            yl = self.left.tap(self.gain * r + fb_l)
            yr = self.right.tap(self.gain * l + fb_r)
        self.left.push(self.gain * r + self.feedback * yr)
        self.right.push(self.gain * l + self.feedback * yl)
        mix = self.wet
        return (mix * yl + (1.0 - mix) * l, mix * yr + (1.0 - mix) * r)

    __call__ = process

    def reset(self):
        self.left.reset()
        self.right.reset()

"""Four-line Schroeder reverb network.

Signal flow (per stereo frame):
    1. Tap all four delay lines
    2. oL = l + b1, oR = r + b2
    3. Sum/difference cross-mix of (oL, oR) and (b3, b4)
    4. Scale each mix by its gain and push it back into its line
    5. Output (oL, oR)
"""

import logging

import numpy as np

from primitives import dsp
from primitives.delay_line import InterpolatedDelayLine

log = logging.getLogger(__name__)

N = 4  # number of delay lines


class ReverbNetwork:
    """Stateful Schroeder sum/difference reverb.

    Owns its four delay lines; nothing is shared with the outer chain.
    """

    def __init__(self, lines, gains):
        if len(lines) != N or len(gains) != N:
            raise ValueError(f"reverb needs exactly {N} delay lines and {N} gains, "
                             f"got {len(lines)} and {len(gains)}")
        self.lines = list(lines)
        self.gains = tuple(float(g) for g in gains)

    def process(self, frame):
        l, r = frame
        b1, b2, b3, b4 = self.lines
        g_a, g_b, g_c, g_d = self.gains

        out_l = l + b1.tap()
        out_r = r + b2.tap()
        t3 = b3.tap()
        t4 = b4.tap()

        sum12 = out_l + out_r
        diff12 = out_l - out_r
        sum34 = t3 + t4
        diff34 = t3 - t4

        b1.push((sum12 + sum34) * g_a)
        b2.push((diff12 + diff34) * g_b)
        b3.push((sum12 - sum34) * g_c)
        b4.push((diff12 - diff34) * g_d)
        return out_l, out_r

    __call__ = process

    def process_mono(self, s: float):
        """Mono in, stereo out: the input feeds both sides."""
        return self.process((s, s))

    def reset(self):
        for line in self.lines:
            line.reset()


def schroeder(fs: float, buffer_sec: float, delays_ms, gains) -> ReverbNetwork:
    """Build a ReverbNetwork from delay times in ms (one per line)."""
    lines = [InterpolatedDelayLine.from_ms(fs, buffer_sec, d, wet=1.0)
             for d in delays_ms]
    log.debug("schroeder network: delays=%s ms gains=%s", list(delays_ms), list(gains))
    return ReverbNetwork(lines, gains)


def render_schroeder(left: np.ndarray, right: np.ndarray, delays, gains):
    """Whole-buffer render with integer delays in samples (batch kernel).

    Returns stereo output (samples, 2).
    """
    delays = np.asarray(delays, dtype=np.int64)
    if len(delays) != N or len(gains) != N:
        raise ValueError(f"reverb needs exactly {N} delays and {N} gains")
    if np.any(delays < 1):
        raise ValueError(f"reverb delays must be at least one sample, got {list(delays)}")
    out_l, out_r = dsp.schroeder(np.asarray(left, dtype=np.float64),
                                 np.asarray(right, dtype=np.float64),
                                 delays, np.asarray(gains, dtype=np.float64))
    return np.column_stack([out_l, out_r])

"""Numba-based batch kernels: whole-buffer versions of the per-sample nodes.

Each function processes a full audio buffer and returns the output. They
start from silent state and must agree with FilterEvaluator /
ReverbNetwork sample for sample.
"""

import numpy as np
from numba import njit


@njit(cache=True)
def direct_form(audio, ff, fb):
    """Direct-form filter: y[n] = sum(ff[k]*x[n-k]) - sum(fb[k]*y[n-1-k])."""
    n = len(audio)
    m = len(ff)
    k = len(fb)
    out = np.zeros(n)
    for i in range(n):
        acc = 0.0
        for j in range(m - 1, -1, -1):
            if i - j >= 0:
                acc += ff[j] * audio[i - j]
        fb_acc = 0.0
        for j in range(k - 1, -1, -1):
            if i - 1 - j >= 0:
                fb_acc += fb[j] * out[i - 1 - j]
        out[i] = acc - fb_acc
    return out


@njit(cache=True)
def schroeder(left, right, delays, gains):
    """Four-line Schroeder sum/difference network with integer delays.

    Returns (out_left, out_right).
    """
    n = len(left)
    sizes = delays + 1
    bufs = np.zeros((4, np.max(sizes)))
    idx = np.zeros(4, dtype=np.int64)
    taps = np.zeros(4)
    feeds = np.zeros(4)
    out_l = np.zeros(n)
    out_r = np.zeros(n)
    for i in range(n):
        for j in range(4):
            taps[j] = bufs[j, (idx[j] - delays[j]) % sizes[j]]
        o_l = left[i] + taps[0]
        o_r = right[i] + taps[1]
        sum12 = o_l + o_r
        diff12 = o_l - o_r
        sum34 = taps[2] + taps[3]
        diff34 = taps[2] - taps[3]
        feeds[0] = (sum12 + sum34) * gains[0]
        feeds[1] = (diff12 + diff34) * gains[1]
        feeds[2] = (sum12 - sum34) * gains[2]
        feeds[3] = (diff12 - diff34) * gains[3]
        for j in range(4):
            bufs[j, idx[j]] = feeds[j]
            idx[j] = (idx[j] + 1) % sizes[j]
        out_l[i] = o_l
        out_r[i] = o_r
    return out_l, out_r

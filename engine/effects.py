"""Effect factories: delay-line presets with musical parameters.

Flanger, vibrato and chorus are one ModulatedDelayLine with different
LFOs: a flanger sweeps from the far end (phase pi) with feedback, vibrato
is fully wet with no feedback, and chorus starts the sweep mid-way
(phase pi/2) and blends with the dry signal.
"""

import logging
import math

from engine.params import SR, schema
from engine.reverb import schroeder
from primitives.delay_line import (
    INTERPOLATION_HEADROOM, InterpolatedDelayLine, ModulatedDelayLine, PingPongDelay,
)
from shared.signals import lfo

log = logging.getLogger(__name__)


def echo(fs, buffer_sec, delay_ms, gain=1.0, feedback=0.15, wet=0.5):
    return InterpolatedDelayLine.from_ms(fs, buffer_sec, delay_ms,
                                         gain=gain, feedback=feedback, wet=wet)


def _modulated(fs, max_delay_ms, feedback, wet, sweep_freq, phase, lookahead):
    # Twice the sweep range, plus the interpolation neighbours for very
    # short sweeps.
    buffer_sec = max_delay_ms / 1000.0 * 2.0 + INTERPOLATION_HEADROOM / fs
    return ModulatedDelayLine.from_ms(fs, buffer_sec, max_delay_ms,
                                      lfo(sweep_freq, phase, 1.0),
                                      feedback=feedback, wet=wet,
                                      lookahead=lookahead)


def flanger(fs, max_delay_ms, feedback, wet, sweep_freq, lookahead=True):
    return _modulated(fs, max_delay_ms, feedback, wet, sweep_freq, math.pi, lookahead)


def vibrato(fs, max_delay_ms, sweep_freq, lookahead=True):
    return _modulated(fs, max_delay_ms, 0.0, 1.0, sweep_freq, math.pi, lookahead)


def chorus(fs, max_delay_ms, wet, sweep_freq, lookahead=True):
    return _modulated(fs, max_delay_ms, 0.0, wet, sweep_freq, math.pi / 2.0, lookahead)


def ping_pong(fs, buffer_sec, delay_ms, gain=1.0, feedback=0.9, wet=0.5):
    return PingPongDelay.from_ms(fs, buffer_sec, delay_ms,
                                 gain=gain, feedback=feedback, wet=wet)


_FACTORIES = {
    "echo": echo,
    "flanger": flanger,
    "vibrato": vibrato,
    "chorus": chorus,
    "ping_pong": ping_pong,
    "schroeder": schroeder,
}


def build_effect(kind: str, params: dict = None, sr: float = SR):
    """Construct a processing node from a params dict (see engine/params.py).

    Missing keys take their defaults. Values are used as given; clamp
    them with the schema first if they come from an untrusted source.
    """
    full = schema(kind).default_params()
    if params:
        full.update({k: v for k, v in params.items() if k != "effect"})
    log.debug("build %s at %d Hz: %s", kind, sr, full)
    return _FACTORIES[kind](sr, **full)

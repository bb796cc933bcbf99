"""Parameter schemas and presets for the effects.

This is the shared contract between scripts, presets and build_effect().
All parameter sources produce a dict in this format. Times are in ms (or
seconds for buffer lengths); conversion to samples happens at build time.
"""

import json
import logging

from shared.params import ParamType as T, ParamDef, ParamSchema

log = logging.getLogger(__name__)

SR = 44100

# ── Schemas ───────────────────────────────────────────────────────────

_WET = ParamDef("wet", T.FLOAT, default=0.5, bypass=0.0, range=(0.0, 1.0))
_LOOKAHEAD = ParamDef("lookahead", T.BOOL, default=True,
                      label="one sample of interpolation look-ahead")

SCHEMAS = {
    "echo": ParamSchema("echo", [
        ParamDef("buffer_sec", T.FLOAT, default=2.0, range=(0.01, 10.0)),
        ParamDef("delay_ms", T.FLOAT, default=200.0, range=(0.0, 5000.0)),
        ParamDef("gain", T.FLOAT, default=1.0, range=(0.0, 2.0)),
        ParamDef("feedback", T.FLOAT, default=0.15, bypass=0.0, range=(0.0, 1.0)),
        _WET,
    ]),

    "flanger": ParamSchema("flanger", [
        ParamDef("max_delay_ms", T.FLOAT, default=7.0, range=(0.1, 20.0)),
        ParamDef("feedback", T.FLOAT, default=0.15, bypass=0.0, range=(0.0, 0.95)),
        _WET,
        ParamDef("sweep_freq", T.FLOAT, default=0.2, range=(0.01, 10.0)),
        _LOOKAHEAD,
    ]),

    "vibrato": ParamSchema("vibrato", [
        ParamDef("max_delay_ms", T.FLOAT, default=7.0, range=(0.1, 20.0)),
        ParamDef("sweep_freq", T.FLOAT, default=2.0, range=(0.01, 20.0)),
        _LOOKAHEAD,
    ]),

    "chorus": ParamSchema("chorus", [
        ParamDef("max_delay_ms", T.FLOAT, default=30.0, range=(1.0, 50.0)),
        ParamDef("wet", T.FLOAT, default=0.4, bypass=0.0, range=(0.0, 1.0)),
        ParamDef("sweep_freq", T.FLOAT, default=1.5, range=(0.01, 10.0)),
        _LOOKAHEAD,
    ]),

    "ping_pong": ParamSchema("ping_pong", [
        ParamDef("buffer_sec", T.FLOAT, default=2.0, range=(0.01, 10.0)),
        ParamDef("delay_ms", T.FLOAT, default=200.0, range=(0.0, 5000.0)),
        ParamDef("gain", T.FLOAT, default=1.0, range=(0.0, 2.0)),
        ParamDef("feedback", T.FLOAT, default=0.9, bypass=0.0, range=(0.0, 1.0)),
        _WET,
    ]),

    # Delay times in ms; mutually prime-ish values avoid stacked echoes.
    "schroeder": ParamSchema("schroeder", [
        ParamDef("buffer_sec", T.FLOAT, default=1.0, range=(0.01, 10.0)),
        ParamDef("delays_ms", T.FLOAT_ARRAY, default=[101.0, 143.0, 165.0, 177.0],
                 range=(1.0, 1000.0), array_size=4),
        ParamDef("gains", T.FLOAT_ARRAY, default=[0.4, 0.37, 0.3333, 0.3],
                 bypass=[0.0] * 4, range=(-1.0, 1.0), array_size=4),
    ]),
}


def schema(kind: str) -> ParamSchema:
    try:
        return SCHEMAS[kind]
    except KeyError:
        raise ValueError(f"unknown effect {kind!r}, expected one of {sorted(SCHEMAS)}") from None


def default_params(kind: str) -> dict:
    return schema(kind).default_params()


def bypass_params(kind: str) -> dict:
    return schema(kind).bypass_params()


def load_preset(path):
    """Load a preset file -> (effect kind, full params dict).

    Values are validated and clamped; missing keys take their defaults.
    """
    with open(path) as f:
        raw = json.load(f)
    kind = raw.get("effect")
    s = schema(kind)
    params = s.default_params()
    params.update(s.validate_and_clamp(raw))
    log.debug("loaded %s preset from %s", kind, path)
    return kind, params


def save_preset(path, kind: str, params: dict):
    s = schema(kind)
    data = {"effect": kind}
    data.update(s.validate_and_clamp(params))
    with open(path, "w") as f:
        json.dump(data, f, indent=2)

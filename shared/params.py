"""Declarative parameter schema for effects.

An effect's parameter contract is a list of ParamDef objects. ParamSchema
wraps the list and derives the dicts the rest of the code needs: defaults,
bypass settings and ranges. It also cleans raw dicts read from JSON presets.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ParamType(Enum):
    FLOAT = "float"
    BOOL = "bool"
    FLOAT_ARRAY = "float_array"


# Marks a raw value that cannot be coerced; the key is then dropped.
_REJECT = object()


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    label: str = ""
    bypass: Any = None          # if None, uses default
    range: tuple | None = None  # (min, max) for continuous params
    array_size: int = 0         # for FLOAT_ARRAY

    @property
    def is_continuous(self) -> bool:
        return self.range is not None and self.type != ParamType.BOOL

    def coerce(self, value):
        """Cast a raw value to this param's type and clamp it to range.

        Returns _REJECT when the value is unusable.
        """
        if self.type == ParamType.BOOL:
            return bool(value)
        if self.type == ParamType.FLOAT_ARRAY:
            return self._coerce_array(value)
        v = _to_float(value)
        return _REJECT if v is None else _clamp(v, self.range)

    def _coerce_array(self, value):
        if not isinstance(value, list):
            return _REJECT
        size = self.array_size or len(self.default)
        # Pad short arrays from the default, cut long ones.
        padded = (value + self.default[len(value):])[:size]
        out = []
        for v, fallback in zip(padded, self.default):
            f = _to_float(v)
            out.append(_clamp(fallback if f is None else f, self.range))
        return out


class ParamSchema:
    """Named list of ParamDefs with the derived dicts."""

    def __init__(self, name: str, params: list[ParamDef]):
        self.name = name
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: _copy(p.default) for p in self._params}

    def bypass_params(self) -> dict:
        """Settings that make the effect pass the dry signal."""
        return {p.key: _copy(p.default if p.bypass is None else p.bypass)
                for p in self._params}

    def param_ranges(self) -> dict[str, tuple]:
        return {p.key: p.range for p in self._params if p.is_continuous}

    def validate_and_clamp(self, raw: dict) -> dict:
        """Clean a raw params dict (e.g. from a JSON preset).

        Unknown keys and uncoercible values are dropped. Keys missing from
        `raw` are absent from the result; merge over default_params() to
        fill them.
        """
        result = {}
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue
            v = p.coerce(value)
            if v is not _REJECT:
                result[key] = v
        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def __iter__(self):
        return iter(self._params)

    def __len__(self):
        return len(self._params)


def _to_float(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _clamp(v, rng):
    if rng is None:
        return v
    lo, hi = rng
    return max(lo, min(hi, v))


def _copy(val):
    """Shallow copy lists so callers can't mutate the defaults."""
    if isinstance(val, list):
        return list(val)
    return val

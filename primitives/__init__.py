"""DSP building blocks: ring buffer, delay lines, direct-form filters."""

from primitives.ring_buffer import RingSampleBuffer
from primitives.delay_line import (
    InterpolatedDelayLine, ModulatedDelayLine, PingPongDelay, cubic_interpolate,
)
from primitives.filters import FilterEvaluator, impulse_response, frequency_response

__all__ = [
    "RingSampleBuffer",
    "InterpolatedDelayLine", "ModulatedDelayLine", "PingPongDelay", "cubic_interpolate",
    "FilterEvaluator", "impulse_response", "frequency_response",
]

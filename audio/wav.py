"""Streaming RIFF/WAVE PCM codec.

Encoding pulls one frame at a time from the channel sequences, so an
arbitrarily long (or infinite, when paired with a finite channel) signal
is written without ever being held in memory. The two size fields are
written as zero placeholders and patched by seeking back once the payload
length is known.

Layout (little-endian, 44-byte header):
    0  "RIFF"   4  36 + payload   8  "WAVE"   12 "fmt "   16 16
    20 format   22 channels       24 rate     28 byte rate
    32 block align                34 bits     36 "data"   40 payload
    44 interleaved signed samples
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import math
import struct
from dataclasses import dataclass
from typing import Iterable, Union

import numpy as np

log = logging.getLogger(__name__)

PCM = 1
HEADER_SIZE = 44
RIFF_SIZE_OFFSET = 4
DATA_SIZE_OFFSET = 40
MAX_BYTES_PER_SAMPLE = 8
# The RIFF size field (36 + payload) must fit in 32 bits.
MAX_DATA_SIZE = 0xFFFFFFFF - 36

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_U32 = struct.Struct("<I")

# Native struct codes for the widths that have one; others use int.to_bytes.
_STRUCT_CODES = {1: "b", 2: "h", 4: "i", 8: "q"}


class WavFormatError(ValueError):
    """The file is not a PCM container this codec can read."""


@dataclass(frozen=True)
class WavHeader:
    sample_rate: int
    num_channels: int
    bytes_per_sample: int
    data_size: int = 0
    format_code: int = PCM

    def __post_init__(self):
        if not 1 <= self.bytes_per_sample <= MAX_BYTES_PER_SAMPLE:
            raise ValueError(f"bytes per sample must be 1..{MAX_BYTES_PER_SAMPLE}, "
                             f"got {self.bytes_per_sample}")
        if self.num_channels < 1:
            raise ValueError(f"need at least one channel, got {self.num_channels}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample rate must be positive, got {self.sample_rate}")

    @property
    def block_align(self) -> int:
        return self.num_channels * self.bytes_per_sample

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align

    @property
    def bits_per_sample(self) -> int:
        return 8 * self.bytes_per_sample

    @property
    def riff_size(self) -> int:
        return 36 + self.data_size

    @property
    def num_frames(self) -> int:
        return self.data_size // self.block_align

    @property
    def is_pcm(self) -> bool:
        return self.format_code == PCM

    def pack(self) -> bytes:
        return _HEADER.pack(b"RIFF", self.riff_size, b"WAVE", b"fmt ", 16,
                            self.format_code, self.num_channels, self.sample_rate,
                            self.byte_rate, self.block_align, self.bits_per_sample,
                            b"data", self.data_size)


# ---------------------------------------------------------------------------
# Channel shapes
# ---------------------------------------------------------------------------

@dataclass
class Mono:
    samples: Iterable[float]


@dataclass
class Stereo:
    """Sequence of (left, right) frames, as produced by stereo nodes."""
    frames: Iterable[tuple]

    @classmethod
    def from_channels(cls, left: Iterable[float], right: Iterable[float]) -> Stereo:
        return cls(zip(left, right))


@dataclass
class MultiChannel:
    channels: list


ChannelShape = Union[Mono, Stereo, MultiChannel]


# ---------------------------------------------------------------------------
# Sample packing
# ---------------------------------------------------------------------------

def sample_range(bytes_per_sample: int):
    """(lowest, highest) integer representable at this width."""
    bits = 8 * bytes_per_sample
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


def _quantizer(bytes_per_sample):
    lo, hi = sample_range(bytes_per_sample)

    def quantize(sample):
        if math.isnan(sample):
            return 0
        # Clip silently: feedback loops are allowed to overshoot.
        if sample >= hi:
            return hi
        if sample <= lo:
            return lo
        return int(sample)
    return quantize


def _packer(bytes_per_sample, count):
    """Function packing `count` already-quantized ints into bytes."""
    code = _STRUCT_CODES.get(bytes_per_sample)
    if code is not None:
        return struct.Struct("<" + code * count).pack
    if count == 1:
        return lambda v: v.to_bytes(bytes_per_sample, "little", signed=True)
    return lambda *vs: b"".join(v.to_bytes(bytes_per_sample, "little", signed=True)
                                for v in vs)


def _check_room(n, max_frames):
    if n >= max_frames:
        raise ValueError(f"payload exceeds the WAV size limit of {MAX_DATA_SIZE} "
                         f"bytes after {n} frames")


def _write_mono(f, samples, bytes_per_sample, max_frames) -> int:
    q = _quantizer(bytes_per_sample)
    pack = _packer(bytes_per_sample, 1)
    n = 0
    for s in samples:
        _check_room(n, max_frames)
        f.write(pack(q(s)))
        n += 1
    return n * bytes_per_sample


def _write_stereo(f, frames, bytes_per_sample, max_frames) -> int:
    q = _quantizer(bytes_per_sample)
    pack = _packer(bytes_per_sample, 2)
    n = 0
    for l, r in frames:
        _check_room(n, max_frames)
        f.write(pack(q(l), q(r)))
        n += 1
    return n * 2 * bytes_per_sample


def _write_multi(f, channels, bytes_per_sample, max_frames) -> int:
    q = _quantizer(bytes_per_sample)
    pack = _packer(bytes_per_sample, len(channels))
    n = 0
    for frame in zip(*channels):
        _check_room(n, max_frames)
        f.write(pack(*[q(s) for s in frame]))
        n += 1
    return n * len(channels) * bytes_per_sample


def _open_target(target, mode):
    if hasattr(target, "write") or hasattr(target, "read"):
        return contextlib.nullcontext(target)
    return open(target, mode)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode(target, signal: ChannelShape, sr: int = 44100,
           bytes_per_sample: int = 2) -> WavHeader:
    """Stream a channel shape into a WAV file; return the final header.

    `target` is a path or a seekable binary file object (left open).
    Encoding stops at the first exhausted channel.
    """
    if isinstance(signal, Mono):
        n_channels, write, source = 1, _write_mono, signal.samples
    elif isinstance(signal, Stereo):
        n_channels, write, source = 2, _write_stereo, signal.frames
    elif isinstance(signal, MultiChannel):
        n_channels, write, source = len(signal.channels), _write_multi, signal.channels
    else:
        raise TypeError(f"expected Mono, Stereo or MultiChannel, got {type(signal).__name__}")

    header = WavHeader(int(sr), n_channels, bytes_per_sample)
    with _open_target(target, "wb") as f:
        start = f.tell()
        f.write(header.pack())
        log.debug("wav header written: %d Hz, %d ch, %d bytes/sample",
                  header.sample_rate, n_channels, bytes_per_sample)
        max_frames = MAX_DATA_SIZE // header.block_align
        data_size = write(f, source, bytes_per_sample, max_frames)
        header = dataclasses.replace(header, data_size=data_size)
        end = f.tell()
        f.seek(start + RIFF_SIZE_OFFSET)
        f.write(_U32.pack(header.riff_size))
        f.seek(start + DATA_SIZE_OFFSET)
        f.write(_U32.pack(data_size))
        f.seek(end)
    log.debug("wav finalized: %d frames, %d payload bytes -> %s",
              header.num_frames, data_size, getattr(target, "name", target))
    return header


def stream_to_wav(target, channels, sr=44100, bytes_per_sample=2) -> WavHeader:
    """Encode a list of per-channel sample sequences.

    One or two channels go through the specialized mono / stereo writers;
    the output is byte-identical to the general N-channel path.
    """
    channels = list(channels)
    if len(channels) == 1:
        signal = Mono(channels[0])
    elif len(channels) == 2:
        signal = Stereo.from_channels(channels[0], channels[1])
    else:
        signal = MultiChannel(channels)
    return encode(target, signal, sr, bytes_per_sample)


def stream_mono_to_wav(target, samples, sr=44100, bytes_per_sample=2) -> WavHeader:
    return encode(target, Mono(samples), sr, bytes_per_sample)


def stream_pairs_to_wav(target, frames, sr=44100, bytes_per_sample=2) -> WavHeader:
    """Encode a sequence of (left, right) frames."""
    return encode(target, Stereo(frames), sr, bytes_per_sample)


def stream_lr_to_wav(target, left, right, sr=44100, bytes_per_sample=2) -> WavHeader:
    """Encode separate left and right sequences."""
    return encode(target, Stereo.from_channels(left, right), sr, bytes_per_sample)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _read_exact(f, n: int) -> bytes:
    data = f.read(n)
    if len(data) != n:
        raise WavFormatError(f"truncated header: wanted {n} bytes, got {len(data)}")
    return data


def _u16(f) -> int:
    return struct.unpack("<H", _read_exact(f, 2))[0]


def _u32(f) -> int:
    return _U32.unpack(_read_exact(f, 4))[0]


def read_header(f) -> WavHeader:
    """Parse the header, leaving `f` positioned at the first payload byte."""
    if _read_exact(f, 4) != b"RIFF":
        raise WavFormatError("Not a WAV file: missing 'RIFF' tag")
    # chunk size, "WAVE", "fmt "
    _read_exact(f, 12)
    fmt_size = _u32(f)
    format_code = _u16(f)
    num_channels = _u16(f)
    sample_rate = _u32(f)
    # byte rate, block align: derived from the other fields
    _read_exact(f, 6)
    bits = _u16(f)
    if fmt_size > 16:
        _read_exact(f, fmt_size - 16)

    if format_code != PCM:
        # Non-PCM: skip the length-prefixed extension chunk before "data".
        _read_exact(f, 4)
        _read_exact(f, _u32(f))

    if _read_exact(f, 4) != b"data":
        raise WavFormatError("Incorrect format: chunk 2 id not 'data'")
    data_size = _u32(f)

    if bits == 0 or bits % 8:
        raise WavFormatError(f"unsupported bit depth {bits}")
    try:
        return WavHeader(sample_rate, num_channels, bits // 8,
                         data_size=data_size, format_code=format_code)
    except ValueError as exc:
        raise WavFormatError(str(exc)) from exc


def _decode_samples(payload: bytes, width: int) -> np.ndarray:
    if width in _STRUCT_CODES:
        return np.frombuffer(payload, dtype=f"<i{width}").astype(np.int64)
    raw = np.frombuffer(payload, dtype=np.uint8).reshape(-1, width).astype(np.int64)
    vals = np.zeros(raw.shape[0], dtype=np.int64)
    for k in range(width):
        vals |= raw[:, k] << (8 * k)
    # Sign-extend from `width` bytes.
    shift = 64 - 8 * width
    return (vals << shift) >> shift


@dataclass
class SoundFile:
    """A decoded WAV file: header plus one float64 array per channel."""
    header: WavHeader
    channels: list

    @property
    def sample_rate(self) -> int:
        return self.header.sample_rate

    @property
    def num_channels(self) -> int:
        return self.header.num_channels

    @property
    def bit_depth(self) -> int:
        return self.header.bits_per_sample

    @property
    def is_pcm(self) -> bool:
        return self.header.is_pcm

    @property
    def samples(self) -> ChannelShape:
        if len(self.channels) == 1:
            return Mono(self.channels[0])
        if len(self.channels) == 2:
            return Stereo.from_channels(self.channels[0], self.channels[1])
        return MultiChannel(list(self.channels))


def read_wav(source) -> SoundFile:
    """Decode a WAV file (path or binary file object) into per-channel arrays.

    A trailing partial frame is dropped.
    """
    with _open_target(source, "rb") as f:
        header = read_header(f)
        payload = f.read(header.data_size)
    block = header.block_align
    payload = payload[:len(payload) // block * block]
    values = _decode_samples(payload, header.bytes_per_sample)
    frames = values.reshape(-1, header.num_channels)
    channels = [frames[:, c].astype(np.float64) for c in range(header.num_channels)]
    log.debug("wav read: %d Hz, %d ch, %d bits, %d frames",
              header.sample_rate, header.num_channels, header.bits_per_sample,
              frames.shape[0])
    return SoundFile(header, channels)

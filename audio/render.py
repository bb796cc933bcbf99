"""Offline WAV rendering: drive a signal chain into the streaming encoder.

Usage:
    uv run python -m audio.render    # writes demo pieces to audio/test_signals/

The encoder is the only thing that iterates: every generator, filter and
delay line below is pulled one sample at a time as frames are written.
"""

import logging
import os
import time

import numpy as np

from audio.wav import Mono, MultiChannel, Stereo, encode
from engine.chain import chain, multiplex
from engine.effects import chorus, echo, flanger, ping_pong, vibrato
from engine.params import SR
from engine.pluck import pluck
from engine.reverb import schroeder
from primitives.filters import smith_angell
from shared.signals import adsr, generate, modulate, saw, square, triangle, white_noise

log = logging.getLogger(__name__)

OUTPUT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "test_signals")


def render(target, signal, sr=SR, bytes_per_sample=2):
    """Encode a channel shape and log how fast it rendered.

    Returns the finalized WavHeader.
    """
    t0 = time.perf_counter()
    header = encode(target, signal, sr, bytes_per_sample)
    elapsed = time.perf_counter() - t0
    duration = header.num_frames / sr
    rtf = duration / elapsed if elapsed > 0 else float('inf')
    log.info("render %.1fs audio in %.3fs (%d ch, %.1fx RT)",
             duration, elapsed, header.num_channels, rtf)
    return header


def render_waves(target, waves, sr=SR, duration=2.0, bytes_per_sample=2):
    """Sample each generator for `duration` seconds, one channel per generator."""
    channels = [generate(sr, duration, w) for w in waves]
    if len(channels) == 1:
        signal = Mono(channels[0])
    elif len(channels) == 2:
        signal = Stereo.from_channels(*channels)
    else:
        signal = MultiChannel(channels)
    return render(target, signal, sr, bytes_per_sample)


def wav_cd(duration, target, waveform):
    """CD-quality mono: 44.1 kHz, 16-bit."""
    return render_waves(target, [waveform], 44100, duration, 2)


def _envelope():
    return adsr(0.05, 1.0, 0.05, 0.3, 0.1, 0.05)


def main():
    logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s: %(message)s")
    os.makedirs(OUTPUT_DIR, exist_ok=True)
    rng = np.random.default_rng(42)

    def out(name):
        return os.path.join(OUTPUT_DIR, name)

    wav_cd(5.0, out("triangle_vibrato.wav"),
           chain(triangle(10000.0, 440.0), vibrato(SR, 7.0, 2.0)))

    wav_cd(10.0, out("saw_flanger.wav"),
           chain(saw(10000.0, 440.0), flanger(SR, 7.0, 0.15, 0.5, 0.2)))

    wav_cd(10.0, out("square_chorus_adsr_echo.wav"),
           chain(modulate(chain(square(10000.0, 440.0), chorus(SR, 30.0, 0.4, 1.5)),
                          _envelope()),
                 echo(SR, 2.0, 200.0, 1.0, 0.9, 0.5)))

    wav_cd(2.0, out("noise_smith_angell.wav"),
           chain(white_noise(50000.0, rng), smith_angell(SR, 440.0, 10.0)))

    wav_cd(15.0, out("karplus_strong.wav"), pluck(10000.0, SR, 256.0, rng))

    def voice(pitch):
        return modulate(triangle(10000.0, pitch), _envelope())

    pairs = generate(SR, 15.0, chain(multiplex(voice(256.0), voice(384.0)),
                                     ping_pong(SR, 2.0, 200.0, 1.0, 0.9, 0.5)))
    render(out("ping_pong.wav"), Stereo(pairs))

    reverb = schroeder(SR, 1.0, (101.0, 143.0, 165.0, 177.0), (0.4, 0.37, 0.3333, 0.3))
    pairs = generate(SR, 2.0, chain(voice(440.0), reverb.process_mono))
    render(out("schroeder.wav"), Stereo(pairs))

    log.info("demo pieces written to %s", OUTPUT_DIR)


if __name__ == "__main__":
    main()

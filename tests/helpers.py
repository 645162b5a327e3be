"""Shared test helpers for audio effect tests.

Usage:
    from tests.helpers import SAMPLE_RATE, CHUNK, dominant_frequency, sine_pcm16
"""

from __future__ import annotations

import numpy as np

# 48kHz mono; 20ms chunk = 960 samples
SAMPLE_RATE = 48000
CHUNK = 960


def sine_pcm16(
    freq_hz: float,
    duration_s: float,
    sample_rate: int = SAMPLE_RATE,
    amplitude: float = 0.5,
) -> np.ndarray:
    """Generate a mono sine wave as int16 samples."""
    t = np.arange(int(sample_rate * duration_s), dtype=np.float64) / sample_rate
    wave = amplitude * 32767 * np.sin(2 * np.pi * freq_hz * t)
    return np.round(wave).astype(np.int16)


def noise_pcm16(n_samples: int, seed: int = 1234) -> np.ndarray:
    """Deterministic full-range int16 noise."""
    rng = np.random.default_rng(seed)
    return rng.integers(-32768, 32768, size=n_samples, dtype=np.int64).astype(np.int16)


def dominant_frequency(audio: np.ndarray, sample_rate: int = SAMPLE_RATE) -> float:
    """Return the dominant frequency in Hz using FFT."""
    fft = np.abs(np.fft.rfft(audio.astype(np.float64)))
    freqs = np.fft.rfftfreq(len(audio), d=1.0 / sample_rate)
    return float(freqs[np.argmax(fft)])


def chunks(samples: np.ndarray, size: int) -> list[np.ndarray]:
    """Split into consecutive writable copies of ``size`` samples (last may be shorter)."""
    return [samples[i : i + size].copy() for i in range(0, len(samples), size)]

"""Shared sample-level DSP primitives for the voxfx kernels.

Pure numpy helpers for integer PCM16 arithmetic. Zero imports from
voxfx.effects or voxfx.session — this module sits at the bottom of the
dependency graph alongside _audio_constants.
"""

from __future__ import annotations

import math

import numpy as np

from voxfx._audio_constants import PCM_INT16_MAX, PCM_INT16_MIN

__all__ = [
    "TWO_PI",
    "oscillator_phases",
    "round_half_up",
    "saturate_int16",
]

TWO_PI: float = 2.0 * math.pi


def saturate_int16(values: np.ndarray) -> np.ndarray:
    """Clamp to [-32768, 32767] and cast to int16 (saturation, not wraparound)."""
    result: np.ndarray = np.clip(values, PCM_INT16_MIN, PCM_INT16_MAX).astype(np.int16)
    return result


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer, halves toward +inf (``floor(x + 0.5)``)."""
    result: np.ndarray = np.floor(values + 0.5)
    return result


def oscillator_phases(start_phase: float, step: float, count: int) -> np.ndarray:
    """Phases ``(start + i * step) mod 2π`` for ``i`` in ``[0, count)`` (float64)."""
    phases: np.ndarray = np.mod(start_phase + np.arange(count, dtype=np.float64) * step, TWO_PI)
    return phases

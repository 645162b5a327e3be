"""Centralized audio format constants for the voxfx runtime.

Single source of truth for PCM format parameters and the default effect
tuning shared by the streaming engine, the batch applier, settings, and CLI.
"""

from __future__ import annotations

# --- PCM 16-bit format ---
# Signed 16-bit integer range: [-32768, 32767]
PCM_INT16_MAX: int = 32767
PCM_INT16_MIN: int = -32768

# Bytes per sample for 16-bit PCM.
BYTES_PER_SAMPLE_INT16: int = 2

# --- Stream format ---
# Voice-chat capture runs at 48kHz mono.
DEFAULT_SAMPLE_RATE: int = 48000
DEFAULT_CHUNK_MS: int = 20

# --- Effect tuning ---
# Echo delay line length (150 ms).
DEFAULT_ECHO_DELAY_S: float = 0.15
# The streaming and batch echo kernels were tuned separately and keep
# independent decay constants.
DEFAULT_STREAM_ECHO_DECAY: float = 0.4
DEFAULT_BATCH_ECHO_DECAY: float = 0.5
# Robot ring-modulation oscillator frequency.
DEFAULT_ROBOT_MODULATION_HZ: float = 30.0

# Custom pitch range accepted by EffectSettings.
CUSTOM_PITCH_MIN: float = 0.5
CUSTOM_PITCH_MAX: float = 2.0
CUSTOM_PITCH_DEFAULT: float = 1.0

"""Typed exceptions for voxfx.

Hierarchy:
    VoxfxError (base)
    +-- AudioError
    |   +-- ConversionError
    +-- EffectError
    |   +-- KernelFailure
    +-- ConfigError
        +-- ConfigReadFailure

The streaming path never lets these escape: StreamEffectEngine and
EffectStream recover locally and pass audio through unchanged. The batch
path reports them as a False result.
"""

from __future__ import annotations


class VoxfxError(Exception):
    """Base for all voxfx exceptions."""


# --- Audio ---


class AudioError(VoxfxError):
    """Audio buffer handling error."""


class ConversionError(AudioError):
    """Malformed or misaligned PCM16 byte buffer."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"PCM16 conversion failed: {detail}")


# --- Effects ---


class EffectError(VoxfxError):
    """Effect processing error."""


class KernelFailure(EffectError):
    """Arithmetic or state failure inside a DSP kernel."""

    def __init__(self, kernel: str, reason: str) -> None:
        self.kernel = kernel
        self.reason = reason
        super().__init__(f"Kernel '{kernel}' failed: {reason}")


# --- Configuration ---


class ConfigError(VoxfxError):
    """Runtime configuration error."""


class ConfigReadFailure(ConfigError):
    """Effect settings store could not be read."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to read setting '{key}': {reason}")

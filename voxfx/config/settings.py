"""Centralized runtime configuration via pydantic-settings.

Engine and stream ``VOXFX_*`` environment variables are read and validated
here. ``VOXFX_LOG_FORMAT`` and ``VOXFX_LOG_LEVEL`` are read by ``voxfx.logging``.

This is engine tuning, not the user's effect choice: the selected effect,
enabled flag, and custom pitch live in ``voxfx.config.effect_settings``.

Usage::

    from voxfx.config.settings import get_settings

    settings = get_settings()
    print(settings.engine.sample_rate)       # int, validated
    print(settings.engine.echo_delay_s)      # float, derived

``.env`` files in the working directory are loaded automatically.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from voxfx._audio_constants import (
    DEFAULT_BATCH_ECHO_DECAY,
    DEFAULT_CHUNK_MS,
    DEFAULT_ECHO_DELAY_S,
    DEFAULT_ROBOT_MODULATION_HZ,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_STREAM_ECHO_DECAY,
)


class EngineSettings(BaseSettings):
    """DSP kernel tuning shared by the streaming engine and the batch applier."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    sample_rate: int = Field(
        default=DEFAULT_SAMPLE_RATE,
        ge=8000,
        le=192_000,
        validation_alias="VOXFX_SAMPLE_RATE",
    )
    stream_echo_decay: float = Field(
        default=DEFAULT_STREAM_ECHO_DECAY,
        ge=0.0,
        le=1.0,
        validation_alias="VOXFX_STREAM_ECHO_DECAY",
    )
    batch_echo_decay: float = Field(
        default=DEFAULT_BATCH_ECHO_DECAY,
        ge=0.0,
        le=1.0,
        validation_alias="VOXFX_BATCH_ECHO_DECAY",
    )
    echo_delay_ms: int = Field(
        default=int(DEFAULT_ECHO_DELAY_S * 1000),
        ge=1,
        le=2000,
        validation_alias="VOXFX_ECHO_DELAY_MS",
    )
    robot_modulation_hz: float = Field(
        default=DEFAULT_ROBOT_MODULATION_HZ,
        gt=0.0,
        le=1000.0,
        validation_alias="VOXFX_ROBOT_MODULATION_HZ",
    )

    @property
    def echo_delay_s(self) -> float:
        """Echo delay in seconds (derived from the ms setting)."""
        return self.echo_delay_ms / 1000.0


class StreamSettings(BaseSettings):
    """Live processing loop tuning."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    chunk_ms: int = Field(
        default=DEFAULT_CHUNK_MS,
        ge=1,
        le=1000,
        validation_alias="VOXFX_STREAM_CHUNK_MS",
    )
    use_custom_pitch: bool = Field(
        default=False,
        validation_alias="VOXFX_STREAM_USE_CUSTOM_PITCH",
    )
    stop_timeout_s: float = Field(
        default=1.0,
        gt=0,
        le=30,
        validation_alias="VOXFX_STREAM_STOP_TIMEOUT_S",
    )

    def chunk_bytes(self, sample_rate: int) -> int:
        """Chunk size in PCM16 bytes at ``sample_rate`` (at least one sample)."""
        return max(1, sample_rate * self.chunk_ms // 1000) * 2


class VoxfxSettings(BaseSettings):
    """Root settings — aggregates all subsystem settings.

    Each subsystem model loads ``.env`` from the current directory itself,
    since the variables are declared on the nested models.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    engine: EngineSettings = Field(default_factory=EngineSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)


@lru_cache(maxsize=1)
def get_settings() -> VoxfxSettings:
    """Return the singleton ``VoxfxSettings`` instance.

    The result is cached — subsequent calls return the same object.
    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    return VoxfxSettings()

"""Effects module — streaming and batch PCM16 voice effects.

Provides StreamEffectEngine (stateful, in-place, one per live stream) and
BatchEffectApplier (whole-recording, offline), plus factories that build
them from the runtime settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from voxfx.effects.batch import BatchEffectApplier
from voxfx.effects.stream import StreamEffectEngine

if TYPE_CHECKING:
    from voxfx.config.settings import EngineSettings

__all__ = [
    "BatchEffectApplier",
    "StreamEffectEngine",
    "create_batch_applier",
    "create_stream_engine",
]


def _engine_settings(settings: EngineSettings | None) -> EngineSettings:
    if settings is not None:
        return settings
    from voxfx.config.settings import get_settings

    return get_settings().engine


def create_stream_engine(
    settings: EngineSettings | None = None,
    *,
    sample_rate: int | None = None,
) -> StreamEffectEngine:
    """Create a streaming engine tuned by ``settings`` (default: env settings).

    ``sample_rate`` overrides the configured rate for this stream only.
    """
    s = _engine_settings(settings)
    return StreamEffectEngine(
        sample_rate=sample_rate or s.sample_rate,
        echo_decay=s.stream_echo_decay,
        echo_delay_s=s.echo_delay_s,
        robot_modulation_hz=s.robot_modulation_hz,
    )


def create_batch_applier(
    settings: EngineSettings | None = None,
    *,
    sample_rate: int | None = None,
) -> BatchEffectApplier:
    """Create a batch applier tuned by ``settings`` (default: env settings)."""
    s = _engine_settings(settings)
    return BatchEffectApplier(
        sample_rate=sample_rate or s.sample_rate,
        echo_decay=s.batch_echo_decay,
        echo_delay_s=s.echo_delay_s,
        robot_modulation_hz=s.robot_modulation_hz,
    )

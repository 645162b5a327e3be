"""Live processing loop: capture/playback port and the stream that drives the engine."""

from __future__ import annotations

from voxfx.session.port import AudioPort, FileAudioPort
from voxfx.session.stream import EffectStream

__all__ = ["AudioPort", "EffectStream", "FileAudioPort"]

"""voxfx — real-time PCM16 voice effects engine."""

from __future__ import annotations

__version__ = "0.1.0"

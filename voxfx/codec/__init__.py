"""Sample codec layer: PCM16 bytes <-> int16 sample arrays."""

from __future__ import annotations

from voxfx.codec.pcm16 import decode, encode, encode_into, sample_count

__all__ = ["decode", "encode", "encode_into", "sample_count"]

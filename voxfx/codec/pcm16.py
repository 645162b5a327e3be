"""PCM16 sample codec — little-endian bytes <-> signed 16-bit samples.

Pure numpy. The byte order is pinned to little-endian (``<i2``) so the
codec is byte-exact on any host.

An odd trailing byte is never decoded and never overwritten: capture
devices may hand over a buffer cut mid-sample, and the in-place path must
leave that byte exactly as it found it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from voxfx._audio_constants import BYTES_PER_SAMPLE_INT16, PCM_INT16_MAX, PCM_INT16_MIN
from voxfx.exceptions import ConversionError

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["decode", "encode", "encode_into", "sample_count"]

_LE_INT16 = np.dtype("<i2")


def sample_count(n_bytes: int) -> int:
    """Number of whole 16-bit samples contained in ``n_bytes`` bytes."""
    return n_bytes // BYTES_PER_SAMPLE_INT16


def decode(data: bytes | bytearray | memoryview) -> np.ndarray:
    """Decode little-endian PCM16 bytes into a native int16 array.

    The returned array is a fresh copy; mutating it never touches ``data``.

    Args:
        data: PCM16 little-endian bytes. An odd trailing byte is ignored.

    Returns:
        1-D int16 array with ``len(data) // 2`` samples.

    Raises:
        ConversionError: If ``data`` is not a bytes-like object.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise ConversionError(f"expected bytes-like input, got {type(data).__name__}")

    n_samples = sample_count(len(data))
    if n_samples == 0:
        return np.zeros(0, dtype=np.int16)

    raw = np.frombuffer(data, dtype=_LE_INT16, count=n_samples)
    return raw.astype(np.int16)


def encode(samples: Sequence[int] | np.ndarray) -> bytes:
    """Encode samples as little-endian PCM16 bytes.

    Raises:
        ConversionError: If a sample does not fit in int16.
    """
    return _to_le_int16(samples).tobytes()


def encode_into(samples: Sequence[int] | np.ndarray, buffer: bytearray) -> None:
    """Write samples into the head of ``buffer`` as little-endian PCM16.

    Exactly ``len(samples) * 2`` bytes are written starting at offset 0;
    any byte after that (including an odd trailing byte) is left untouched.

    Raises:
        ConversionError: If ``buffer`` is not writable or too small, or a
            sample does not fit in int16.
    """
    if not isinstance(buffer, bytearray):
        raise ConversionError(f"in-place target must be a bytearray, got {type(buffer).__name__}")

    encoded = _to_le_int16(samples).tobytes()
    if len(encoded) > len(buffer):
        raise ConversionError(
            f"buffer holds {len(buffer)} bytes, {len(encoded)} required"
        )
    buffer[: len(encoded)] = encoded


def _to_le_int16(samples: Sequence[int] | np.ndarray) -> np.ndarray:
    arr = np.asarray(samples)
    if arr.ndim != 1:
        raise ConversionError(f"expected 1-D samples, got shape {arr.shape}")
    if arr.size == 0:
        return np.zeros(0, dtype=_LE_INT16)
    if arr.dtype != np.int16:
        if not np.issubdtype(arr.dtype, np.integer):
            raise ConversionError(f"samples must be integers, got dtype {arr.dtype}")
        if int(arr.min()) < PCM_INT16_MIN or int(arr.max()) > PCM_INT16_MAX:
            raise ConversionError("sample value outside the int16 range")
    return arr.astype(_LE_INT16, copy=False)

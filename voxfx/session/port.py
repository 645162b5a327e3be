"""AudioPort — the capture/playback capability the processing loop depends on.

Device capture, playback sinks, and host-application audio interception are
platform-specific and live outside voxfx. Each of them is adapted to this
two-method interface; the loop never sees anything else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, TYPE_CHECKING

from voxfx.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger("session.port")


class AudioPort(ABC):
    """Source of captured PCM16 chunks and sink for processed ones."""

    @abstractmethod
    def supply_captured(self) -> bytes | None:
        """Return the next captured PCM16 mono chunk.

        Returns:
            Chunk bytes (may be empty if nothing is ready yet), or None when
            the capture side has ended.
        """
        ...

    @abstractmethod
    def consume_processed(self, data: bytes) -> None:
        """Forward a processed chunk (same length as captured) to playback."""
        ...

    def close(self) -> None:  # noqa: B027
        """Release port resources. Default implementation is a no-op."""


class FileAudioPort(AudioPort):
    """Reads raw PCM16 from one file and writes processed chunks to another.

    Stands in for a capture device when replaying recordings through the
    live engine (``voxfx stream``) and in tests.

    Args:
        input_path: Raw PCM16 little-endian mono input.
        output_path: Destination for processed audio (truncated on open).
        chunk_bytes: Bytes per captured chunk; the final chunk may be shorter.
    """

    def __init__(self, input_path: str | Path, output_path: str | Path, chunk_bytes: int) -> None:
        if chunk_bytes <= 0:
            msg = f"chunk_bytes must be positive, got {chunk_bytes}"
            raise ValueError(msg)
        self._input_path = Path(input_path)
        self._output_path = Path(output_path)
        self._chunk_bytes = chunk_bytes
        self._reader: IO[bytes] | None = None
        self._writer: IO[bytes] | None = None
        self._bytes_written = 0

    @property
    def chunk_bytes(self) -> int:
        return self._chunk_bytes

    @property
    def bytes_written(self) -> int:
        return self._bytes_written

    def open(self) -> None:
        if self._reader is None:
            self._reader = self._input_path.open("rb")
        if self._writer is None:
            self._writer = self._output_path.open("wb")

    def supply_captured(self) -> bytes | None:
        self.open()
        assert self._reader is not None
        chunk = self._reader.read(self._chunk_bytes)
        return chunk or None

    def consume_processed(self, data: bytes) -> None:
        self.open()
        assert self._writer is not None
        self._writer.write(data)
        self._bytes_written += len(data)

    def close(self) -> None:
        for handle in (self._reader, self._writer):
            if handle is not None:
                handle.close()
        self._reader = None
        self._writer = None
        logger.debug(
            "file_port_closed",
            input=str(self._input_path),
            output=str(self._output_path),
            bytes_written=self._bytes_written,
        )

    def __enter__(self) -> FileAudioPort:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

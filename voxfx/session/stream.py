"""EffectStream — single-consumer loop from capture, through the engine, to playback.

Per chunk:
    1. Pull captured PCM16 bytes from the AudioPort
    2. Sample one EffectSettings snapshot
    3. If enabled, process the chunk in place with the StreamEffectEngine
    4. Push the chunk (same length) back to the AudioPort

The engine is owned by exactly one thread: either the worker thread started
by ``start()`` or the caller of ``run()``. ``reset()`` happens on start and
after the worker has been joined on stop, so it never overlaps a buffer.

A settings read failure only skips processing for that chunk (passthrough).
A port failure ends the loop.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from voxfx.exceptions import ConfigReadFailure
from voxfx.logging import get_logger

if TYPE_CHECKING:
    from voxfx.config.effect_settings import EffectSettings
    from voxfx.effects.stream import StreamEffectEngine
    from voxfx.session.port import AudioPort

logger = get_logger("session.stream")

# Back-off when the port has nothing ready (empty chunk).
_IDLE_WAIT_S = 0.002


class EffectStream:
    """Drives one StreamEffectEngine from one AudioPort.

    Args:
        engine: Engine owned by this stream (reset on start/stop).
        settings: Effect selection, read once per chunk.
        port: Capture source and playback sink.
        use_custom_pitch: Apply the custom pitch to pitch-family effects.
        stop_timeout_s: How long ``stop()`` waits for the worker thread.
        stream_id: Identifier for logging.
    """

    def __init__(
        self,
        engine: StreamEffectEngine,
        settings: EffectSettings,
        port: AudioPort,
        *,
        use_custom_pitch: bool = False,
        stop_timeout_s: float = 1.0,
        stream_id: str = "",
    ) -> None:
        self._engine = engine
        self._settings = settings
        self._port = port
        self._use_custom_pitch = use_custom_pitch
        self._stop_timeout_s = stop_timeout_s
        self._stream_id = stream_id
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False
        self._chunks_processed = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def chunks_processed(self) -> int:
        """Chunks forwarded to the port since the last start/run."""
        return self._chunks_processed

    @property
    def engine(self) -> StreamEffectEngine:
        return self._engine

    def start(self) -> bool:
        """Reset the engine and start processing on a worker thread.

        Returns:
            True if the stream is running (including if it already was).
        """
        if self._running:
            logger.info("stream_already_running", stream_id=self._stream_id)
            return True

        self._prepare()
        thread = threading.Thread(target=self._loop, name="voxfx-stream", daemon=True)
        try:
            thread.start()
        except RuntimeError:
            self._running = False
            logger.error("stream_start_failed", stream_id=self._stream_id, exc_info=True)
            return False

        self._thread = thread
        logger.info("stream_started", stream_id=self._stream_id)
        return True

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to end, wait for it, then reset the engine and close the port."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(self._stop_timeout_s if timeout is None else timeout)
            if thread.is_alive():
                # Still inside a chunk; resetting now would race the engine.
                logger.warning("stream_stop_timeout", stream_id=self._stream_id)
                return
        self._thread = None
        self._engine.reset()
        self._port.close()
        logger.info(
            "stream_stopped",
            stream_id=self._stream_id,
            chunks_processed=self._chunks_processed,
        )

    def run(self) -> int:
        """Process on the calling thread until the port ends or stop is requested.

        Returns:
            Number of chunks processed.
        """
        self._prepare()
        self._loop()
        return self._chunks_processed

    def process_chunk(self, data: bytes) -> bytes:
        """Apply the current effect selection to one captured chunk."""
        buffer = bytearray(data)
        try:
            snapshot = self._settings.snapshot()
        except ConfigReadFailure:
            logger.error("stream_settings_unavailable", stream_id=self._stream_id, exc_info=True)
            return bytes(buffer)

        self._engine.process_snapshot(buffer, snapshot, use_custom_pitch=self._use_custom_pitch)
        return bytes(buffer)

    def _prepare(self) -> None:
        self._engine.reset()
        self._stop_event.clear()
        self._chunks_processed = 0
        self._running = True

    def _loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    chunk = self._port.supply_captured()
                except Exception:
                    logger.error("stream_port_failed", stream_id=self._stream_id, exc_info=True)
                    break

                if chunk is None:
                    logger.debug("stream_capture_ended", stream_id=self._stream_id)
                    break
                if not chunk:
                    self._stop_event.wait(_IDLE_WAIT_S)
                    continue

                processed = self.process_chunk(chunk)
                try:
                    self._port.consume_processed(processed)
                except Exception:
                    logger.error("stream_port_failed", stream_id=self._stream_id, exc_info=True)
                    break
                self._chunks_processed += 1
        finally:
            self._running = False

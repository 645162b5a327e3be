"""Streaming effect engine — in-place PCM16 processing for a live stream.

One StreamEffectEngine belongs to one stream. It keeps the only state that
must survive buffer seams:

- a fixed-capacity circular delay line (150 ms by default) for the echo
- a phase accumulator in [0, 2π) for the robot ring modulator

Kernels are vectorized with numpy but are sample-accurate: feeding a
buffer at once gives the same output and final state as feeding it one
sample at a time.

Every kernel computes its output and next state without touching either,
then the buffer is written and only then is the state committed. A
failure anywhere therefore leaves both the buffer and the state as they
were before the call.

Not thread-safe: exactly one thread may call process_buffer/reset on a
given instance, one buffer at a time.
"""

from __future__ import annotations

import array
import math
from typing import TYPE_CHECKING

import numpy as np

from voxfx import codec
from voxfx._audio_constants import (
    DEFAULT_ECHO_DELAY_S,
    DEFAULT_ROBOT_MODULATION_HZ,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_STREAM_ECHO_DECAY,
)
from voxfx._dsp import TWO_PI, oscillator_phases, round_half_up, saturate_int16
from voxfx._types import EffectKernel, EffectKind
from voxfx.exceptions import ConversionError, KernelFailure
from voxfx.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, MutableSequence

    from voxfx._types import EffectSnapshot

logger = get_logger("effects.stream")


def _noop() -> None:
    return None


class _DelayLine:
    """Circular int16 delay line with a write cursor.

    ``advance`` is pure: it returns the delayed samples together with the
    writes and cursor that processing would leave behind, and the caller
    decides whether to ``commit`` them. Both touch only the positions the
    buffer visits, so the cost is linear in the buffer length.
    """

    __slots__ = ("_buffer", "_capacity", "_cursor")

    def __init__(self, capacity: int) -> None:
        self._buffer = np.zeros(capacity, dtype=np.int16)
        self._capacity = capacity
        self._cursor = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def cursor(self) -> int:
        return self._cursor

    def advance(
        self, samples: np.ndarray
    ) -> tuple[np.ndarray, tuple[np.ndarray, np.ndarray, int]]:
        n = len(samples)
        capacity = self._capacity
        positions = (self._cursor + np.arange(n, dtype=np.int64)) % capacity

        # Sample j reads what was stored at its position: old line contents
        # for the first `capacity` samples, then the input written one lap
        # earlier in this same buffer.
        delayed = np.empty(n, dtype=np.int16)
        lap = min(n, capacity)
        delayed[:lap] = self._buffer[positions[:lap]]
        if n > capacity:
            delayed[capacity:] = samples[: n - capacity]

        next_cursor = (self._cursor + n) % capacity
        if not 0 <= next_cursor < capacity:
            raise KernelFailure("echo", "delay line cursor out of range")
        # Only the last lap survives in the line; copy it before the caller
        # overwrites the input buffer with the output.
        pending = (positions[n - lap :], samples[n - lap :].copy(), next_cursor)
        return delayed, pending

    def commit(self, pending: tuple[np.ndarray, np.ndarray, int]) -> None:
        positions, values, cursor = pending
        self._buffer[positions] = values
        self._cursor = cursor

    def reset(self) -> None:
        self._buffer[:] = 0
        self._cursor = 0


class StreamEffectEngine:
    """Stateful per-stream effect processor.

    Args:
        sample_rate: Stream sample rate in Hz.
        echo_decay: Gain applied to the delayed sample by the echo kernel.
        echo_delay_s: Echo delay; fixes the delay line capacity at
            ``round(sample_rate * echo_delay_s)`` samples.
        robot_modulation_hz: Ring modulator frequency for the robot kernel.
    """

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        *,
        echo_decay: float = DEFAULT_STREAM_ECHO_DECAY,
        echo_delay_s: float = DEFAULT_ECHO_DELAY_S,
        robot_modulation_hz: float = DEFAULT_ROBOT_MODULATION_HZ,
    ) -> None:
        if sample_rate <= 0:
            msg = f"sample_rate must be positive, got {sample_rate}"
            raise ValueError(msg)
        capacity = round(sample_rate * echo_delay_s)
        if capacity < 1:
            msg = f"echo delay of {echo_delay_s}s is shorter than one sample at {sample_rate} Hz"
            raise ValueError(msg)

        self._sample_rate = sample_rate
        self._echo_decay = echo_decay
        self._robot_modulation_hz = robot_modulation_hz
        self._phase_step = TWO_PI * robot_modulation_hz / sample_rate
        self._delay_line = _DelayLine(capacity)
        self._phase = 0.0

        logger.debug(
            "stream_engine_ready",
            sample_rate=sample_rate,
            delay_capacity=capacity,
            echo_decay=echo_decay,
        )

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def echo_decay(self) -> float:
        return self._echo_decay

    @property
    def delay_capacity(self) -> int:
        """Delay line length in samples (immutable)."""
        return self._delay_line.capacity

    @property
    def cursor(self) -> int:
        """Delay line write position, always in ``[0, delay_capacity)``."""
        return self._delay_line.cursor

    @property
    def phase(self) -> float:
        """Robot oscillator phase at the start of the next buffer, in ``[0, 2π)``."""
        return self._phase

    def reset(self) -> None:
        """Zero the delay line and the phase accumulator.

        Call whenever the stream (re)starts; never while a buffer is in flight.
        """
        self._delay_line.reset()
        self._phase = 0.0

    # --- Public processing ---

    def process_buffer(
        self,
        buffer: np.ndarray | MutableSequence[int],
        effect: EffectKind,
        *,
        pitch_factor: float | None = None,
    ) -> None:
        """Apply ``effect`` to ``buffer`` in place.

        Never raises: on any internal failure the buffer keeps its original
        contents, the engine state is unchanged, and the failure is logged.

        Args:
            buffer: Mono int16 samples. A 1-D int16 ndarray is written in
                place; any other mutable sequence is slice-assigned.
            effect: Effect to apply. NONE is a no-op.
            pitch_factor: Overrides the factor of pitch-family effects
                (custom pitch). Ignored by the other kernels.
        """
        if effect is EffectKind.NONE or len(buffer) == 0:
            return

        try:
            samples = self._as_samples(buffer)
            output, commit = self._run_kernel(samples, effect, pitch_factor)
            if output is not samples:
                if isinstance(buffer, np.ndarray):
                    buffer[:] = output
                elif isinstance(buffer, array.array):
                    buffer[:] = array.array(buffer.typecode, output.tolist())
                else:
                    buffer[:] = output.tolist()
            commit()
        except Exception:
            logger.error(
                "stream_kernel_failed",
                effect=effect.name.lower(),
                samples=len(buffer),
                exc_info=True,
            )

    def process_bytes(
        self,
        data: bytearray,
        effect: EffectKind,
        *,
        pitch_factor: float | None = None,
    ) -> None:
        """Apply ``effect`` to a PCM16 little-endian byte buffer in place.

        An odd trailing byte is left untouched. Never raises: if the bytes
        cannot be decoded or written back, ``data`` and the engine state
        are both left as they were.
        """
        if effect is EffectKind.NONE or len(data) < 2:
            return

        try:
            if not isinstance(data, bytearray):
                raise ConversionError(
                    f"in-place target must be a bytearray, got {type(data).__name__}"
                )
            samples = codec.decode(data)
        except ConversionError:
            logger.error("stream_conversion_failed", effect=effect.name.lower(), exc_info=True)
            return

        try:
            output, commit = self._run_kernel(samples, effect, pitch_factor)
        except Exception:
            logger.error(
                "stream_kernel_failed",
                effect=effect.name.lower(),
                samples=len(samples),
                exc_info=True,
            )
            return

        try:
            codec.encode_into(output, data)
        except ConversionError:
            logger.error("stream_conversion_failed", effect=effect.name.lower(), exc_info=True)
            return
        commit()

    def process_snapshot(
        self,
        buffer: np.ndarray | bytearray,
        snapshot: EffectSnapshot,
        *,
        use_custom_pitch: bool = False,
    ) -> None:
        """Apply a settings snapshot: nothing if disabled, else its effect.

        ``bytearray`` buffers are treated as PCM16 bytes, anything else as
        samples. With ``use_custom_pitch`` the snapshot's custom pitch
        replaces the factor of pitch-family effects.
        """
        if not snapshot.enabled:
            return
        pitch = snapshot.custom_pitch if use_custom_pitch else None
        if isinstance(buffer, bytearray):
            self.process_bytes(buffer, snapshot.effect, pitch_factor=pitch)
        else:
            self.process_buffer(buffer, snapshot.effect, pitch_factor=pitch)

    # --- Dispatch ---

    @staticmethod
    def _as_samples(buffer: np.ndarray | MutableSequence[int]) -> np.ndarray:
        if isinstance(buffer, np.ndarray):
            if buffer.dtype != np.int16 or buffer.ndim != 1:
                raise KernelFailure(
                    "input", f"expected 1-D int16 buffer, got {buffer.dtype} {buffer.shape}"
                )
            return buffer
        return np.array(buffer, dtype=np.int16)

    def _run_kernel(
        self,
        samples: np.ndarray,
        effect: EffectKind,
        pitch_factor: float | None,
    ) -> tuple[np.ndarray, Callable[[], None]]:
        kernel = effect.kernel
        if kernel is EffectKernel.PITCH:
            factor = effect.pitch_factor if pitch_factor is None else pitch_factor
            return self._pitch_resample(samples, factor), _noop
        if kernel is EffectKernel.ROBOT:
            return self._ring_modulate(samples)
        if kernel is EffectKernel.ECHO:
            return self._echo(samples)
        if kernel is EffectKernel.PASSTHROUGH or kernel is EffectKernel.NONE:
            return samples, _noop
        raise KernelFailure(kernel.value, "no streaming kernel registered")

    # --- Kernels ---

    @staticmethod
    def _pitch_resample(samples: np.ndarray, factor: float) -> np.ndarray:
        """Nearest-neighbour resample inside one buffer.

        ``out[i] = in[round(i * factor)]`` while that index is inside the
        buffer, else 0. Pitch and tempo change together.
        """
        if not math.isfinite(factor) or factor <= 0.0:
            raise KernelFailure("pitch", f"invalid pitch factor {factor!r}")

        n = len(samples)
        positions = round_half_up(np.arange(n, dtype=np.float64) * factor).astype(np.int64)
        valid = positions < n
        output = np.zeros(n, dtype=np.int16)
        output[valid] = samples[positions[valid]]
        return output

    def _ring_modulate(self, samples: np.ndarray) -> tuple[np.ndarray, Callable[[], None]]:
        """Multiply by ``0.5 + 0.5 * sin(phase)``, phase carried across buffers."""
        n = len(samples)
        phases = oscillator_phases(self._phase, self._phase_step, n)
        gain = 0.5 + 0.5 * np.sin(phases)
        output = saturate_int16(round_half_up(samples.astype(np.float64) * gain))
        next_phase = math.fmod(self._phase + n * self._phase_step, TWO_PI)
        if not 0.0 <= next_phase < TWO_PI:
            raise KernelFailure("robot", f"phase accumulator out of range: {next_phase!r}")

        def commit() -> None:
            self._phase = next_phase

        return output, commit

    def _echo(self, samples: np.ndarray) -> tuple[np.ndarray, Callable[[], None]]:
        """Single-tap echo; the raw input (not the mix) is written to the line."""
        delayed, pending = self._delay_line.advance(samples)
        echo = np.trunc(delayed.astype(np.float64) * self._echo_decay)
        output = saturate_int16(samples.astype(np.float64) + echo)

        def commit() -> None:
            self._delay_line.commit(pending)

        return output, commit

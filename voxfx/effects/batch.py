"""Batch effect applier — offline effects over a complete recording.

Same effect taxonomy as the streaming engine, but with whole-sequence
algorithms: every index maps to an absolute sample position, so the echo
looks back directly into the input and the robot oscillator is evaluated at
absolute time. No delay line or carried phase is needed.

Pitch shifting differs from the streaming kernel: it uses 2-point linear
interpolation (smoother, slightly more work per sample) and produces
``floor(N / factor)`` samples instead of keeping the buffer length.

Fail-open policy: ``apply_effect`` and ``apply_effect_file`` never raise for
kernel or conversion errors; they hand back an exact copy of the input and
report False.
"""

from __future__ import annotations

import math
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from voxfx import codec
from voxfx._audio_constants import (
    DEFAULT_BATCH_ECHO_DECAY,
    DEFAULT_ECHO_DELAY_S,
    DEFAULT_ROBOT_MODULATION_HZ,
    DEFAULT_SAMPLE_RATE,
    PCM_INT16_MAX,
    PCM_INT16_MIN,
)
from voxfx._dsp import TWO_PI, round_half_up, saturate_int16
from voxfx._types import EffectKernel, EffectKind
from voxfx.exceptions import KernelFailure, VoxfxError
from voxfx.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import MutableSequence, Sequence

logger = get_logger("effects.batch")


def _replace(output: MutableSequence[int], values: Sequence[int] | np.ndarray) -> None:
    # array.array slices only accept arrays, so clear and extend instead.
    replacement = [int(v) for v in values]
    del output[:]
    output.extend(replacement)


class BatchEffectApplier:
    """Applies an effect to a whole sample sequence or raw PCM16 file.

    Args:
        sample_rate: Sample rate of the recordings in Hz.
        echo_decay: Gain of the delayed signal (0.5 by default, independent
            of the streaming engine's decay).
        echo_delay_s: Echo delay in seconds.
        robot_modulation_hz: Ring modulator frequency.
    """

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        *,
        echo_decay: float = DEFAULT_BATCH_ECHO_DECAY,
        echo_delay_s: float = DEFAULT_ECHO_DELAY_S,
        robot_modulation_hz: float = DEFAULT_ROBOT_MODULATION_HZ,
    ) -> None:
        if sample_rate <= 0:
            msg = f"sample_rate must be positive, got {sample_rate}"
            raise ValueError(msg)
        self._sample_rate = sample_rate
        self._echo_decay = echo_decay
        self._delay_samples = max(1, round(sample_rate * echo_delay_s))
        self._robot_modulation_hz = robot_modulation_hz

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def echo_decay(self) -> float:
        return self._echo_decay

    @property
    def delay_samples(self) -> int:
        return self._delay_samples

    def render(self, samples: Sequence[int] | np.ndarray, effect: EffectKind) -> np.ndarray:
        """Return a new int16 array with ``effect`` applied to ``samples``.

        Raises:
            KernelFailure: If the input is malformed or a kernel fails.
        """
        try:
            source = np.asarray(samples)
            if source.ndim != 1:
                raise KernelFailure("input", f"expected 1-D samples, got shape {source.shape}")
            if source.size and not np.issubdtype(source.dtype, np.integer):
                raise KernelFailure("input", f"samples must be integers, got dtype {source.dtype}")
            if source.size and (
                int(source.min()) < PCM_INT16_MIN or int(source.max()) > PCM_INT16_MAX
            ):
                raise KernelFailure("input", "sample value outside the int16 range")
            source = source.astype(np.int16, copy=False)

            kernel = effect.kernel
            if kernel is EffectKernel.NONE:
                return source.copy()
            if kernel is EffectKernel.ECHO:
                return self._echo(source)
            if kernel is EffectKernel.ROBOT:
                return self._ring_modulate(source)
            # Pitch family resamples offline; FAST/SLOW (factor 1.0) keep their length.
            return self._linear_resample(source, effect.pitch_factor)
        except KernelFailure:
            raise
        except Exception as exc:
            raise KernelFailure(effect.name.lower(), str(exc)) from exc

    def apply_effect(
        self,
        samples: Sequence[int] | np.ndarray,
        output: MutableSequence[int],
        effect: EffectKind,
    ) -> bool:
        """Replace the contents of ``output`` with the processed ``samples``.

        Args:
            samples: Complete input recording (int16 values).
            output: Resizable mutable sequence (``list`` or
                ``array.array('h')``); its contents are replaced.
            effect: Effect to apply. NONE copies the input verbatim.

        Returns:
            True on success. False if processing failed, in which case
            ``output`` holds an exact copy of the input.
        """
        if effect is EffectKind.NONE:
            _replace(output, samples)
            return True

        try:
            rendered = self.render(samples, effect)
        except KernelFailure:
            logger.error(
                "batch_effect_failed",
                effect=effect.name.lower(),
                samples=len(samples),
                exc_info=True,
            )
            _replace(output, samples)
            return False

        _replace(output, rendered.tolist())
        logger.debug(
            "batch_effect_applied",
            effect=effect.name.lower(),
            input_samples=len(samples),
            output_samples=len(rendered),
        )
        return True

    def apply_effect_file(
        self,
        input_path: str | Path,
        output_path: str | Path,
        effect: EffectKind,
    ) -> bool:
        """Apply ``effect`` to a raw PCM16 little-endian mono file.

        The output file is always produced: on failure it is a byte copy of
        the input.

        Returns:
            True on success, False if the effect could not be applied.

        Raises:
            OSError: If the input cannot be read or the output cannot be
                written even as a plain copy.
        """
        src = Path(input_path)
        dst = Path(output_path)

        if effect is EffectKind.NONE:
            shutil.copyfile(src, dst)
            return True

        try:
            data = src.read_bytes()
            rendered = self.render(codec.decode(data), effect)
            dst.write_bytes(codec.encode(rendered))
        except (VoxfxError, OSError):
            logger.error(
                "batch_file_effect_failed",
                effect=effect.name.lower(),
                input=str(src),
                exc_info=True,
            )
            shutil.copyfile(src, dst)
            return False

        logger.info(
            "batch_file_effect_applied",
            effect=effect.name.lower(),
            input=str(src),
            output=str(dst),
            samples=len(rendered),
        )
        return True

    # --- Kernels ---

    def _echo(self, samples: np.ndarray) -> np.ndarray:
        """``out[i] = in[i] + in[i - D] * decay`` for ``i >= D``, else ``in[i]``."""
        d = self._delay_samples
        mixed = samples.astype(np.float64)
        if len(samples) > d:
            mixed[d:] += samples[:-d].astype(np.float64) * self._echo_decay
        return saturate_int16(np.trunc(mixed))

    def _ring_modulate(self, samples: np.ndarray) -> np.ndarray:
        """Ring modulation with the oscillator at absolute sample time."""
        t = np.arange(len(samples), dtype=np.float64) / self._sample_rate
        gain = 0.5 + 0.5 * np.sin(TWO_PI * self._robot_modulation_hz * t)
        return saturate_int16(np.trunc(samples.astype(np.float64) * gain))

    @staticmethod
    def _linear_resample(samples: np.ndarray, factor: float) -> np.ndarray:
        """2-point linear interpolation at ``i * factor``; ``floor(N / factor)`` outputs."""
        if not math.isfinite(factor) or factor <= 0.0:
            raise KernelFailure("pitch", f"invalid pitch factor {factor!r}")

        n = len(samples)
        out_len = math.floor(n / factor)
        if n == 0 or out_len == 0:
            return np.zeros(0, dtype=np.int16)

        positions = np.arange(out_len, dtype=np.float64) * factor
        index1 = positions.astype(np.int64)
        keep = index1 < n
        positions = positions[keep]
        index1 = index1[keep]
        index2 = np.minimum(index1 + 1, n - 1)
        fraction = positions - index1

        source = samples.astype(np.float64)
        interpolated = source[index1] * (1.0 - fraction) + source[index2] * fraction
        return saturate_int16(round_half_up(interpolated))

"""Tests for StreamEffectEngine: dispatch, kernels, seam continuity, reset, recovery."""

from __future__ import annotations

import array
import math

import numpy as np
import pytest
from structlog.testing import capture_logs

from tests.helpers import CHUNK, SAMPLE_RATE, chunks, dominant_frequency, noise_pcm16, sine_pcm16
from voxfx import codec
from voxfx._types import EffectKernel, EffectKind, EffectSnapshot
from voxfx.codec import decode, encode
from voxfx.effects import StreamEffectEngine
from voxfx.exceptions import ConversionError

_ROBOT_STEP = 2 * math.pi * 30.0 / SAMPLE_RATE


def _impulse_response(engine: StreamEffectEngine) -> tuple[int, list[int]]:
    """Feed [10000] then one zero per call for a full delay line; return all outputs."""
    first = np.array([10000], dtype=np.int16)
    engine.process_buffer(first, EffectKind.ECHO)
    outputs: list[int] = []
    for _ in range(engine.delay_capacity):
        buf = np.zeros(1, dtype=np.int16)
        engine.process_buffer(buf, EffectKind.ECHO)
        outputs.append(int(buf[0]))
    return int(first[0]), outputs


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_delay_capacity_is_150ms(self) -> None:
        assert StreamEffectEngine(48000).delay_capacity == 7200
        assert StreamEffectEngine(16000).delay_capacity == 2400
        assert StreamEffectEngine(44100).delay_capacity == round(44100 * 0.15)

    def test_initial_state(self, engine: StreamEffectEngine) -> None:
        assert engine.cursor == 0
        assert engine.phase == 0.0
        assert engine.sample_rate == SAMPLE_RATE
        assert engine.echo_decay == 0.4

    def test_non_positive_sample_rate_raises(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            StreamEffectEngine(0)

    def test_zero_length_delay_raises(self) -> None:
        with pytest.raises(ValueError, match="shorter than one sample"):
            StreamEffectEngine(8000, echo_delay_s=0.00001)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_none_leaves_buffer_identical(self, engine: StreamEffectEngine) -> None:
        for n in (1, 2, 959, CHUNK, 4096):
            buf = noise_pcm16(n, seed=n)
            original = buf.copy()
            engine.process_buffer(buf, EffectKind.NONE)
            np.testing.assert_array_equal(buf, original)

    def test_empty_buffer_is_noop(self, engine: StreamEffectEngine) -> None:
        for kind in EffectKind:
            engine.process_buffer(np.zeros(0, dtype=np.int16), kind)
        assert engine.cursor == 0
        assert engine.phase == 0.0

    def test_every_effect_is_dispatched(self, engine: StreamEffectEngine) -> None:
        for kind in EffectKind:
            assert isinstance(kind.kernel, EffectKernel)
            buf = sine_pcm16(440.0, 0.02)
            with capture_logs() as logs:
                engine.process_buffer(buf, kind)
            assert not [e for e in logs if e["log_level"] == "error"], kind

    @pytest.mark.parametrize("kind", [EffectKind.FAST, EffectKind.SLOW])
    def test_speed_effects_pass_through(self, engine: StreamEffectEngine, kind: EffectKind) -> None:
        buf = noise_pcm16(CHUNK)
        original = buf.copy()
        engine.process_buffer(buf, kind)
        np.testing.assert_array_equal(buf, original)
        assert engine.cursor == 0

    def test_length_is_preserved(self, engine: StreamEffectEngine) -> None:
        for kind in EffectKind:
            buf = noise_pcm16(777)
            engine.process_buffer(buf, kind)
            assert len(buf) == 777

    def test_plain_list_is_processed_in_place(self, engine: StreamEffectEngine) -> None:
        buf = [1000, 1000, 1000]
        engine.process_buffer(buf, EffectKind.ROBOT)
        assert isinstance(buf, list)
        assert buf[0] == 500

    def test_array_buffer_is_processed_in_place(self, engine: StreamEffectEngine) -> None:
        buf = array.array("h", [1000, 1000, 1000])
        engine.process_buffer(buf, EffectKind.ROBOT)
        assert buf.typecode == "h"
        assert buf[0] == 500


# ---------------------------------------------------------------------------
# Pitch resampling
# ---------------------------------------------------------------------------


class TestPitchResample:
    def test_factor_one_is_identity(self, engine: StreamEffectEngine) -> None:
        buf = noise_pcm16(CHUNK)
        original = buf.copy()
        engine.process_buffer(buf, EffectKind.PITCH_UP, pitch_factor=1.0)
        np.testing.assert_array_equal(buf, original)

    def test_factor_two_decimates_and_zero_fills(self, engine: StreamEffectEngine) -> None:
        buf = np.arange(1, 11, dtype=np.int16)
        original = buf.copy()
        engine.process_buffer(buf, EffectKind.PITCH_UP, pitch_factor=2.0)
        for i in range(10):
            expected = original[2 * i] if 2 * i < 10 else 0
            assert buf[i] == expected

    def test_pitch_up_rounds_to_nearest_index(self, engine: StreamEffectEngine) -> None:
        buf = np.arange(10, dtype=np.int16)
        engine.process_buffer(buf, EffectKind.PITCH_UP)
        np.testing.assert_array_equal(buf, [0, 2, 3, 5, 6, 8, 9, 0, 0, 0])

    def test_giant_repeats_samples(self, engine: StreamEffectEngine) -> None:
        buf = np.arange(6, dtype=np.int16)
        engine.process_buffer(buf, EffectKind.GIANT)
        np.testing.assert_array_equal(buf, [0, 1, 1, 2, 2, 3])

    def test_helium_raises_dominant_frequency(self, engine: StreamEffectEngine) -> None:
        buf = sine_pcm16(200.0, 0.5)
        engine.process_buffer(buf, EffectKind.HELIUM)
        # Only the first N/1.8 samples carry signal; measure there.
        valid = buf[: int(len(buf) / 1.8)]
        assert dominant_frequency(valid) == pytest.approx(360.0, rel=0.05)

    def test_no_state_carried_between_buffers(self, engine: StreamEffectEngine) -> None:
        source = noise_pcm16(CHUNK)
        first = source.copy()
        second = source.copy()
        engine.process_buffer(first, EffectKind.PITCH_DOWN)
        engine.process_buffer(second, EffectKind.PITCH_DOWN)
        np.testing.assert_array_equal(first, second)
        assert engine.cursor == 0
        assert engine.phase == 0.0

    def test_custom_pitch_only_overrides_pitch_family(self, engine: StreamEffectEngine) -> None:
        buf = np.full(8, 1000, dtype=np.int16)
        engine.process_buffer(buf, EffectKind.ROBOT, pitch_factor=2.0)
        # Robot kernel ran (first sample at phase 0 is halved), no decimation.
        assert buf[0] == 500
        assert buf[-1] != 0

    def test_invalid_factor_passes_through(self, engine: StreamEffectEngine) -> None:
        buf = noise_pcm16(64)
        original = buf.copy()
        with capture_logs() as logs:
            engine.process_buffer(buf, EffectKind.PITCH_UP, pitch_factor=float("nan"))
        np.testing.assert_array_equal(buf, original)
        assert any(e["event"] == "stream_kernel_failed" for e in logs)


# ---------------------------------------------------------------------------
# Robot ring modulation
# ---------------------------------------------------------------------------


class TestRingModulate:
    def test_first_sample_uses_half_gain(self, engine: StreamEffectEngine) -> None:
        buf = np.array([1000, -1000], dtype=np.int16)
        engine.process_buffer(buf, EffectKind.ROBOT)
        assert buf[0] == 500

    def test_phase_advances_by_buffer_length(self, engine: StreamEffectEngine) -> None:
        engine.process_buffer(noise_pcm16(CHUNK), EffectKind.ROBOT)
        phase_1 = engine.phase
        assert phase_1 == pytest.approx(math.fmod(CHUNK * _ROBOT_STEP, 2 * math.pi))

        engine.process_buffer(noise_pcm16(CHUNK), EffectKind.ROBOT)
        expected = math.fmod(phase_1 + CHUNK * _ROBOT_STEP, 2 * math.pi)
        assert engine.phase == pytest.approx(expected)

    def test_phase_stays_normalized(self, engine: StreamEffectEngine) -> None:
        # 30Hz at 48kHz wraps every 1600 samples.
        for _ in range(50):
            engine.process_buffer(noise_pcm16(1234), EffectKind.ROBOT)
            assert 0.0 <= engine.phase < 2 * math.pi

    def test_chunked_matches_single_pass(self) -> None:
        signal = sine_pcm16(300.0, 0.25)
        whole = signal.copy()
        StreamEffectEngine(SAMPLE_RATE).process_buffer(whole, EffectKind.ROBOT)

        chunked_engine = StreamEffectEngine(SAMPLE_RATE)
        parts = chunks(signal, CHUNK)
        for part in parts:
            chunked_engine.process_buffer(part, EffectKind.ROBOT)
        # No seam discontinuity: at most a 1 LSB rounding difference.
        np.testing.assert_allclose(np.concatenate(parts), whole, atol=1)

    def test_gain_envelope_follows_30hz(self, engine: StreamEffectEngine) -> None:
        buf = np.full(SAMPLE_RATE // 30, 20000, dtype=np.int16)
        engine.process_buffer(buf, EffectKind.ROBOT)
        # Peak at a quarter period (sin = 1), trough at three quarters (sin = -1).
        quarter = len(buf) // 4
        assert buf[quarter] == 20000
        assert buf[3 * quarter] == 0


# ---------------------------------------------------------------------------
# Echo
# ---------------------------------------------------------------------------


class TestEcho:
    def test_impulse_response(self, engine: StreamEffectEngine) -> None:
        first, outputs = _impulse_response(engine)
        assert first == 10000
        assert len(outputs) == 7200
        assert outputs[-1] == 4000
        assert all(o == 0 for o in outputs[:-1])

    def test_echo_does_not_recirculate(self, engine: StreamEffectEngine) -> None:
        buf = np.zeros(2 * 7200 + 1, dtype=np.int16)
        buf[0] = 10000
        engine.process_buffer(buf, EffectKind.ECHO)
        assert buf[0] == 10000
        assert buf[7200] == 4000
        assert buf[14400] == 0
        assert np.count_nonzero(buf) == 2

    def test_chunked_matches_single_pass(self) -> None:
        signal = noise_pcm16(20000) // 4
        whole = signal.copy()
        single = StreamEffectEngine(SAMPLE_RATE)
        single.process_buffer(whole, EffectKind.ECHO)

        chunked_engine = StreamEffectEngine(SAMPLE_RATE)
        parts = chunks(signal, CHUNK)
        for part in parts:
            chunked_engine.process_buffer(part, EffectKind.ECHO)

        np.testing.assert_array_equal(np.concatenate(parts), whole)
        assert chunked_engine.cursor == single.cursor == 20000 % 7200

    def test_cursor_wraps_modulo_capacity(self, engine: StreamEffectEngine) -> None:
        total = 0
        for n in (100, 7100, 1, 7199, 5000, 14400):
            engine.process_buffer(np.zeros(n, dtype=np.int16), EffectKind.ECHO)
            total += n
            assert engine.cursor == total % engine.delay_capacity
            assert 0 <= engine.cursor < engine.delay_capacity

    def test_custom_decay(self) -> None:
        eng = StreamEffectEngine(SAMPLE_RATE, echo_decay=0.5)
        buf = np.zeros(7201, dtype=np.int16)
        buf[0] = 10000
        eng.process_buffer(buf, EffectKind.ECHO)
        assert buf[7200] == 5000

    def test_buffer_spanning_several_laps_matches_sample_by_sample(self) -> None:
        # 80-sample line; each buffer covers three laps plus a remainder.
        first = noise_pcm16(3 * 80 + 17, seed=7) // 2
        second = noise_pcm16(3 * 80 + 17, seed=8) // 2
        expected = np.concatenate([first, second])

        stepped = StreamEffectEngine(8000, echo_delay_s=0.01)
        assert stepped.delay_capacity == 80
        for i in range(len(expected)):
            stepped.process_buffer(expected[i : i + 1], EffectKind.ECHO)

        one_shot = StreamEffectEngine(8000, echo_delay_s=0.01)
        one_shot.process_buffer(first, EffectKind.ECHO)
        one_shot.process_buffer(second, EffectKind.ECHO)

        np.testing.assert_array_equal(np.concatenate([first, second]), expected)
        assert stepped.cursor == one_shot.cursor == len(expected) % 80


# ---------------------------------------------------------------------------
# Saturation
# ---------------------------------------------------------------------------


class TestSaturation:
    @pytest.mark.parametrize("value", [32767, -32767, -32768])
    @pytest.mark.parametrize("kind", list(EffectKind))
    def test_full_scale_never_leaves_int16(
        self, engine: StreamEffectEngine, kind: EffectKind, value: int
    ) -> None:
        for _ in range(3):
            buf = np.full(6000, value, dtype=np.int16)
            engine.process_buffer(buf, kind)
            wide = buf.astype(np.int64)
            assert wide.min() >= -32768
            assert wide.max() <= 32767

    def test_echo_clamps_instead_of_wrapping(self, engine: StreamEffectEngine) -> None:
        buf = np.full(7200 * 2, 32767, dtype=np.int16)
        engine.process_buffer(buf, EffectKind.ECHO)
        assert buf[-1] == 32767

        neg = np.full(7200 * 2, -32768, dtype=np.int16)
        engine.process_buffer(neg, EffectKind.ECHO)
        assert neg[-1] == -32768


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------


class TestReset:
    def test_reset_zeroes_state(self, engine: StreamEffectEngine) -> None:
        engine.process_buffer(noise_pcm16(5000), EffectKind.ECHO)
        engine.process_buffer(noise_pcm16(5000), EffectKind.ROBOT)
        assert engine.cursor != 0
        assert engine.phase != 0.0

        engine.reset()
        assert engine.cursor == 0
        assert engine.phase == 0.0
        assert engine.delay_capacity == 7200

    def test_reset_behaves_like_fresh_engine(self, engine: StreamEffectEngine) -> None:
        engine.process_buffer(noise_pcm16(9000), EffectKind.ECHO)
        engine.process_buffer(noise_pcm16(777), EffectKind.ROBOT)
        engine.reset()

        first, outputs = _impulse_response(engine)
        assert first == 10000
        assert outputs[-1] == 4000
        assert all(o == 0 for o in outputs[:-1])

        engine.reset()
        fresh = StreamEffectEngine(SAMPLE_RATE)
        a = sine_pcm16(300.0, 0.1)
        b = a.copy()
        engine.process_buffer(a, EffectKind.ROBOT)
        fresh.process_buffer(b, EffectKind.ROBOT)
        np.testing.assert_array_equal(a, b)
        assert engine.phase == fresh.phase


# ---------------------------------------------------------------------------
# Failure recovery
# ---------------------------------------------------------------------------


class TestFailureRecovery:
    def test_kernel_exception_leaves_buffer_and_state(
        self, engine: StreamEffectEngine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def boom(samples: np.ndarray) -> None:
            raise RuntimeError("kernel exploded")

        monkeypatch.setattr(engine, "_echo", boom)
        buf = noise_pcm16(CHUNK)
        original = buf.copy()

        with capture_logs() as logs:
            engine.process_buffer(buf, EffectKind.ECHO)

        np.testing.assert_array_equal(buf, original)
        assert engine.cursor == 0
        failures = [e for e in logs if e["event"] == "stream_kernel_failed"]
        assert len(failures) == 1
        assert failures[0]["log_level"] == "error"
        assert failures[0]["effect"] == "echo"
        assert failures[0]["samples"] == CHUNK

    def test_read_only_buffer_does_not_advance_state(self, engine: StreamEffectEngine) -> None:
        buf = noise_pcm16(CHUNK)
        original = buf.copy()
        buf.setflags(write=False)

        engine.process_buffer(buf, EffectKind.ECHO)
        engine.process_buffer(buf, EffectKind.ROBOT)

        np.testing.assert_array_equal(buf, original)
        assert engine.cursor == 0
        assert engine.phase == 0.0

    def test_wrong_dtype_passes_through(self, engine: StreamEffectEngine) -> None:
        buf = np.arange(100, dtype=np.int32)
        original = buf.copy()
        with capture_logs() as logs:
            engine.process_buffer(buf, EffectKind.ROBOT)
        np.testing.assert_array_equal(buf, original)
        assert any(e["event"] == "stream_kernel_failed" for e in logs)


# ---------------------------------------------------------------------------
# Byte buffers and snapshots
# ---------------------------------------------------------------------------


class TestProcessBytes:
    def test_processes_pcm_bytes_in_place(self, engine: StreamEffectEngine) -> None:
        data = bytearray(encode(np.array([1000, 2000, 3000], dtype=np.int16)))
        engine.process_bytes(data, EffectKind.ROBOT)
        assert len(data) == 6
        assert decode(data)[0] == 500

    def test_odd_trailing_byte_is_untouched(self, engine: StreamEffectEngine) -> None:
        data = bytearray(encode(np.array([1000, 2000], dtype=np.int16)) + b"\x7f")
        engine.process_bytes(data, EffectKind.ROBOT)
        assert len(data) == 5
        assert data[-1] == 0x7F

    def test_none_is_byte_identical(self, engine: StreamEffectEngine) -> None:
        data = bytearray(encode(noise_pcm16(CHUNK)))
        original = bytes(data)
        engine.process_bytes(data, EffectKind.NONE)
        assert bytes(data) == original

    @pytest.mark.parametrize("wrap", [bytes, lambda b: memoryview(bytearray(b))])
    @pytest.mark.parametrize("effect", [EffectKind.ECHO, EffectKind.ROBOT])
    def test_non_bytearray_target_leaves_state(
        self, engine: StreamEffectEngine, wrap: object, effect: EffectKind
    ) -> None:
        original = encode(noise_pcm16(16))
        data = wrap(original)  # type: ignore[operator]

        with capture_logs() as logs:
            engine.process_bytes(data, effect)

        assert bytes(data) == original
        assert engine.cursor == 0
        assert engine.phase == 0.0
        assert any(e["event"] == "stream_conversion_failed" for e in logs)

    def test_failed_write_back_does_not_commit(
        self, engine: StreamEffectEngine, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def reject(samples: np.ndarray, buffer: bytearray) -> None:
            raise ConversionError("target rejected")

        monkeypatch.setattr(codec, "encode_into", reject)
        data = bytearray(encode(noise_pcm16(CHUNK)))
        original = bytes(data)

        with capture_logs() as logs:
            engine.process_bytes(data, EffectKind.ECHO)
            engine.process_bytes(data, EffectKind.ROBOT)

        assert bytes(data) == original
        assert engine.cursor == 0
        assert engine.phase == 0.0
        failures = [e for e in logs if e["event"] == "stream_conversion_failed"]
        assert len(failures) == 2

    def test_echo_across_byte_buffers(self, engine: StreamEffectEngine) -> None:
        impulse = bytearray(encode(np.array([10000], dtype=np.int16)))
        engine.process_bytes(impulse, EffectKind.ECHO)
        silence = bytearray(7200 * 2)
        engine.process_bytes(silence, EffectKind.ECHO)
        tail = bytearray(2)
        engine.process_bytes(tail, EffectKind.ECHO)
        # The line was written at position 0 before the cursor moved to 1,
        # so the echo lands on the last sample of the silence.
        echoed = decode(silence)
        assert echoed[-1] == 4000
        assert np.count_nonzero(echoed) == 1
        assert decode(tail)[0] == 0
        assert engine.cursor == 2


class TestProcessSnapshot:
    def test_disabled_snapshot_is_noop(self, engine: StreamEffectEngine) -> None:
        buf = noise_pcm16(CHUNK)
        original = buf.copy()
        snapshot = EffectSnapshot(enabled=False, effect=EffectKind.ECHO, custom_pitch=1.0)
        engine.process_snapshot(buf, snapshot)
        np.testing.assert_array_equal(buf, original)

    def test_custom_pitch_applies_when_requested(self, engine: StreamEffectEngine) -> None:
        snapshot = EffectSnapshot(enabled=True, effect=EffectKind.PITCH_UP, custom_pitch=2.0)

        with_custom = np.arange(10, dtype=np.int16)
        engine.process_snapshot(with_custom, snapshot, use_custom_pitch=True)
        np.testing.assert_array_equal(with_custom, [0, 2, 4, 6, 8, 0, 0, 0, 0, 0])

        preset = np.arange(10, dtype=np.int16)
        engine.process_snapshot(preset, snapshot)
        np.testing.assert_array_equal(preset, [0, 2, 3, 5, 6, 8, 9, 0, 0, 0])

    def test_bytearray_snapshot(self, engine: StreamEffectEngine) -> None:
        data = bytearray(encode(np.array([1000, 1000], dtype=np.int16)))
        snapshot = EffectSnapshot(enabled=True, effect=EffectKind.ROBOT, custom_pitch=1.0)
        engine.process_snapshot(data, snapshot)
        assert decode(data)[0] == 500

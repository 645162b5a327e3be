"""Shared fixtures for all tests."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

# Ensure repo root is on sys.path so tests can import the `voxfx` package
# when running pytest from the repository root without an editable install.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from voxfx.codec import encode  # noqa: E402
from voxfx.config.settings import get_settings  # noqa: E402
from voxfx.effects import BatchEffectApplier, StreamEffectEngine  # noqa: E402
from voxfx.logging import configure_logging  # noqa: E402
from tests.helpers import SAMPLE_RATE, sine_pcm16  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Rebind the voxfx handler to the current stderr after each test."""
    yield
    configure_logging(log_format="console", level="INFO", force=True)


@pytest.fixture
def engine() -> StreamEffectEngine:
    """Fresh 48kHz streaming engine with default tuning."""
    return StreamEffectEngine(sample_rate=SAMPLE_RATE)


@pytest.fixture
def applier() -> BatchEffectApplier:
    """48kHz batch applier with default tuning."""
    return BatchEffectApplier(sample_rate=SAMPLE_RATE)


@pytest.fixture
def voice_samples() -> np.ndarray:
    """0.5s of a 220Hz tone at half scale, int16."""
    return sine_pcm16(220.0, 0.5)


@pytest.fixture
def voice_pcm_file(tmp_path: Path, voice_samples: np.ndarray) -> Path:
    """Raw PCM16 little-endian file with the voice_samples tone."""
    path = tmp_path / "voice.pcm"
    path.write_bytes(encode(voice_samples))
    return path

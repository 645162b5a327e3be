"""EffectSettings — the user's effect selection, read by the engine per buffer.

The selection (enabled flag, effect kind, custom pitch) is owned and
persisted by whatever settings UI/store the host provides. voxfx only sees
it through the narrow ``KeyValueStore`` protocol injected at construction,
so there is no process-wide singleton.

Consistency model: each field is read and written independently
(last-writer-wins per field). ``snapshot()`` reads the three fields one
after another, so a reader racing a writer that updates several fields may
observe a mix of old and new values. The processing loop samples one
snapshot per buffer and runs that buffer to completion against it.
"""

from __future__ import annotations

import math
import threading
from typing import Any, Protocol

from voxfx._audio_constants import CUSTOM_PITCH_DEFAULT, CUSTOM_PITCH_MAX, CUSTOM_PITCH_MIN
from voxfx._types import EffectKind, EffectSnapshot
from voxfx.exceptions import ConfigReadFailure
from voxfx.logging import get_logger

logger = get_logger("config.effect_settings")

# Storage keys (shared with whatever external store persists them).
KEY_ENABLED = "voice_effect_enabled"
KEY_EFFECT_TYPE = "voice_effect_type"
KEY_CUSTOM_PITCH = "voice_effect_pitch"


class KeyValueStore(Protocol):
    """Minimal key-value store the settings accessor reads and writes."""

    def get(self, key: str, default: Any) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class InMemoryStore:
    """Thread-safe in-process ``KeyValueStore``.

    The lock only makes individual get/set calls atomic; it provides no
    cross-key transactions.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value


def clamp_pitch(pitch: float) -> float:
    """Clamp a custom pitch factor into [0.5, 2.0] (NaN reads as 1.0)."""
    value = float(pitch)
    if math.isnan(value):
        return CUSTOM_PITCH_DEFAULT
    return min(max(value, CUSTOM_PITCH_MIN), CUSTOM_PITCH_MAX)


class EffectSettings:
    """Read/write accessor for the effect selection.

    Args:
        store: Backing key-value store. Defaults to a fresh ``InMemoryStore``.
    """

    def __init__(self, store: KeyValueStore | None = None) -> None:
        self._store: KeyValueStore = store if store is not None else InMemoryStore()

    def _read(self, key: str, default: Any) -> Any:
        try:
            return self._store.get(key, default)
        except Exception as exc:
            raise ConfigReadFailure(key, str(exc)) from exc

    # --- Read ---

    def is_enabled(self) -> bool:
        """True if voice effects are switched on."""
        return bool(self._read(KEY_ENABLED, False))

    def current_effect(self) -> EffectKind:
        """Selected effect; unknown or malformed ordinals read as NONE."""
        raw = self._read(KEY_EFFECT_TYPE, EffectKind.NONE.ordinal)
        try:
            return EffectKind.from_ordinal(int(raw))
        except (TypeError, ValueError):
            return EffectKind.NONE

    def custom_pitch(self) -> float:
        """Custom pitch factor, clamped to [0.5, 2.0]."""
        raw = self._read(KEY_CUSTOM_PITCH, CUSTOM_PITCH_DEFAULT)
        try:
            return clamp_pitch(raw)
        except (TypeError, ValueError):
            return CUSTOM_PITCH_DEFAULT

    def snapshot(self) -> EffectSnapshot:
        """Sample all fields for one buffer (not atomic across fields).

        Raises:
            ConfigReadFailure: If the store cannot be read.
        """
        return EffectSnapshot(
            enabled=self.is_enabled(),
            effect=self.current_effect(),
            custom_pitch=self.custom_pitch(),
        )

    # --- Write ---

    def set_enabled(self, enabled: bool) -> None:
        self._store.set(KEY_ENABLED, bool(enabled))
        logger.info("effects_enabled" if enabled else "effects_disabled")

    def set_current_effect(self, effect: EffectKind) -> None:
        self._store.set(KEY_EFFECT_TYPE, effect.ordinal)
        logger.info("effect_changed", effect=effect.name.lower(), display_name=effect.display_name)

    def set_custom_pitch(self, pitch: float) -> None:
        clamped = clamp_pitch(pitch)
        self._store.set(KEY_CUSTOM_PITCH, clamped)
        logger.debug("custom_pitch_changed", requested=pitch, stored=clamped)

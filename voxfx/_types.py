"""Core types for voxfx.

This module defines the effect taxonomy and the settings snapshot shared by
the streaming engine, the batch applier, and the settings accessor.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EffectKernel(Enum):
    """DSP kernel family that implements an effect.

    - NONE: no processing at all
    - PITCH: resampling pitch shift (pitch and tempo change together)
    - ROBOT: 30 Hz ring modulation
    - ECHO: single-tap delay line
    - PASSTHROUGH: no real-time kernel; streaming leaves audio untouched
    """

    NONE = "none"
    PITCH = "pitch"
    ROBOT = "robot"
    ECHO = "echo"
    PASSTHROUGH = "passthrough"


class EffectKind(Enum):
    """Voice effect selectable by the user.

    Member order is the persisted ordinal order and must not change.
    Each member carries its display name, pitch factor, speed factor and
    the kernel that implements it.
    """

    NONE = ("Normal Voice", 1.0, 1.0, EffectKernel.NONE)
    PITCH_UP = ("Chipmunk", 1.5, 1.0, EffectKernel.PITCH)
    PITCH_DOWN = ("Deep Voice", 0.7, 1.0, EffectKernel.PITCH)
    ROBOT = ("Robot", 1.0, 1.0, EffectKernel.ROBOT)
    ECHO = ("Echo", 1.0, 1.0, EffectKernel.ECHO)
    FAST = ("Fast", 1.0, 1.3, EffectKernel.PASSTHROUGH)
    SLOW = ("Slow", 1.0, 0.8, EffectKernel.PASSTHROUGH)
    HELIUM = ("Helium", 1.8, 1.0, EffectKernel.PITCH)
    GIANT = ("Giant", 0.5, 1.0, EffectKernel.PITCH)

    def __init__(
        self,
        display_name: str,
        pitch_factor: float,
        speed_factor: float,
        kernel: EffectKernel,
    ) -> None:
        self.display_name = display_name
        self.pitch_factor = pitch_factor
        self.speed_factor = speed_factor
        self.kernel = kernel

    @property
    def ordinal(self) -> int:
        """Position in declaration order (persisted by the settings store)."""
        return _ORDER.index(self)

    @property
    def is_realtime(self) -> bool:
        """True if the streaming engine has a kernel for this effect."""
        return self.kernel not in (EffectKernel.NONE, EffectKernel.PASSTHROUGH)

    @classmethod
    def from_ordinal(cls, ordinal: int) -> EffectKind:
        """Return the effect at ``ordinal``, or NONE when out of range."""
        if 0 <= ordinal < len(_ORDER):
            return _ORDER[ordinal]
        return cls.NONE

    @classmethod
    def parse(cls, name: str) -> EffectKind:
        """Look up an effect by member name (case-insensitive, '-' allowed).

        Raises:
            ValueError: If the name does not match any effect.
        """
        key = name.strip().upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            valid = ", ".join(m.name.lower() for m in cls)
            msg = f"Unknown effect {name!r}. Valid effects: {valid}"
            raise ValueError(msg) from None


_ORDER: tuple[EffectKind, ...] = tuple(EffectKind)


@dataclass(frozen=True, slots=True)
class EffectSnapshot:
    """Point-in-time view of the effect settings, sampled once per buffer."""

    enabled: bool
    effect: EffectKind
    custom_pitch: float

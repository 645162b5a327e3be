"""voxfx CLI.

Registers all commands on the main group.
"""

from voxfx.cli.apply import apply
from voxfx.cli.effects import effects
from voxfx.cli.main import cli
from voxfx.cli.stream import stream

__all__ = [
    "apply",
    "cli",
    "effects",
    "stream",
]

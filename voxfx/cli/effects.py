"""`voxfx effects` command — lists the available effects."""

from __future__ import annotations

import click

from voxfx._types import EffectKind
from voxfx.cli.main import cli


@cli.command()
def effects() -> None:
    """List available effects and their parameters."""
    header = f"{'NAME':<12} {'DISPLAY NAME':<14} {'PITCH':>6} {'SPEED':>6}  REALTIME"
    click.echo(header)
    for kind in EffectKind:
        realtime = "yes" if kind.is_realtime else "no"
        click.echo(
            f"{kind.name.lower():<12} {kind.display_name:<14} "
            f"{kind.pitch_factor:>6.2f} {kind.speed_factor:>6.2f}  {realtime}"
        )

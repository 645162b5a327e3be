"""`voxfx apply` command — offline effect on a raw PCM16 file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from voxfx._types import EffectKind
from voxfx.cli.main import EFFECT_CHOICES, cli, log_options
from voxfx.config.settings import get_settings
from voxfx.effects import create_batch_applier
from voxfx.logging import configure_logging


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_path", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--effect",
    "effect_name",
    type=click.Choice(EFFECT_CHOICES, case_sensitive=False),
    required=True,
    help="Effect to apply.",
)
@click.option(
    "--sample-rate",
    type=click.IntRange(8000, 192_000),
    default=None,
    help="Sample rate of the recording (default: VOXFX_SAMPLE_RATE or 48000).",
)
@log_options
def apply(
    input_path: Path,
    output_path: Path,
    effect_name: str,
    sample_rate: int | None,
    log_format: str,
    log_level: str,
) -> None:
    """Apply an effect to a raw PCM16 mono recording (offline quality).

    On failure the output is still written as a copy of the input and the
    command exits with status 1.
    """
    configure_logging(log_format=log_format, level=log_level, force=True)
    effect = EffectKind.parse(effect_name)
    applier = create_batch_applier(get_settings().engine, sample_rate=sample_rate)

    try:
        ok = applier.apply_effect_file(input_path, output_path, effect)
    except OSError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not ok:
        click.echo(
            f"Error: could not apply '{effect_name}'; wrote an unmodified copy to {output_path}",
            err=True,
        )
        sys.exit(1)

    click.echo(f"{effect.display_name}: {input_path} -> {output_path}")

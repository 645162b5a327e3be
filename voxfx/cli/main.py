"""Main CLI command group for voxfx."""

from __future__ import annotations

import click

import voxfx
from voxfx._types import EffectKind

EFFECT_CHOICES = [kind.name.lower() for kind in EffectKind]

LOG_OPTIONS = (
    click.option(
        "--log-format",
        type=click.Choice(["console", "json"]),
        default="console",
        show_default=True,
        help="Log format.",
    ),
    click.option(
        "--log-level",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
        default="WARNING",
        show_default=True,
        help="Log level.",
    ),
)


def log_options(func):  # type: ignore[no-untyped-def]
    """Attach the shared --log-format/--log-level options to a command."""
    for option in reversed(LOG_OPTIONS):
        func = option(func)
    return func


@click.group()
@click.version_option(version=voxfx.__version__, prog_name="voxfx")
def cli() -> None:
    """voxfx — real-time PCM16 voice effects."""

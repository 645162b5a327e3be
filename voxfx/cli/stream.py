"""`voxfx stream` command — replays a recording through the live engine."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from voxfx._types import EffectKind
from voxfx.cli.main import EFFECT_CHOICES, cli, log_options
from voxfx.config.effect_settings import EffectSettings
from voxfx.config.settings import get_settings
from voxfx.effects import create_stream_engine
from voxfx.logging import configure_logging, get_logger
from voxfx.session import EffectStream, FileAudioPort

logger = get_logger("cli.stream")


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
    "--chunk-ms",
    type=click.IntRange(1, 1000),
    default=None,
    help="Capture chunk duration (default: VOXFX_STREAM_CHUNK_MS or 20).",
)
@click.option(
    "--sample-rate",
    type=click.IntRange(8000, 192_000),
    default=None,
    help="Stream sample rate (default: VOXFX_SAMPLE_RATE or 48000).",
)
@click.option(
    "--pitch",
    type=float,
    default=None,
    help="Custom pitch factor (0.5-2.0) for pitch effects.",
)
@log_options
def stream(
    input_path: Path,
    output_path: Path,
    effect_name: str,
    chunk_ms: int | None,
    sample_rate: int | None,
    pitch: float | None,
    log_format: str,
    log_level: str,
) -> None:
    """Process a raw PCM16 mono recording chunk by chunk, as a live stream would."""
    configure_logging(log_format=log_format, level=log_level, force=True)
    settings = get_settings()
    rate = sample_rate or settings.engine.sample_rate
    stream_settings = settings.stream
    if chunk_ms is not None:
        stream_settings = stream_settings.model_copy(update={"chunk_ms": chunk_ms})
    chunk_bytes = stream_settings.chunk_bytes(rate)

    effect_settings = EffectSettings()
    effect_settings.set_enabled(True)
    effect_settings.set_current_effect(EffectKind.parse(effect_name))
    if pitch is not None:
        effect_settings.set_custom_pitch(pitch)

    engine = create_stream_engine(settings.engine, sample_rate=rate)
    port = FileAudioPort(input_path, output_path, chunk_bytes)
    effect_stream = EffectStream(
        engine,
        effect_settings,
        port,
        use_custom_pitch=pitch is not None or stream_settings.use_custom_pitch,
        stop_timeout_s=stream_settings.stop_timeout_s,
        stream_id=input_path.name,
    )

    try:
        with port:
            chunks = effect_stream.run()
    except OSError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    logger.info("stream_replay_finished", effect=effect_name, chunks=chunks, chunk_bytes=chunk_bytes)
    click.echo(f"{chunks} chunks ({port.bytes_written} bytes) -> {output_path}")

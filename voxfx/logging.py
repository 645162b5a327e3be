"""Structured logging for voxfx.

Uses structlog with stdlib logging as the backend. This is the diagnostic
sink of the engine: kernels emit events and never wait on the result.

Two formats:
- console: human-readable for development (default)
- json: structured, one event per line
"""

from __future__ import annotations

import logging
import os

import structlog

_configured = False

# Bound loggers keep a reference to this list, so reconfiguring mutates it
# in place instead of replacing it.
_processors: list[structlog.types.Processor] = []

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(
    log_format: str | None = None,
    level: str | None = None,
    *,
    force: bool = False,
) -> None:
    """Configure structured logging for the runtime.

    The first call wins; later calls are ignored unless ``force`` is set
    (the CLI uses it to apply ``--log-format``/``--log-level`` after modules
    have already requested loggers at import time).

    Args:
        log_format: "json" or "console". Default via VOXFX_LOG_FORMAT env or "console".
        level: Log level (DEBUG, INFO, WARNING, ERROR). Default via VOXFX_LOG_LEVEL env or "INFO".
        force: Reconfigure even if logging was already configured.
    """
    global _configured
    if _configured and not force:
        return

    resolved_format = log_format or os.environ.get("VOXFX_LOG_FORMAT", "console")
    resolved_level = (level or os.environ.get("VOXFX_LOG_LEVEL", "INFO")).upper()
    if resolved_level not in _LEVELS:
        resolved_level = "INFO"

    shared_processors: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if resolved_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    _processors[:] = [
        *shared_processors,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=_processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stderr keeps stdout free for CLI output.
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    voxfx_logger = logging.getLogger("voxfx")
    voxfx_logger.handlers.clear()
    voxfx_logger.addHandler(handler)
    voxfx_logger.setLevel(getattr(logging, resolved_level))
    voxfx_logger.propagate = False

    _configured = True


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Return a logger with component context.

    Args:
        component: Component name (e.g., "effects.stream", "session.stream").

    Returns:
        BoundLogger named ``voxfx.<component>`` with the component field bound.
    """
    configure_logging()
    return structlog.get_logger(f"voxfx.{component}").bind(component=component)  # type: ignore[no-any-return]

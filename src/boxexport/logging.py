"""
Structured logging for boxexport using structlog.

Log records are diagnostics for whoever runs the export; the live status
line and progress percentages go through :mod:`boxexport.ui` instead.
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_SHARED_PROCESSORS,
    )


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """
    Route structlog through the standard logging module.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR
        json_output: Render stderr records as JSON instead of the console format
        log_file: Also append records at or above ``level``, as JSON, to this file
    """
    level = level.upper()
    if level not in LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    structlog.configure(
        processors=_SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_output:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_formatter(console_renderer))
    handlers: List[logging.Handler] = [stderr_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        handlers.append(file_handler)

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level),
        handlers=handlers,
        force=True,
    )


@contextmanager
def export_context(machine: str, provider: str):
    """Tag every record emitted inside the block with the machine being exported."""
    structlog.contextvars.bind_contextvars(machine=machine, provider=provider)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("machine", "provider")


@contextmanager
def log_stage(logger: structlog.stdlib.BoundLogger, stage: str, **kwargs):
    """
    Log ``<stage>.started`` / ``.completed`` / ``.failed`` with the elapsed time.

    Usage:
        with log_stage(log, "extract") as slog:
            slog.debug("ovf_export", target=...)
    """
    slog = logger.bind(stage=stage, **kwargs)
    started = datetime.now()
    slog.debug(f"{stage}.started")

    def elapsed_ms() -> float:
        return round((datetime.now() - started).total_seconds() * 1000, 2)

    try:
        yield slog
    except Exception as e:
        slog.error(
            f"{stage}.failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=elapsed_ms(),
        )
        raise
    slog.debug(f"{stage}.completed", duration_ms=elapsed_ms())

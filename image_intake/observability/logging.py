"""Structured logging with structlog."""

import logging
import sys
from typing import TextIO

import structlog


def setup_logging(
    json_format: bool = True, log_level: str = "INFO", stream: TextIO | None = None
) -> None:
    """
    Configure structlog for the API and the CLI.

    Args:
        json_format: JSON lines if True, colored console output otherwise.
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR).
        stream: Where to write; stdout by default. The CLI passes stderr so
            its own output stays parseable.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    stream = stream or sys.stdout

    renderer = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=stream.isatty())
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        # the CLI reconfigures per run, so loggers must pick up the new stream
        cache_logger_on_first_use=False,
    )

    # Pillow logs through stdlib logging and is chatty at DEBUG
    logging.basicConfig(format="%(message)s", stream=stream, level=level)
    logging.getLogger("PIL").setLevel(max(level, logging.INFO))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structured logger, optionally named."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()

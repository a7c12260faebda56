"""Structlog configuration for gasingest."""

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

from gasingest.config import IngestSettings, LogFormat


def configure_logging(settings: IngestSettings | None = None) -> None:
    """
    Configure structlog processors and output format.

    Args:
        settings: IngestSettings instance, uses defaults if None
    """
    if settings is None:
        settings = IngestSettings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == LogFormat.JSON:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.extend([
            structlog.dev.set_exc_info,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """
    Get a structlog logger, bound to name when given.
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger


@contextmanager
def run_context(job: str, **values: Any) -> Iterator[str]:
    """
    Bind job name and a fresh run_id to every event logged inside the block.

    Yields:
        The run_id, so callers can report it
    """
    run_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(job=job, run_id=run_id, **values):
        yield run_id

"""Structured logging for gasingest."""

from gasingest.logging.setup import configure_logging, get_logger, run_context

__all__ = ["configure_logging", "get_logger", "run_context"]

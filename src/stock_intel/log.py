"""Logging configuration for applications embedding the engine."""

import logging
import os


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging from LOG_LEVEL (default: INFO).

    Library modules only create loggers; the host application calls this
    once at startup if it has no logging setup of its own.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))

"""Logging configuration for the Orders domain."""

import logging
import os

import structlog

logger = structlog.get_logger(__name__)

# Suppress noisy library loggers
logging.getLogger("protean").setLevel(logging.WARNING)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog for the running process.

    Production (``PROTEAN_ENV=production``) renders JSON lines for log
    shippers; every other environment gets the human-friendly console view.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if os.environ.get("PROTEAN_ENV") == "production"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

# ABOUTME: structlog configuration shared by the CLI and the web server.
# ABOUTME: Filters events below the configured level and renders them to the console.

import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with a level filter taken from settings."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )

"""Structured logging configuration with structlog."""

import logging
import os
import sys

import structlog

# Chatty per-request loggers of the HTTP and browser stacks
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "asyncio")


def configure_logging(log_level: str = "INFO", environment: str | None = None) -> None:
    """
    Configure structured logging for pipeline runs.

    Console rendering in development, one JSON object per line in production.
    Library loggers listed in NOISY_LOGGERS stay at WARNING unless DEBUG is
    requested, so storage calls and model requests do not flood the run log.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment (development or production). If None, read from ENVIRONMENT.
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    library_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    if environment is None:
        environment = os.getenv("ENVIRONMENT", "development")

    renderer = (
        structlog.processors.JSONRenderer()
        if environment.lower() == "production"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def bind_run_context(**context: object) -> None:
    """Attach run-wide fields (mode, run id) to every subsequent log event."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)

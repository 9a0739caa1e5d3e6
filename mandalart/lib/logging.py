"""
Structured logging configuration for AI Mandalart.

Configures structlog to sit on top of stdlib logging, so modules keep using
`logging.getLogger(__name__)` and still get structured output: JSON in
production, a readable console renderer in development.

Usage:
    from mandalart.lib.logging import setup_logging

    setup_logging()  # once, at application startup
"""

import logging
import os
import sys

import structlog


def setup_logging(level: str | None = None, dev_mode: bool | None = None) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name; defaults to the LOG_LEVEL env var, then INFO.
        dev_mode: Console output instead of JSON; defaults to MANDALART_DEV_MODE=1.
    """
    if dev_mode is None:
        dev_mode = os.environ.get("MANDALART_DEV_MODE") == "1"
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if dev_mode:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Records from plain logging.getLogger() go through the same pipeline
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for noisy_logger in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


def bind_session(session_id: str) -> None:
    """Attach the wizard session id to every log line of the current context."""
    structlog.contextvars.bind_contextvars(session_id=session_id)


def clear_log_context() -> None:
    """Drop all context variables bound for the current request."""
    structlog.contextvars.clear_contextvars()

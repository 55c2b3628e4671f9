"""
Logging setup for Shree's worker and CLI processes.

The Celery worker calls setup_logging() from its `setup_logging` signal,
so Celery does not install its own handlers; main.py calls it before
running a command. After that, structlog loggers (agents, tools, lib)
and stdlib loggers (services) share one handler: JSON lines in
production, the colored console renderer when SHREE_DEV_MODE=1.

User ids never appear in log lines; pass `user_hash=hash_uid(user_id)`.

Usage:
    from src.lib.logging import hash_uid, setup_logging

    setup_logging()
    logger.info("reminder_sent", user_hash=hash_uid(user_id))
"""

import hashlib
import logging
import os
import sys

import structlog

_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "celery", "kombu", "urllib3")


def setup_logging() -> None:
    """
    Route structlog and stdlib records through one stderr handler.

    Safe to call more than once; each call replaces the root handlers.
    Level comes from SHREE_LOG_LEVEL (LOG_LEVEL also honored), default INFO.
    """
    dev_mode = os.environ.get("SHREE_DEV_MODE") == "1"
    log_level = os.environ.get("SHREE_LOG_LEVEL", os.environ.get("LOG_LEVEL", "INFO")).upper()

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

    for noisy_logger in _NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


def hash_uid(user_id: int | str) -> str:
    """Return a short, stable hash of a user id for log lines."""
    return hashlib.sha256(str(user_id).encode()).hexdigest()[:12]

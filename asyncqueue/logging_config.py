"""Structured logging for asyncqueue.

Every queue logger is a structlog wrapper around a stdlib ``logging`` logger
under the ``asyncqueue`` namespace. Until ``setup_logging`` runs, output
follows whatever the host application configured for ``logging`` (nothing
below WARNING by default). ``setup_logging`` is what the CLI calls to get
rendered output on stdout.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from asyncqueue.config import Settings, get_settings

LOGGER_NAMESPACE = "asyncqueue"


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Render asyncqueue events to stdout at the configured level."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.asyncqueue_log_level.upper(), logging.INFO)

    renderers: list = (
        [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        if settings.is_production
        else [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderers,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Only the package logger gets a handler; the host's root logger is untouched.
    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)
    package_logger.propagate = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger that writes through ``logging.getLogger(name)``."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Application modules log through the standard library
(``logging.getLogger(__name__)`` with %-style arguments). setup_logging()
installs a structlog ProcessorFormatter on the root logger, so those
records go through the same processor chain as native structlog loggers
and pick up any context bound with bind_context(), such as the
``teacher_id`` of the request being served.

Output is colored console text in development and JSON lines otherwise.

Example:
    >>> import logging
    >>> from coursepulse.utils.logging import bind_context, setup_logging
    >>> from coursepulse.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> bind_context(teacher_id="t-1")
    >>> logging.getLogger("coursepulse.reports").info("Report computed: units=%d", 42)
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from coursepulse.core.config.settings import Settings

HANDLER_NAME = "coursepulse"

QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "httpx", "asyncio")


def _renderer(settings: "Settings") -> list[Processor]:
    if settings.is_development or settings.debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def setup_logging(settings: "Settings") -> None:
    """Configure structlog and route standard library logging through it.

    Calling it again replaces the handler installed by the previous call.

    Args:
        settings: Application settings providing log_level, environment and debug.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    # Shared by structlog loggers and foreign (stdlib) records.
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderer(settings),
        ],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("coursepulse").setLevel(log_level)


def reset_logging() -> None:
    """Remove the handler installed by setup_logging()."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    structlog.reset_defaults()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger that accepts key-value context.

    Args:
        name: Usually __name__ of the calling module.
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind key-value pairs to every log line emitted in this context.

    The reports API binds ``teacher_id`` here for the duration of a
    request.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()

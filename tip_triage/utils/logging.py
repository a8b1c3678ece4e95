"""Structured logging utilities using structlog for request context and replay."""

import sys
import uuid
from typing import Any, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars
from structlog.processors import JSONRenderer

from tip_triage.config.settings import settings


def configure_structured_logging() -> None:
    """
    Configure structured logging with appropriate processors and renderers.

    Uses:
    - Console renderer when attached to a TTY with LOG_FORMAT=console
    - JSON renderer otherwise
    - Context variables for per-request correlation and tip ids
    """
    processors = [
        merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if sys.stderr.isatty() and settings.log_format.lower() == "console":
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level.upper()),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_structured_logger(
    name: str,
    component: Optional[str] = None,
    **additional_context: Any,
) -> structlog.BoundLogger:
    """
    Get a structured logger with bound context.

    Args:
        name: Logger name (typically module name)
        component: Optional component name to bind
        **additional_context: Additional context to bind

    Returns:
        Configured BoundLogger instance with context

    Example:
        >>> logger = get_structured_logger("pipeline", component="VerificationPipeline")
        >>> logger.info("verification_started", tip_id="tip-1")
    """
    logger = structlog.get_logger(name)
    if component:
        logger = logger.bind(component=component)
    if additional_context:
        logger = logger.bind(**additional_context)
    return logger


def get_correlation_id() -> str:
    """Generate a correlation ID for tracing a single verification request."""
    return str(uuid.uuid4())


def bind_request_context(**context: Any) -> None:
    """Bind values to every structured log line emitted by the current task."""
    bind_contextvars(**context)


def clear_request_context() -> None:
    """Drop all request-scoped context variables."""
    clear_contextvars()


configure_structured_logging()


__all__ = [
    "get_structured_logger",
    "get_correlation_id",
    "bind_request_context",
    "clear_request_context",
    "configure_structured_logging",
]

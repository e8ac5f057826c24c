"""Centralized logging configuration with structlog.

Provides structured JSON logging for long-running monitor processes and a
colored console renderer for local development.
"""

import logging
import sys
from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import Any

import structlog
from structlog.types import EventDict, Processor


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application-level context to all log entries.

    Args:
        logger: Logger instance
        method_name: Method name
        event_dict: Event dictionary

    Returns:
        Enhanced event dictionary
    """
    event_dict["app"] = "jobwatch"
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
) -> None:
    """Configure structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON format (production). If False, use console format (dev)

    Example:
        >>> setup_logging(log_level="INFO", json_logs=True)  # Production
        >>> setup_logging(log_level="DEBUG")  # Development
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    # asyncio logs every slow callback at DEBUG
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Headless monitors write to pipes; keep their console output plain
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger with context binding support

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("job_started", job_id="3f2a", job_type="Dataflow Refresh")
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def job_context(
    job_id: str, job_type: str
) -> AbstractContextManager[Mapping[str, Any]]:
    """Bind the job identity for log entries emitted while a job call runs.

    Every monitor task runs in its own contextvars copy, so concurrent status
    checks never see each other's binding.

    Example:
        >>> with job_context("3f2a", "Dataflow Refresh"):
        ...     logger.info("dataflow_refresh_started")  # Includes job_id
    """
    return structlog.contextvars.bound_contextvars(job_id=job_id, job_type=job_type)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables for all subsequent log entries in this context.

    Args:
        **kwargs: Context key-value pairs

    Example:
        >>> bind_context(session_id="abc123")
        >>> logger.info("job_started")  # Will include session_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Unbind context variables.

    Args:
        *keys: Context keys to remove
    """
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()

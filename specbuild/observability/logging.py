"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = False,
) -> None:
    """Configure structured logging for the build tool.

    Sets up structlog with timestamps, log levels and contextvars binding,
    rendered either as JSON lines or for a developer console.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: False).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # livereload and tornado log through the standard library
    logging.basicConfig(
        format="%(name)s: %(message)s",
        stream=output,
        level=level,
    )


def bind_task_context(task: str) -> None:
    """Bind the running task name to all subsequent log messages.

    Args:
        task: Name of the task being run.
    """
    structlog.contextvars.bind_contextvars(task=task)


def clear_task_context() -> None:
    """Remove the task name from log messages."""
    structlog.contextvars.unbind_contextvars("task")

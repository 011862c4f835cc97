"""Observability module for logging and metrics."""

from specbuild.observability.logging import (
    bind_task_context,
    clear_task_context,
    configure_logging,
)
from specbuild.observability.metrics import BuildMetrics


__all__ = [
    "BuildMetrics",
    "bind_task_context",
    "clear_task_context",
    "configure_logging",
]

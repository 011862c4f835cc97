"""Formatting and emission of render warnings."""

from collections.abc import Callable
from pathlib import Path

import click
import structlog

from specbuild.observability.metrics import BuildMetrics
from specbuild.renderer.models import RenderWarning, WarningHandler


logger = structlog.get_logger()


def format_warning(warning: RenderWarning, default_file: Path) -> str:
    """Format a warning as a single ``Warning: file:line:column: message`` line.

    The file falls back to ``default_file`` and is always resolved to an
    absolute path. The position segment is dropped when the line is
    unknown, and the column is dropped when only the line is known.

    Args:
        warning: Warning reported by the rendering engine.
        default_file: Source document to blame when the warning has no file.

    Returns:
        The formatted warning line.
    """
    file = Path(warning.file) if warning.file else default_file
    location = str(file.resolve())

    if warning.line is not None:
        location += f":{warning.line}"
        if warning.column is not None:
            location += f":{warning.column}"

    return f"Warning: {location}: {warning.message}"


def echo_warning(line: str) -> None:
    """Print a formatted warning line to stderr."""
    click.secho(line, fg="yellow", err=True)


def make_warning_handler(
    default_file: Path,
    emit: Callable[[str], None] = echo_warning,
    metrics: BuildMetrics | None = None,
) -> WarningHandler:
    """Build the warning handler handed to the rendering engine.

    Args:
        default_file: Source document to blame for file-less warnings.
        emit: Callable receiving each formatted line.
        metrics: Optional metrics instance.

    Returns:
        Handler that formats, counts and emits each warning.
    """
    build_metrics = metrics or BuildMetrics.get_instance()
    log = logger.bind(component="renderer")

    def handle(warning: RenderWarning) -> None:
        line = format_warning(warning, default_file)
        build_metrics.record_warning()
        log.debug("render_warning", file=warning.file, line=warning.line)
        emit(line)

    return handle

"""Domain exceptions for the build pipeline.

Every failure the pipeline raises derives from SpecBuildError so the CLI
can turn any of them into a non-zero exit without catching unrelated bugs.
"""

from pathlib import Path


class SpecBuildError(Exception):
    """Base exception for all pipeline errors."""


class CleanError(SpecBuildError):
    """Raised when one or more output entries could not be deleted.

    Deletion continues past individual failures, so the output root may be
    partially cleaned when this is raised.
    """

    def __init__(self, failed: list[tuple[Path, str]]) -> None:
        """Initialize the error with the entries that could not be removed.

        Args:
            failed: Pairs of (path, error message).
        """
        self.failed = failed
        paths = ", ".join(str(path) for path, _ in failed)
        super().__init__(f"Failed to delete {len(failed)} output entries: {paths}")


class RenderError(SpecBuildError):
    """Raised when the source document cannot be rendered.

    Covers unreadable sources as well as markup errors severe enough for
    the rendering engine to halt.
    """

    def __init__(
        self,
        message: str,
        source: Path | None = None,
        line: int | None = None,
    ) -> None:
        """Initialize the render error.

        Args:
            message: Human-readable error message.
            source: Source document that failed to render.
            line: Line of the offending markup, when known.
        """
        self.source = source
        self.line = line
        super().__init__(message)


class OutputWriteError(SpecBuildError):
    """Raised when the rendered document cannot be written."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize the write error.

        Args:
            path: Target output path.
            reason: Underlying OS error message.
        """
        self.path = path
        super().__init__(f"Failed to write {path}: {reason}")


class WatchError(SpecBuildError):
    """Raised when a filesystem subscription cannot be created."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize the watch error.

        Args:
            path: Directory that could not be watched.
            reason: Why the subscription failed.
        """
        self.path = path
        super().__init__(f"Cannot watch {path}: {reason}")


class ServerStartError(SpecBuildError):
    """Raised when the live-reload server fails to start listening."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        """Initialize the server start error.

        Args:
            host: Bind address.
            port: Bind port.
            reason: Underlying error message.
        """
        self.host = host
        self.port = port
        super().__init__(f"Cannot serve on http://{host}:{port}: {reason}")


class TaskGraphError(SpecBuildError):
    """Raised when a task graph is malformed or a task is unknown."""


class TaskFailedError(SpecBuildError):
    """Raised when a task invocation fails."""

    def __init__(self, task: str, reason: str) -> None:
        """Initialize the task failure.

        Args:
            task: Name of the failed task.
            reason: Failure summary.
        """
        self.task = task
        self.reason = reason
        super().__init__(f"Task '{task}' failed: {reason}")

"""Data models for rendering and building."""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class RenderWarning(BaseModel):
    """A non-fatal diagnostic reported by the rendering engine.

    Attributes:
        message: Diagnostic text.
        file: File the diagnostic refers to, when the engine knows it.
        line: 1-based line number, when known.
        column: 1-based column number, when known.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str
    file: str | None = None
    line: Annotated[int, Field(ge=0)] | None = None
    column: Annotated[int, Field(ge=0)] | None = None


WarningHandler = Callable[[RenderWarning], None]
VerboseLogger = Callable[[str], None]


@dataclass(frozen=True)
class RenderOptions:
    """Options passed to the rendering engine for one invocation.

    Attributes:
        verbose: Emit informational messages through ``log``.
        warning_handler: Receives every warning, in document order.
        external_references: Link references to external standards
            (PEPs and RFCs) automatically.
        log: Receives informational messages when verbose.
    """

    verbose: bool = True
    warning_handler: WarningHandler | None = None
    external_references: bool = False
    log: VerboseLogger | None = None


@dataclass(frozen=True)
class RenderedDocument:
    """The engine's output for one source document.

    Attributes:
        name: Output file name.
        content: Rendered HTML bytes.
        source: Source document it was rendered from.
    """

    name: str
    content: bytes
    source: Path

    def renamed(self, name: str) -> "RenderedDocument":
        """Return the same document under a different file name."""
        return RenderedDocument(name=name, content=self.content, source=self.source)


@dataclass(frozen=True)
class GeneratedFile:
    """Information about a generated file.

    Attributes:
        path: Relative path from output directory.
        absolute_path: Absolute path to file.
        bytes_written: Number of bytes written.
        sha256: SHA-256 checksum of content.
    """

    path: str
    absolute_path: str
    bytes_written: int
    sha256: str


@dataclass
class BuildResult:
    """Result of one build invocation.

    Attributes:
        build_id: Build identifier.
        success: Whether the output file was written.
        output: Generated file, on success.
        warnings: Warnings reported while rendering.
        error_summary: Error summary if failed.
        duration_ms: Build duration in milliseconds.
    """

    build_id: str
    success: bool
    output: GeneratedFile | None = None
    warnings: list[RenderWarning] = field(default_factory=list)
    error_summary: str | None = None
    duration_ms: float = 0.0

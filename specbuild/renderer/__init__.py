"""Markup rendering: engine adapter, warning formatting and output I/O."""

from specbuild.renderer.engine import DocumentRenderer, DocutilsRenderer
from specbuild.renderer.io import AtomicWriter
from specbuild.renderer.models import (
    BuildResult,
    GeneratedFile,
    RenderedDocument,
    RenderOptions,
    RenderWarning,
)
from specbuild.renderer.warnings import format_warning, make_warning_handler


__all__ = [
    "AtomicWriter",
    "BuildResult",
    "DocumentRenderer",
    "DocutilsRenderer",
    "GeneratedFile",
    "RenderOptions",
    "RenderWarning",
    "RenderedDocument",
    "format_warning",
    "make_warning_handler",
]

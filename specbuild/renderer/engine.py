"""Rendering engine adapter.

The markup-to-HTML transformation itself belongs to docutils. This module
only maps RenderOptions onto docutils settings and turns the system
messages docutils attaches to the document tree into RenderWarnings.
"""

import io
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog
from docutils import nodes
from docutils.core import publish_doctree, publish_from_doctree
from docutils.utils import SystemMessage

from specbuild.constants import (
    COMPONENT_RENDERER,
    DOCUTILS_ERROR,
    DOCUTILS_INFO,
    DOCUTILS_WARNING,
)
from specbuild.errors import RenderError
from specbuild.renderer.models import RenderedDocument, RenderOptions, RenderWarning


logger = structlog.get_logger()


@runtime_checkable
class DocumentRenderer(Protocol):
    """Protocol for markup rendering engines.

    Any engine that implements ``render`` with the matching signature can
    back the Builder.
    """

    def render(self, source_path: Path, options: RenderOptions) -> RenderedDocument:
        """Render a source document to HTML.

        Args:
            source_path: Markup source document.
            options: Verbosity, warning handler and reference lookup options.

        Returns:
            The rendered document.

        Raises:
            RenderError: If the document cannot be rendered.
        """
        ...


class DocutilsRenderer:
    """Renders reStructuredText to HTML5 with docutils.

    Errors (docutils level 3 and above) halt rendering and raise
    RenderError. Warnings are reported through the options' warning
    handler, informational messages through the verbose log.
    """

    writer_name = "html5"

    def __init__(self) -> None:
        """Initialize the docutils renderer."""
        self._log = logger.bind(component=COMPONENT_RENDERER)

    def render(self, source_path: Path, options: RenderOptions) -> RenderedDocument:
        """Render the source document.

        Args:
            source_path: reStructuredText source document.
            options: Render options.

        Returns:
            RenderedDocument holding the encoded HTML.

        Raises:
            RenderError: If the source is unreadable or contains errors.
        """
        try:
            text = source_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RenderError(
                f"Cannot read source {source_path}: {e}", source=source_path
            ) from e

        if options.verbose and options.log is not None:
            options.log(f"Rendering {source_path}")

        settings = self._settings(options)

        try:
            document = publish_doctree(
                source=text,
                source_path=str(source_path),
                settings_overrides=settings,
            )
            self._report_messages(document, options)
            output = publish_from_doctree(
                document,
                writer_name=self.writer_name,
                # Informational messages go to the log only, never into the HTML
                settings_overrides={**settings, "report_level": DOCUTILS_WARNING},
            )
        except SystemMessage as e:
            raise RenderError(str(e), source=source_path) from e

        if isinstance(output, str):
            output = output.encode("utf-8")

        self._log.debug(
            "document_rendered",
            source=str(source_path),
            bytes=len(output),
        )

        return RenderedDocument(name=source_path.name, content=output, source=source_path)

    def _settings(self, options: RenderOptions) -> dict[str, object]:
        """Map render options onto docutils settings overrides."""
        return {
            "report_level": DOCUTILS_INFO if options.verbose else DOCUTILS_WARNING,
            "halt_level": DOCUTILS_ERROR,
            # Messages are read back from the document tree instead
            "warning_stream": io.StringIO(),
            "pep_references": options.external_references,
            "rfc_references": options.external_references,
            "output_encoding": "utf-8",
            # Raise instead of calling sys.exit()
            "traceback": True,
            # Ignore docutils.conf files so output only depends on the source
            "_disable_config": True,
        }

    def _report_messages(self, document: nodes.document, options: RenderOptions) -> None:
        """Forward the system messages produced while reading the document.

        Parser messages sit in the tree, transform messages are held on the
        document until the writer places them. Both keep every level, so
        messages below the report level are skipped here.
        """
        report_level = DOCUTILS_INFO if options.verbose else DOCUTILS_WARNING
        detached = [m for m in document.transform_messages if m.parent is None]
        for message in [*document.findall(nodes.system_message), *detached]:
            level = message.get("level", DOCUTILS_WARNING)
            if level < report_level:
                continue

            text = _message_text(message)
            if level >= DOCUTILS_WARNING:
                if options.warning_handler is not None:
                    options.warning_handler(
                        RenderWarning(
                            message=text,
                            file=message.get("source"),
                            line=message.get("line"),
                        )
                    )
            elif options.verbose and options.log is not None:
                options.log(text)


def _message_text(message: nodes.system_message) -> str:
    """Extract the human-readable text of a system message."""
    for child in message.children:
        if isinstance(child, nodes.paragraph):
            return child.astext()
    return nodes.Element.astext(message)

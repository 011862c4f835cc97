"""Tests for the docutils rendering adapter."""

from pathlib import Path

import pytest

from specbuild.errors import RenderError
from specbuild.renderer.engine import DocumentRenderer, DocutilsRenderer
from specbuild.renderer.models import RenderOptions, RenderWarning


VALID_SOURCE = """\
Hello Spec
==========

Some *emphasised* text.
"""

SHORT_UNDERLINE_SOURCE = """\
A Rather Long Title
=====

Body text.
"""

BAD_DIRECTIVE_SOURCE = """\
Title
=====

.. no-such-directive::

   body
"""

UNREFERENCED_TARGET_SOURCE = """\
Links
=====

Nothing points at the target below.

.. _unused: http://example.com
"""

PEP_SOURCE = """\
Style
=====

Follow PEP 8 when in doubt.
"""


def write_source(tmp_path: Path, text: str) -> Path:
    """Write a source document and return its path."""
    path = tmp_path / "spec.rst"
    path.write_text(text, encoding="utf-8")
    return path


class TestDocutilsRenderer:
    """Tests for DocutilsRenderer."""

    def test_implements_protocol(self) -> None:
        """The docutils adapter satisfies the renderer protocol."""
        assert isinstance(DocutilsRenderer(), DocumentRenderer)

    def test_renders_html(self, tmp_path: Path) -> None:
        """A valid document renders to HTML."""
        source = write_source(tmp_path, VALID_SOURCE)

        document = DocutilsRenderer().render(source, RenderOptions())

        assert document.name == "spec.rst"
        assert document.source == source
        assert b"<html" in document.content
        assert b"Hello Spec" in document.content
        assert b"<em>emphasised</em>" in document.content

    def test_render_is_deterministic(self, tmp_path: Path) -> None:
        """Rendering an unchanged source twice gives identical bytes."""
        source = write_source(tmp_path, VALID_SOURCE)
        renderer = DocutilsRenderer()

        first = renderer.render(source, RenderOptions())
        second = renderer.render(source, RenderOptions())

        assert first.content == second.content

    def test_warnings_reach_handler(self, tmp_path: Path) -> None:
        """Non-fatal problems are reported and rendering continues."""
        source = write_source(tmp_path, SHORT_UNDERLINE_SOURCE)
        warnings: list[RenderWarning] = []

        document = DocutilsRenderer().render(
            source, RenderOptions(warning_handler=warnings.append)
        )

        assert b"Body text." in document.content
        assert len(warnings) == 1
        assert "Title underline too short" in warnings[0].message
        assert warnings[0].file == str(source)
        assert warnings[0].line is not None
        assert warnings[0].column is None

    def test_errors_raise_render_error(self, tmp_path: Path) -> None:
        """Errors halt rendering."""
        source = write_source(tmp_path, BAD_DIRECTIVE_SOURCE)

        with pytest.raises(RenderError) as exc_info:
            DocutilsRenderer().render(source, RenderOptions())

        assert "no-such-directive" in str(exc_info.value)
        assert exc_info.value.source == source

    def test_missing_source_raises_render_error(self, tmp_path: Path) -> None:
        """An unreadable source is a render failure."""
        with pytest.raises(RenderError):
            DocutilsRenderer().render(tmp_path / "missing.rst", RenderOptions())

    def test_external_references_disabled(self, tmp_path: Path) -> None:
        """PEP references stay plain text when lookups are off."""
        source = write_source(tmp_path, PEP_SOURCE)

        document = DocutilsRenderer().render(
            source, RenderOptions(external_references=False)
        )

        assert b"pep-0008" not in document.content

    def test_external_references_enabled(self, tmp_path: Path) -> None:
        """PEP references are linked when lookups are on."""
        source = write_source(tmp_path, PEP_SOURCE)

        document = DocutilsRenderer().render(
            source, RenderOptions(external_references=True)
        )

        assert b"pep-0008" in document.content

    def test_verbose_logs_progress(self, tmp_path: Path) -> None:
        """Verbose rendering reports progress through the log callback."""
        source = write_source(tmp_path, VALID_SOURCE)
        messages: list[str] = []

        DocutilsRenderer().render(source, RenderOptions(verbose=True, log=messages.append))

        assert messages
        assert messages[0] == f"Rendering {source}"

    def test_quiet_skips_progress(self, tmp_path: Path) -> None:
        """Non-verbose rendering stays silent."""
        source = write_source(tmp_path, VALID_SOURCE)
        messages: list[str] = []

        DocutilsRenderer().render(source, RenderOptions(verbose=False, log=messages.append))

        assert messages == []

    def test_info_messages_logged_not_embedded(self, tmp_path: Path) -> None:
        """Informational messages reach the log but never the HTML."""
        source = write_source(tmp_path, UNREFERENCED_TARGET_SOURCE)
        messages: list[str] = []
        warnings: list[RenderWarning] = []

        document = DocutilsRenderer().render(
            source,
            RenderOptions(
                verbose=True, log=messages.append, warning_handler=warnings.append
            ),
        )

        assert any('"unused" is not referenced' in message for message in messages)
        assert warnings == []
        assert b"system-message" not in document.content
        assert b"System Messages" not in document.content

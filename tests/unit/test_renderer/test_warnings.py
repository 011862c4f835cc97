"""Tests for render warning formatting and emission."""

from pathlib import Path

import pytest

from specbuild.observability.metrics import BuildMetrics
from specbuild.renderer.models import RenderWarning
from specbuild.renderer.warnings import format_warning, make_warning_handler


@pytest.fixture
def source(tmp_path: Path) -> Path:
    """Source document the warnings default to."""
    path = tmp_path / "spec.rst"
    path.write_text("Title\n=====\n", encoding="utf-8")
    return path


class TestFormatWarning:
    """Tests for format_warning."""

    def test_line_and_column(self, source: Path) -> None:
        """Known position renders as file:line:column."""
        warning = RenderWarning(message="x", line=5, column=3)

        assert format_warning(warning, source) == f"Warning: {source.resolve()}:5:3: x"

    def test_line_absent(self, source: Path) -> None:
        """Unknown position drops the position segment entirely."""
        warning = RenderWarning(message="x")

        assert format_warning(warning, source) == f"Warning: {source.resolve()}: x"

    def test_line_without_column(self, source: Path) -> None:
        """A line without a column renders as file:line."""
        warning = RenderWarning(message="Title underline too short.", line=2)

        assert (
            format_warning(warning, source)
            == f"Warning: {source.resolve()}:2: Title underline too short."
        )

    def test_line_zero_is_a_known_position(self, source: Path) -> None:
        """Line 0 is still a position, not an absent one."""
        warning = RenderWarning(message="x", line=0, column=0)

        assert format_warning(warning, source) == f"Warning: {source.resolve()}:0:0: x"

    def test_warning_file_overrides_default(self, tmp_path: Path, source: Path) -> None:
        """A file carried by the warning wins over the default."""
        other = tmp_path / "include.rst"
        warning = RenderWarning(message="x", file=str(other), line=1, column=1)

        assert format_warning(warning, source) == f"Warning: {other.resolve()}:1:1: x"

    def test_relative_file_is_resolved(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Relative paths are made absolute against the working directory."""
        monkeypatch.chdir(tmp_path)
        warning = RenderWarning(message="x")

        line = format_warning(warning, Path("spec.rst"))

        assert line == f"Warning: {(tmp_path / 'spec.rst').resolve()}: x"


class TestWarningHandler:
    """Tests for make_warning_handler."""

    def test_handler_emits_formatted_line(self, source: Path) -> None:
        """Each warning produces exactly one emitted line."""
        emitted: list[str] = []
        handler = make_warning_handler(source, emit=emitted.append, metrics=BuildMetrics())

        handler(RenderWarning(message="first", line=1, column=2))
        handler(RenderWarning(message="second"))

        assert emitted == [
            f"Warning: {source.resolve()}:1:2: first",
            f"Warning: {source.resolve()}: second",
        ]

    def test_handler_counts_warnings(self, source: Path) -> None:
        """Warnings are counted in metrics."""
        metrics = BuildMetrics()
        handler = make_warning_handler(source, emit=lambda _line: None, metrics=metrics)

        handler(RenderWarning(message="x"))

        assert metrics.render_warnings_total == 1

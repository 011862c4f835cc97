"""Tests for the Cleaner task."""

from pathlib import Path

import pytest

from specbuild.errors import CleanError
from specbuild.tasks.clean import Cleaner


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Output root populated with files and nested directories."""
    root = tmp_path / "build"
    (root / "assets" / "img").mkdir(parents=True)
    (root / "index.html").write_text("<html></html>", encoding="utf-8")
    (root / "assets" / "style.css").write_text("body {}", encoding="utf-8")
    (root / "assets" / "img" / "logo.svg").write_text("<svg/>", encoding="utf-8")
    return root


class TestCleaner:
    """Tests for Cleaner."""

    def test_removes_everything_under_root(self, output_dir: Path) -> None:
        """All files and directories go; the root stays."""
        deleted = Cleaner(output_dir).clean()

        assert deleted == 2
        assert output_dir.is_dir()
        assert list(output_dir.iterdir()) == []

    def test_is_idempotent(self, output_dir: Path) -> None:
        """Cleaning an empty root succeeds and changes nothing."""
        cleaner = Cleaner(output_dir)
        cleaner.clean()

        assert cleaner.clean() == 0
        assert list(output_dir.iterdir()) == []

    def test_missing_root_is_noop(self, tmp_path: Path) -> None:
        """A root that was never built cleans successfully."""
        assert Cleaner(tmp_path / "build").clean() == 0
        assert not (tmp_path / "build").exists()

    def test_failure_is_reported_after_trying_everything(
        self, output_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A locked file raises CleanError but other entries are still removed."""
        locked = output_dir / "index.html"
        original_unlink = Path.unlink

        def unlink(self: Path, missing_ok: bool = False) -> None:
            if self == locked:
                raise PermissionError("locked")
            original_unlink(self, missing_ok=missing_ok)

        monkeypatch.setattr(Path, "unlink", unlink)

        with pytest.raises(CleanError) as exc_info:
            Cleaner(output_dir).clean()

        assert [path for path, _ in exc_info.value.failed] == [locked]
        assert "locked" in exc_info.value.failed[0][1]
        assert not (output_dir / "assets").exists()
        assert locked.exists()

"""Cleaner: removes all previously generated output."""

import shutil
from pathlib import Path

import structlog

from specbuild.constants import COMPONENT_CLEANER
from specbuild.errors import CleanError


logger = structlog.get_logger()


class Cleaner:
    """Deletes every file and directory under the build output root.

    The root itself is kept. Cleaning a missing or empty root succeeds,
    so running the cleaner twice yields the same empty state.
    """

    def __init__(self, output_dir: Path) -> None:
        """Initialize the cleaner.

        Args:
            output_dir: Build output root.
        """
        self._output_dir = Path(output_dir)
        self._log = logger.bind(component=COMPONENT_CLEANER)

    def clean(self) -> int:
        """Delete all output.

        Every entry is attempted even after a failure, so a locked file
        does not prevent the rest of the root from being cleaned.

        Returns:
            Number of top-level entries deleted.

        Raises:
            CleanError: If any entry could not be deleted.
        """
        if not self._output_dir.exists():
            self._log.info("output_dir_not_found", path=str(self._output_dir))
            return 0

        deleted_count = 0
        failed: list[tuple[Path, str]] = []

        for entry in sorted(self._output_dir.iterdir()):
            try:
                if entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
                deleted_count += 1
                self._log.debug("entry_deleted", path=str(entry))
            except OSError as e:
                failed.append((entry, str(e)))
                self._log.warning("entry_delete_failed", path=str(entry), error=str(e))

        if failed:
            raise CleanError(failed)

        self._log.info(
            "clean_complete",
            path=str(self._output_dir),
            deleted_count=deleted_count,
        )
        return deleted_count

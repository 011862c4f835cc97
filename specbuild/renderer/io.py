"""I/O utilities for writing build output.

Provides atomic file writing so a failed or interrupted build never leaves
a truncated document in place of the previous one.
"""

import hashlib
from pathlib import Path

import structlog

from specbuild.constants import TEMP_SUFFIX
from specbuild.errors import OutputWriteError
from specbuild.renderer.models import GeneratedFile


logger = structlog.get_logger()


class AtomicWriter:
    """Provides atomic file writing operations.

    Writes content to a temporary file first, then renames to the final path.
    This ensures that readers never see partially written files.
    """

    def __init__(self, base_dir: Path, build_id: str | None = None) -> None:
        """Initialize the atomic writer.

        Args:
            base_dir: Base directory for relative path calculation.
            build_id: Optional build ID for logging context.
        """
        self._base_dir = base_dir
        self._log = logger.bind(component="atomic_writer")
        if build_id:
            self._log = self._log.bind(build_id=build_id)

    def write(self, path: Path, content: bytes) -> GeneratedFile:
        """Write content to file with atomic semantics.

        Args:
            path: Target file path.
            content: Bytes to write.

        Returns:
            GeneratedFile with path, checksum, and size information.

        Raises:
            OutputWriteError: If the file cannot be written. The previous
                file at ``path``, if any, is left untouched.
        """
        sha256 = hashlib.sha256(content).hexdigest()
        temp_path = path.with_suffix(path.suffix + TEMP_SUFFIX)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(content)
            temp_path.replace(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise OutputWriteError(path, str(e)) from e

        try:
            relative_path = str(path.relative_to(self._base_dir))
        except ValueError:
            relative_path = str(path)

        self._log.debug(
            "file_written",
            path=relative_path,
            bytes=len(content),
            sha256=sha256[:12],
        )

        return GeneratedFile(
            path=relative_path,
            absolute_path=str(path.resolve()),
            bytes_written=len(content),
            sha256=sha256,
        )

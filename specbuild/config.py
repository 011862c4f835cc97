"""Build configuration.

All values are fixed defaults taken from ``specbuild.constants``; nothing
is read from the environment. Tests construct their own instances to point
the pipeline at temporary directories.
"""

from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from specbuild.constants import (
    OUTPUT_DIR,
    OUTPUT_FILENAME,
    SERVER_HOST,
    SERVER_PORT,
    SOURCE_PATH,
)


class BuildConfig(BaseModel):
    """Configuration shared by every task in the pipeline.

    Attributes:
        source_path: Markup source document.
        output_dir: Build output root.
        output_filename: Name of the rendered document inside output_dir.
        host: Live-reload server bind address.
        port: Live-reload server port.
        verbose: Emit the rendering engine's informational messages.
        external_references: Let the engine link PEP/RFC references.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source_path: Path = Path(SOURCE_PATH)
    output_dir: Path = Path(OUTPUT_DIR)
    output_filename: Annotated[str, Field(min_length=1)] = OUTPUT_FILENAME
    host: Annotated[str, Field(min_length=1)] = SERVER_HOST
    port: Annotated[int, Field(ge=1, le=65535)] = SERVER_PORT
    verbose: bool = True
    external_references: bool = False

    @property
    def output_path(self) -> Path:
        """Path of the rendered document."""
        return self.output_dir / self.output_filename

    @property
    def server_url(self) -> str:
        """Base URL of the live-reload server."""
        return f"http://{self.host}:{self.port}/"


def default_config() -> BuildConfig:
    """Get the fixed pipeline configuration."""
    return BuildConfig()

"""Allow ``python -m specbuild``."""

from specbuild.cli import cli


cli()

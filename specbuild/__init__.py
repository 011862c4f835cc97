"""Build a reStructuredText spec into static HTML, with live reload."""

__version__ = "0.1.0"

"""Exception hierarchy for build passes."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class StyleCacheError(Exception):
    """Base class for every error raised by a build pass."""


class ResolutionError(StyleCacheError):
    """The entry point could not be read."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Cannot read entry point {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CompileError(StyleCacheError):
    """The stylesheet could not be compiled."""

    def __init__(self, message: str, file: Optional[str | Path] = None):
        self.file = str(file) if file is not None else None
        if self.file:
            message = f"{self.file}: {message}"
        super().__init__(message)


class ScanError(StyleCacheError):
    """A scan root could not be read."""


class TransformError(StyleCacheError):
    """The optimizer could not parse its input."""

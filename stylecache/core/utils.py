"""
Shared utilities for stylecache.

Console logger used by the command layer and environment helpers.
"""

from __future__ import annotations

import os
import sys
from typing import TextIO


# =============================================================================
# Environment
# =============================================================================

# Variables consulted (in order) to decide whether we run in production
PRODUCTION_ENV_VARS = ("STYLECACHE_ENV", "NODE_ENV")

_FALSY = {"", "0", "false", "no", "off"}


def env_debug() -> bool:
    """Return True when the DEBUG environment variable enables phase timing."""
    value = os.environ.get("DEBUG")
    if value is None:
        return False
    return value.strip().lower() not in _FALSY


def is_production() -> bool:
    """Return True when the environment looks like a production build."""
    for name in PRODUCTION_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value.strip().lower() == "production"
    return False


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored console logger."""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "magenta": "\033[95m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, verbose: bool = False, stream: TextIO | None = None):
        self.verbose = verbose
        self._stream = stream
        self._use_color = self.stream.isatty()

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys replacement of stdout is honored
        return self._stream if self._stream is not None else sys.stdout

    def set_color(self, enabled: bool) -> None:
        self._use_color = enabled

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def _write(self, line: str) -> None:
        print(line, file=self.stream)

    def header(self, message: str) -> None:
        self._write(f"\n{self._color(message, 'bold')}")
        self._write(self._color("-" * len(message), "cyan"))

    def info(self, message: str) -> None:
        self._write(f"  {message}")

    def dim(self, message: str) -> None:
        self._write(f"  {self._color(message, 'dim')}")

    def success(self, message: str) -> None:
        self._write(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        self._write(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        self._write(f"  {self._color('[ERROR]', 'red')} {message}")

    def debug(self, message: str) -> None:
        if self.verbose:
            self._write(f"  {self._color('[DEBUG]', 'magenta')} {message}")

    def dry_run(self, message: str) -> None:
        self._write(f"  {self._color('[DRY-RUN]', 'blue')} {message}")


log = Logger()

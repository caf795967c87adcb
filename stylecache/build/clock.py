"""
Modification-time tracking for dependency files.

The clock only remembers the last mtime it observed per path. Comparing mtimes
is cheap and avoids reading file contents; a rewrite that keeps the same mtime
goes unnoticed until the next save.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional, Union

PathLike = Union[str, Path]


def stat_mtime(path: PathLike) -> Optional[float]:
    """Return the modification time of ``path`` or None if it cannot be stat'ed."""
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


class DependencyClock:
    """Last-observed modification times keyed by path."""

    def __init__(self) -> None:
        self._mtimes: dict[str, float] = {}

    def __contains__(self, path: object) -> bool:
        return str(path) in self._mtimes

    def __len__(self) -> int:
        return len(self._mtimes)

    def get(self, path: PathLike) -> Optional[float]:
        return self._mtimes.get(str(path))

    def record(self, path: PathLike, mtime: float) -> None:
        self._mtimes[str(path)] = mtime

    def forget(self, path: PathLike) -> None:
        self._mtimes.pop(str(path), None)

    def observe(self, path: PathLike) -> Optional[bool]:
        """Check one path against its recorded time.

        Returns None when the path does not exist, True when it changed (or
        was never seen) and False otherwise. A changed time is recorded.
        """
        mtime = stat_mtime(path)
        if mtime is None:
            return None
        if self._mtimes.get(str(path)) == mtime:
            return False
        self._mtimes[str(path)] = mtime
        return True

    def prime(self, paths: Iterable[PathLike]) -> None:
        """Record current times for paths that have no recorded time yet."""
        for path in paths:
            if str(path) in self._mtimes:
                continue
            mtime = stat_mtime(path)
            if mtime is not None:
                self._mtimes[str(path)] = mtime

    def changed(self, paths: Iterable[PathLike]) -> list[str]:
        """Return the paths whose time differs from the recorded one, updating them."""
        return [str(path) for path in paths if self.observe(path)]

    def snapshot(self) -> dict[str, float]:
        return dict(self._mtimes)

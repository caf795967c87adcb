"""
Dependency manifest reported to the host build tool.

Hosts that watch exact files consume ``files``; hosts that only support
globbed watch roots consume ``globs``. ``to_messages`` renders both in the
message shape bundler plugins exchange.
"""

from __future__ import annotations

import os
from pathlib import PurePath
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


# Characters that make a path segment a glob
GLOB_CHARS = frozenset("*?[")


class Glob(BaseModel):
    """A directory plus a glob pattern relative to it."""

    model_config = ConfigDict(frozen=True)

    base: str = Field(description="Directory the pattern is relative to")
    pattern: str = Field(description="Glob pattern, e.g. '**/*.html'")

    @classmethod
    def coerce(cls, value: Any) -> "Glob":
        """Accept Glob, (base, pattern) tuples, dicts or objects with base/pattern."""
        if isinstance(value, Glob):
            return value
        if isinstance(value, dict):
            return cls(base=str(value["base"]), pattern=str(value["pattern"]))
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(base=str(value[0]), pattern=str(value[1]))
        if hasattr(value, "base") and hasattr(value, "pattern"):
            return cls(base=str(value.base), pattern=str(value.pattern))
        raise TypeError(f"Cannot interpret {value!r} as a glob")

    @classmethod
    def from_pattern(cls, base: str, pattern: str) -> "Glob":
        """Resolve ``pattern`` against ``base`` and split off its static prefix.

        The result's base is the deepest directory without glob characters,
        so absolute patterns and patterns climbing out of ``base`` with
        ``..`` become a concrete directory plus a relative pattern.

            >>> Glob.from_pattern("/app/src", "../views/**/*.html")
            Glob(base='/app/views', pattern='**/*.html')
        """
        joined = os.path.normpath(os.path.join(str(base), str(pattern)))
        parts = PurePath(joined).parts
        for i, part in enumerate(parts):
            if any(c in GLOB_CHARS for c in part):
                break
        else:
            return cls(base=os.path.dirname(joined), pattern=os.path.basename(joined))
        return cls(
            base=os.path.join(*parts[:i]) if i else os.curdir,
            pattern="/".join(parts[i:]),
        )


class DependencyManifest(BaseModel):
    """Files and directory globs whose changes should re-trigger a pass."""

    files: list[str] = Field(default_factory=list, description="Exact file dependencies")
    globs: list[Glob] = Field(default_factory=list, description="Directory + glob dependencies")

    def add_file(self, path: str) -> None:
        self.add_files([path])

    def add_files(self, paths: Iterable[str]) -> None:
        seen = set(self.files)
        for path in map(str, paths):
            if path not in seen:
                seen.add(path)
                self.files.append(path)

    def add_glob(self, glob: Glob) -> None:
        self.add_globs([glob])

    def add_globs(self, globs: Iterable[Glob]) -> None:
        seen = set(self.globs)
        for glob in globs:
            if glob not in seen:
                seen.add(glob)
                self.globs.append(glob)

    def watch_roots(self) -> list[str]:
        """Directories a watcher has to observe to see every dependency."""
        roots: list[str] = []
        for glob in self.globs:
            if glob.base not in roots:
                roots.append(glob.base)
        return roots

    def to_messages(self, parent: Optional[str] = None, plugin: str = "stylecache") -> list[dict]:
        messages: list[dict] = []
        for file in self.files:
            messages.append(
                {"type": "dependency", "plugin": plugin, "file": file, "parent": parent}
            )
        for glob in self.globs:
            messages.append(
                {
                    "type": "dir-dependency",
                    "plugin": plugin,
                    "dir": glob.base,
                    "glob": glob.pattern,
                    "parent": parent,
                }
            )
        return messages

"""
Candidate scanning.

``Scanner`` is the default collaborator: it walks the scan base plus any
globs declared by the stylesheet and splits file contents into candidate
tokens. ``CandidateIndex`` wraps whichever scanner is configured and turns a
scan into a ``ScanResult``. Nothing here caches; every pass rescans so the
candidate set always matches the current source tree.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

from stylecache.build.errors import ScanError
from stylecache.build.manifest import Glob

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Directories never descended into during source detection
IGNORED_DIRS = {
    "node_modules",
    "__pycache__",
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "dist",
    "build",
}

# Files that cannot contain candidates (or are build inputs themselves)
IGNORED_EXTENSIONS = {
    ".css", ".scss", ".sass", ".less", ".styl",
    ".lock", ".log", ".map",
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".avif", ".ico", ".bmp",
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    ".zip", ".gz", ".tar", ".tgz", ".bz2", ".xz", ".7z",
    ".pdf", ".mp3", ".mp4", ".webm", ".mov", ".wav",
    ".pyc", ".pyo", ".so", ".dll", ".dylib", ".exe", ".bin", ".wasm",
    ".sqlite", ".db",
}

IGNORED_FILES = {"package-lock.json", "pnpm-lock.yaml", "yarn.lock", "poetry.lock"}

# Files larger than this are skipped (minified bundles, fixtures)
MAX_FILE_BYTES = 2 * 1024 * 1024

# Raw tokens: anything that may appear inside a class attribute value
TOKEN_RE = re.compile(r"[A-Za-z0-9_\-:/\[\]\.%#!()@,+*=&'>~]+")
VALID_CANDIDATE = re.compile(r"^[!\-@\[]?[A-Za-z0-9\[]")
MAX_CANDIDATE_LENGTH = 128


# =============================================================================
# Scan Result
# =============================================================================


@dataclass
class ScanResult:
    """Candidates plus the files and globs that produced them."""

    candidates: set[str] = field(default_factory=set)
    files: list[str] = field(default_factory=list)
    globs: list[Glob] = field(default_factory=list)


# =============================================================================
# Candidate Extraction
# =============================================================================


def extract_candidates(content: str) -> set[str]:
    """Split source text into candidate tokens.

    Over-reporting is harmless: the compiler ignores tokens it has no rule for.
    """
    candidates: set[str] = set()
    for match in TOKEN_RE.finditer(content):
        token = match.group(0)
        # Quotes and '=' delimit attribute values; split on them
        for part in re.split(r"['=]", token):
            part = part.rstrip(".,:")
            if not part or len(part) > MAX_CANDIDATE_LENGTH:
                continue
            if part.count("[") != part.count("]"):
                continue
            if VALID_CANDIDATE.match(part):
                candidates.add(part)
    return candidates


def _is_source_file(name: str) -> bool:
    if name.startswith(".") or name in IGNORED_FILES:
        return False
    return Path(name).suffix.lower() not in IGNORED_EXTENSIONS


# =============================================================================
# Default Scanner
# =============================================================================


class Scanner:
    """Default candidate scanner.

    Args:
        detect_sources: ``{"base": dir}`` to auto-detect source files under
            ``dir``, or None to only scan ``sources``.
        sources: Explicit globs (``Glob`` or ``(base, pattern)`` pairs).

    After ``scan()``, ``files`` lists every scanned file and ``globs`` every
    glob that should be watched.
    """

    def __init__(
        self,
        detect_sources: Optional[dict] = None,
        sources: Sequence = (),
    ):
        self.detect_base: Optional[str] = (
            str(detect_sources["base"]) if detect_sources else None
        )
        self.sources: list[Glob] = [
            Glob.from_pattern(g.base, g.pattern) for g in map(Glob.coerce, sources)
        ]
        self.files: list[str] = []
        self.globs: list[Glob] = []

    def scan(self) -> set[str]:
        """Scan every source and return the candidates found.

        Raises:
            ScanError: If the auto-detection base is not a readable directory.
        """
        files: dict[str, None] = {}
        globs: list[Glob] = []

        if self.detect_base is not None:
            if not os.path.isdir(self.detect_base):
                raise ScanError(f"Scan base is not a directory: {self.detect_base}")
            for path in self._detect(self.detect_base):
                files[path] = None
            globs.append(Glob(base=self.detect_base, pattern="**/*"))

        for source in self.sources:
            for path in self._expand(source):
                files[path] = None
            if source not in globs:
                globs.append(source)

        candidates: set[str] = set()
        for path in files:
            content = self._read(path)
            if content is not None:
                candidates |= extract_candidates(content)

        self.files = list(files)
        self.globs = globs
        return candidates

    def _detect(self, base: str) -> list[str]:
        found: list[str] = []

        def on_error(err: OSError) -> None:
            logger.debug(f"Skipping unreadable directory {err.filename}: {err.strerror}")

        for dirpath, dirnames, filenames in os.walk(base, onerror=on_error):
            dirnames[:] = sorted(
                d for d in dirnames if d not in IGNORED_DIRS and not d.startswith(".")
            )
            for name in sorted(filenames):
                if _is_source_file(name):
                    found.append(os.path.join(dirpath, name))
        return found

    def _expand(self, glob: Glob) -> list[str]:
        base = Path(glob.base)
        if not base.is_dir():
            return []
        try:
            matches = sorted(base.glob(glob.pattern))
        except (ValueError, NotImplementedError) as e:
            raise ScanError(f"Invalid glob '{glob.pattern}' under {glob.base}: {e}") from e
        return [
            str(path)
            for path in matches
            if path.is_file() and not any(part in IGNORED_DIRS for part in path.relative_to(base).parts)
        ]

    def _read(self, path: str) -> Optional[str]:
        try:
            if os.path.getsize(path) > MAX_FILE_BYTES:
                logger.debug(f"Skipping large file {path}")
                return None
            with open(path, encoding="utf-8", errors="ignore") as f:
                return f.read()
        except OSError as e:
            logger.debug(f"Skipping unreadable file {path}: {e}")
            return None


# =============================================================================
# Candidate Index
# =============================================================================


class ScannerFactory(Protocol):
    def __call__(self, detect_sources: Optional[dict], sources: Sequence): ...


class CandidateIndex:
    """Runs the configured scanner for one pass."""

    def __init__(self, scanner_factory: ScannerFactory = Scanner):
        self.scanner_factory = scanner_factory

    def scan(self, base: str | Path, globs: Iterable[Glob]) -> ScanResult:
        """Scan ``base`` plus ``globs``.

        An unreadable scan root yields zero candidates instead of failing the
        pass; the declared globs are still returned so the host keeps
        watching them.
        """
        globs = list(globs)
        scanner = self.scanner_factory(detect_sources={"base": str(base)}, sources=globs)
        try:
            candidates = set(scanner.scan())
        except (ScanError, OSError) as e:
            logger.warning(f"Scan failed, continuing without candidates: {e}")
            return ScanResult(candidates=set(), files=[], globs=globs)

        files = list(dict.fromkeys(str(f) for f in scanner.files))
        scanned_globs = list(dict.fromkeys(Glob.coerce(g) for g in scanner.globs))
        return ScanResult(candidates=candidates, files=files, globs=scanned_globs)

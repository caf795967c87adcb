"""
Shared pytest fixtures for stylecache tests.

Provides a small on-disk project plus fake collaborators that count how often
the engine calls them.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.dev       - Development/WIP tests, toggle-able
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import pytest

from stylecache.build.errors import CompileError
from stylecache.build.manifest import Glob
from stylecache.build.optimize import transform


# =============================================================================
# Helpers
# =============================================================================


def touch(path: Path, seconds: float = 5.0) -> None:
    """Move a file's mtime forward without relying on clock resolution."""
    st = path.stat()
    os.utime(path, (st.st_atime, st.st_mtime + seconds))


# =============================================================================
# Fake Collaborators
# =============================================================================


class FakeStylesheet:
    def __init__(self, owner: "FakeCompiler", css: str, globs: list):
        self.owner = owner
        self.css = css
        self.globs = globs

    def build(self, candidates: Iterable[str]) -> str:
        self.owner.builds += 1
        return "".join(f".{c} {{ --c: 1; }}\n" for c in sorted(candidates))


class FakeCompiler:
    """Compiler factory that reports fixed dependencies and counts creations."""

    def __init__(self, dependencies: Iterable[Path] = (), globs: Iterable[Glob] = ()):
        self.dependencies = [str(d) for d in dependencies]
        self.globs = list(globs)
        self.created = 0
        self.builds = 0
        self.sources: list[str] = []

    def __call__(self, css: str, *, base: str, on_dependency) -> FakeStylesheet:
        self.created += 1
        self.sources.append(css)
        for dep in self.dependencies:
            on_dependency(dep)
        if "!!broken" in css:
            raise CompileError("broken stylesheet")
        return FakeStylesheet(self, css, list(self.globs))


def fixed_scanner(candidates: Iterable[str], files: Iterable[str] = ()):
    """Scanner factory returning the same candidates on every scan."""
    candidates = set(candidates)
    files = list(files)

    class FixedScanner:
        def __init__(self, detect_sources=None, sources=()):
            self.files = list(files)
            self.globs = [Glob(base=detect_sources["base"], pattern="**/*")]

        def scan(self) -> set[str]:
            return set(candidates)

    return FixedScanner


class CountingOptimizer:
    """Wraps the default transform and counts invocations."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, css: str, *, minify: bool, error_recovery: bool) -> str:
        self.calls += 1
        return transform(css, minify=minify, error_recovery=error_recovery)


# =============================================================================
# Project Fixture
# =============================================================================


@dataclass
class Project:
    root: Path
    entry: Path
    imported: Path
    page: Path


@pytest.fixture
def project(tmp_path: Path) -> Project:
    """A project whose entry point imports one file and uses @utilities.

    Layout:
        src/a.css          @import "b.css"; @utilities;
        src/b.css          body rule
        templates/index.html   class="flex p-4"
    """
    src = tmp_path / "src"
    src.mkdir()
    entry = src / "a.css"
    imported = src / "b.css"
    imported.write_text("body {\n  margin: 0;\n}\n")
    entry.write_text('@import "b.css";\n\n@utilities;\n')

    templates = tmp_path / "templates"
    templates.mkdir()
    page = templates / "index.html"
    page.write_text('<div class="flex p-4">Hello</div>\n')

    return Project(root=tmp_path, entry=entry, imported=imported, page=page)


@pytest.fixture
def counting_optimizer() -> CountingOptimizer:
    return CountingOptimizer()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Tests must not inherit production or debug settings from the shell."""
    for name in ("STYLECACHE_ENV", "NODE_ENV", "DEBUG"):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "dev: development/WIP tests, toggle-able for active development"
    )

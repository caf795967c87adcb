"""Tests for compiler handles and config module eviction."""

from __future__ import annotations

import sys
import types
from pathlib import Path

import pytest

from stylecache.build.compiler import CompilerHandle, clear_module_cache
from stylecache.build.errors import CompileError
from stylecache.build.manifest import Glob

from .conftest import FakeCompiler


@pytest.mark.evergreen
class TestCompilerHandle:
    def test_dependencies_are_absolute_and_deduplicated(self, tmp_path: Path) -> None:
        def factory(css, *, base, on_dependency):
            on_dependency("b.css")
            on_dependency("./b.css")
            on_dependency(str(tmp_path / "c.css"))
            return types.SimpleNamespace(globs=[], build=lambda candidates: "")

        handle = CompilerHandle.create(factory, "", tmp_path)
        assert handle.dependencies == (str(tmp_path / "b.css"), str(tmp_path / "c.css"))

    def test_factory_errors_become_compile_errors(self, tmp_path: Path) -> None:
        def factory(css, *, base, on_dependency):
            raise ValueError("bad token")

        with pytest.raises(CompileError, match="bad token"):
            CompilerHandle.create(factory, "", tmp_path)

    def test_compile_error_passes_through(self, tmp_path: Path) -> None:
        with pytest.raises(CompileError, match="broken stylesheet"):
            CompilerHandle.create(FakeCompiler(), "!!broken", tmp_path)

    def test_build_counts_and_wraps_errors(self, tmp_path: Path) -> None:
        def explode(candidates):
            raise RuntimeError("no rules")

        ok = CompilerHandle.create(FakeCompiler(), "a {}", tmp_path)
        assert ok.build(["flex"]) == ".flex { --c: 1; }\n"
        assert ok.build_count == 1

        def factory(css, *, base, on_dependency):
            return types.SimpleNamespace(globs=[], build=explode)

        bad = CompilerHandle.create(factory, "", tmp_path)
        with pytest.raises(CompileError, match="no rules"):
            bad.build([])

    def test_dependency_globs_are_coerced(self, tmp_path: Path) -> None:
        compiler = FakeCompiler(globs=[(str(tmp_path), "**/*.html")])
        handle = CompilerHandle.create(compiler, "a {}", tmp_path)

        globs = handle.dependency_globs()
        assert globs == (Glob(base=str(tmp_path), pattern="**/*.html"),)
        assert handle.dependency_globs() is globs


@pytest.mark.evergreen
class TestClearModuleCache:
    def test_evicts_only_matching_modules(self, tmp_path: Path) -> None:
        target = tmp_path / "theme.py"
        other = tmp_path / "other.py"
        target.write_text("")
        other.write_text("")

        evicted_mod = types.ModuleType("stylecache_test_theme")
        evicted_mod.__file__ = str(target)
        kept_mod = types.ModuleType("stylecache_test_other")
        kept_mod.__file__ = str(other)
        sys.modules["stylecache_test_theme"] = evicted_mod
        sys.modules["stylecache_test_other"] = kept_mod
        try:
            assert clear_module_cache([str(target)]) == ["stylecache_test_theme"]
            assert "stylecache_test_theme" not in sys.modules
            assert sys.modules["stylecache_test_other"] is kept_mod
        finally:
            sys.modules.pop("stylecache_test_theme", None)
            sys.modules.pop("stylecache_test_other", None)

    def test_empty_paths(self) -> None:
        assert clear_module_cache([]) == []

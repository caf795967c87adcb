"""
Compiler handle: one compiled stylesheet bound to one resolved root.

A handle is never updated in place. When the root stylesheet or one of its
structural dependencies changes, the cache throws the handle away and creates
a new one through the same factory.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol, Sequence

from stylecache.build.errors import CompileError
from stylecache.build.manifest import Glob

logger = logging.getLogger(__name__)


# =============================================================================
# Collaborator Protocols
# =============================================================================


class CompiledStylesheet(Protocol):
    """What a compiler factory returns."""

    globs: Sequence

    def build(self, candidates: Iterable[str]) -> str:
        ...


class CompilerFactory(Protocol):
    """Turns root stylesheet text into a compiled stylesheet.

    ``on_dependency`` must be called with every file read while resolving
    structural directives (imports, config).
    """

    def __call__(
        self,
        css: str,
        *,
        base: str,
        on_dependency: Callable[[str], None],
    ) -> CompiledStylesheet:
        ...


# =============================================================================
# Module Cache
# =============================================================================


def clear_module_cache(paths: Iterable[str]) -> list[str]:
    """Evict Python modules loaded from ``paths`` so they are re-executed.

    Config files referenced by a stylesheet are imported as modules; without
    eviction a recreated handle would see the old module objects.

    Returns the names of the evicted modules.
    """
    targets = {os.path.realpath(p) for p in paths}
    if not targets:
        return []

    evicted = []
    for name, module in list(sys.modules.items()):
        module_file = getattr(module, "__file__", None)
        if module_file and os.path.realpath(module_file) in targets:
            del sys.modules[name]
            evicted.append(name)

    if evicted:
        logger.debug(f"Evicted config modules: {', '.join(sorted(evicted))}")
    return evicted


# =============================================================================
# Handle
# =============================================================================


class CompilerHandle:
    """Owns one compiled stylesheet and the structural dependencies it read."""

    def __init__(
        self,
        compiled: CompiledStylesheet,
        base: str,
        dependencies: Sequence[str],
    ):
        self._compiled = compiled
        self.base = base
        self.dependencies: tuple[str, ...] = tuple(dependencies)
        self._globs: Optional[tuple[Glob, ...]] = None
        self.build_count = 0

    @classmethod
    def create(
        cls,
        factory: CompilerFactory,
        css: str,
        base: str | Path,
    ) -> "CompilerHandle":
        """Compile ``css`` and collect the files the compiler reported.

        Raises:
            CompileError: If the factory rejects the stylesheet.
        """
        base = str(base)
        dependencies: list[str] = []

        def on_dependency(path: str) -> None:
            resolved = os.path.abspath(os.path.join(base, str(path)))
            if resolved not in dependencies:
                dependencies.append(resolved)

        try:
            compiled = factory(css, base=base, on_dependency=on_dependency)
        except CompileError:
            raise
        except Exception as e:
            raise CompileError(str(e) or type(e).__name__) from e

        logger.debug(f"Compiler created for {base} ({len(dependencies)} structural deps)")
        return cls(compiled, base, dependencies)

    def dependency_globs(self) -> tuple[Glob, ...]:
        """Scan globs declared by the stylesheet, read once per handle."""
        if self._globs is None:
            raw = getattr(self._compiled, "globs", None) or ()
            self._globs = tuple(Glob.coerce(g) for g in raw)
        return self._globs

    def build(self, candidates: Iterable[str]) -> str:
        """Produce CSS for ``candidates``.

        Raises:
            CompileError: If the compiled stylesheet fails to build.
        """
        self.build_count += 1
        try:
            return self._compiled.build(candidates)
        except CompileError:
            raise
        except Exception as e:
            raise CompileError(str(e) or type(e).__name__) from e

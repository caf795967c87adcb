"""
Per-invocation pipeline.

One call to ``Orchestrator.process`` is one pass:

    resolve -> decide (full | incremental) -> scan -> build -> optimize -> emit

Scanning always runs, including on incremental passes. A failure while
resolving or building aborts the pass and leaves the entry's last good
output untouched.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from stylecache.build.cache import CacheEntry, PassState, RebuildCache, RebuildStrategy
from stylecache.build.compiler import CompilerFactory
from stylecache.build.config import PluginOptions
from stylecache.build.errors import CompileError, ResolutionError
from stylecache.build.manifest import DependencyManifest
from stylecache.build.optimize import OptimizationGate, Optimizer, transform
from stylecache.build.scanner import CandidateIndex, Scanner, ScannerFactory
from stylecache.build.stylesheet import compile_stylesheet
from stylecache.core.timing import TimingContext

logger = logging.getLogger(__name__)

# Identity used for stylesheet text that has no file behind it
IN_MEMORY_IDENTITY = "<input>"


# =============================================================================
# Result
# =============================================================================


class PassResult(BaseModel):
    """Everything a host needs after one pass."""

    identity: str = Field(description="Cache identity of the input")
    css: str = Field(description="Final CSS (optimized when enabled)")
    raw_css: str = Field(description="Un-optimized build output")
    strategy: RebuildStrategy = Field(description="Strategy chosen for this pass")
    optimized: bool = Field(description="Whether `css` went through the optimizer")
    candidates: int = Field(0, description="Number of candidates found")
    manifest: DependencyManifest = Field(default_factory=DependencyManifest)
    timings: dict[str, float] = Field(default_factory=dict)
    duration: float = Field(0.0, description="Wall-clock seconds for the pass")

    def messages(self, parent: Optional[str] = None) -> list[dict]:
        """Dependency messages in bundler-plugin shape."""
        if parent is None and self.identity != IN_MEMORY_IDENTITY:
            parent = self.identity
        return self.manifest.to_messages(parent)


# =============================================================================
# Orchestrator
# =============================================================================


class Orchestrator:
    """Runs build passes against a shared rebuild cache.

    ``compiler_factory`` is only used to create a private cache. When a
    ``cache`` is passed, its entries keep compiling with the factory that
    cache was created with.
    """

    def __init__(
        self,
        options: Optional[PluginOptions] = None,
        *,
        compiler_factory: CompilerFactory = compile_stylesheet,
        scanner_factory: ScannerFactory = Scanner,
        optimizer: Optimizer = transform,
        cache: Optional[RebuildCache] = None,
    ):
        self.options = options or PluginOptions()
        self.base = str(self.options.resolved_base())
        self.optimize_enabled = self.options.optimize_enabled()
        self.minify = self.options.minify()
        # An empty cache is falsy (it has __len__)
        self.cache = cache if cache is not None else RebuildCache(compiler_factory)
        self.index = CandidateIndex(scanner_factory)
        self.gate = OptimizationGate(optimizer)

    def identity_for(self, input_file: Optional[Union[str, Path]]) -> str:
        if not input_file:
            return IN_MEMORY_IDENTITY
        return os.path.abspath(input_file)

    def process(
        self,
        input_file: Optional[Union[str, Path]] = None,
        css: Optional[str] = None,
        *,
        upstream_dependencies: Iterable[Union[str, Path]] = (),
    ) -> PassResult:
        """Run one pass.

        Args:
            input_file: Entry point path. May be omitted when ``css`` is given.
            css: Entry point text. Read from ``input_file`` when omitted.
            upstream_dependencies: Files earlier pipeline stages already
                depend on; tracked like structural dependencies.

        Raises:
            ResolutionError: If the entry point cannot be read.
            CompileError: If the stylesheet fails to compile or build.
        """
        if not input_file and css is None:
            raise ValueError("process() needs an input file or stylesheet text")

        identity = self.identity_for(input_file)
        entry = self.cache.entry(identity)
        upstream = [os.path.abspath(p) for p in upstream_dependencies]

        with entry.lock:
            try:
                return self._run(entry, identity if input_file else None, css, upstream)
            finally:
                entry.state = PassState.IDLE

    def _run(
        self,
        entry: CacheEntry,
        input_path: Optional[str],
        css: Optional[str],
        upstream: list[str],
    ) -> PassResult:
        timings: dict[str, float] = {}
        overall: dict[str, float] = {}

        with TimingContext(overall, "total", "Total time", logger):
            # Resolving
            entry.state = PassState.RESOLVING
            input_base = os.path.dirname(input_path) if input_path else self.base

            def load_css() -> str:
                if css is not None:
                    return css
                try:
                    with open(input_path, encoding="utf-8") as f:
                        return f.read()
                except OSError as e:
                    raise ResolutionError(input_path, e.strerror or str(e)) from e
                except UnicodeDecodeError as e:
                    raise ResolutionError(input_path, "not valid UTF-8") from e

            with TimingContext(timings, "resolve", "Resolve and setup compiler", logger):
                strategy = self.cache.decide(entry, input_path, load_css, input_base, upstream)
            entry.state = (
                PassState.FULL if strategy is RebuildStrategy.FULL else PassState.INCREMENTAL
            )
            compiler = entry.compiler
            if compiler is None:
                raise CompileError("No compiler available after resolving", input_path)

            # Scanning
            entry.state = PassState.SCANNING
            with TimingContext(timings, "scan", "Scan for candidates", logger):
                scan = self.index.scan(self.base, compiler.dependency_globs())

            # Building
            entry.state = PassState.BUILDING
            with TimingContext(timings, "build", "Build CSS", logger):
                built = compiler.build(scan.candidates)

            # Optimizing
            entry.state = PassState.OPTIMIZING
            with TimingContext(timings, "optimize", "Optimize CSS", logger):
                output = self.gate.maybe_optimize(
                    built,
                    entry.css,
                    entry.optimized_css,
                    self.optimize_enabled,
                    self.minify,
                )
            entry.css = built
            entry.optimized_css = output if self.optimize_enabled else None

            # Emitting
            entry.state = PassState.EMITTING
            manifest = DependencyManifest()
            manifest.add_files(entry.full_rebuild_paths)
            manifest.add_files(upstream)
            manifest.add_files(scan.files)
            manifest.add_globs(scan.globs)

            entry.passes += 1
            if strategy is RebuildStrategy.FULL:
                entry.full_rebuilds += 1

        logger.debug(
            f"{entry.identity}: {strategy.value} pass, {len(scan.candidates)} candidates, "
            f"{len(manifest.files)} files"
        )
        return PassResult(
            identity=entry.identity,
            css=output,
            raw_css=built,
            strategy=strategy,
            optimized=self.optimize_enabled,
            candidates=len(scan.candidates),
            manifest=manifest,
            timings=timings,
            duration=overall.get("total", 0.0),
        )

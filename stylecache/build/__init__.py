"""
stylecache.build - Incremental stylesheet build engine.

Decides per pass whether the compiler has to be recreated, rescans for
candidates, builds, and optimizes only when the output changed.
"""

from stylecache.build.errors import (
    StyleCacheError,
    ResolutionError,
    CompileError,
    ScanError,
    TransformError,
)
from stylecache.build.config import (
    OptimizeOptions,
    PluginOptions,
    BuildConfig,
    ConfigError,
    load_config_file,
    find_config_file,
)
from stylecache.build.clock import DependencyClock, stat_mtime
from stylecache.build.manifest import Glob, DependencyManifest
from stylecache.build.compiler import CompilerHandle, clear_module_cache
from stylecache.build.scanner import CandidateIndex, Scanner, ScanResult, extract_candidates
from stylecache.build.optimize import OptimizationGate, transform
from stylecache.build.stylesheet import compile_stylesheet
from stylecache.build.cache import CacheEntry, PassState, RebuildCache, RebuildStrategy
from stylecache.build.orchestrator import IN_MEMORY_IDENTITY, Orchestrator, PassResult

__all__ = [
    # Errors
    "StyleCacheError",
    "ResolutionError",
    "CompileError",
    "ScanError",
    "TransformError",
    # Configuration
    "OptimizeOptions",
    "PluginOptions",
    "BuildConfig",
    "ConfigError",
    "load_config_file",
    "find_config_file",
    # Components
    "DependencyClock",
    "stat_mtime",
    "Glob",
    "DependencyManifest",
    "CompilerHandle",
    "clear_module_cache",
    "CandidateIndex",
    "Scanner",
    "ScanResult",
    "extract_candidates",
    "OptimizationGate",
    "transform",
    "compile_stylesheet",
    "CacheEntry",
    "PassState",
    "RebuildCache",
    "RebuildStrategy",
    # Orchestrator
    "IN_MEMORY_IDENTITY",
    "Orchestrator",
    "PassResult",
]

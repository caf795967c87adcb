"""
stylecache - incremental build and caching engine for stylesheet pipelines.
"""

from stylecache.build import (
    CompileError,
    Orchestrator,
    PassResult,
    PluginOptions,
    RebuildCache,
    RebuildStrategy,
    ResolutionError,
    StyleCacheError,
)

__version__ = "0.1.0"

__all__ = [
    "CompileError",
    "Orchestrator",
    "PassResult",
    "PluginOptions",
    "RebuildCache",
    "RebuildStrategy",
    "ResolutionError",
    "StyleCacheError",
    "__version__",
]

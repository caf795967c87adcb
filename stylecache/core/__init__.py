"""
stylecache.core - Foundation layer shared by the engine and the CLI.
"""

from stylecache.core.utils import (
    # Logging
    log,
    Logger,
    # Environment
    env_debug,
    is_production,
    PRODUCTION_ENV_VARS,
)
from stylecache.core.timing import (
    TimingContext,
    format_duration,
    format_ms,
    timing_summary,
)

__all__ = [
    "log",
    "Logger",
    "env_debug",
    "is_production",
    "PRODUCTION_ENV_VARS",
    "TimingContext",
    "format_duration",
    "format_ms",
    "timing_summary",
]

"""Wall-clock timing utilities for build passes."""

import logging
import time
from typing import Optional

from stylecache.core.utils import env_debug


class TimingContext:
    """Context manager that records wall-clock duration into a dict.

    When ``label`` is given and the DEBUG environment variable is set, the
    duration is also logged on ``logger`` once the block exits.

    Usage:
        timings = {}
        with TimingContext(timings, "scan"):
            do_work()
        # timings["scan"] == 0.004
    """

    def __init__(
        self,
        timings: dict[str, float],
        key: str,
        label: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.timings = timings
        self.key = key
        self.label = label
        self.logger = logger
        self._start: Optional[float] = None

    def __enter__(self) -> "TimingContext":
        self._start = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._start is not None:
            elapsed = time.monotonic() - self._start
            self.timings[self.key] = round(elapsed, 6)
            if self.label and self.logger is not None and env_debug():
                self.logger.info(f"[stylecache] {self.label}: {format_ms(elapsed)}")
        return None  # Don't suppress exceptions


def format_ms(seconds: float) -> str:
    """Format seconds as milliseconds with two decimals ("1.25ms")."""
    return f"{seconds * 1000:.2f}ms"


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable duration.

    Examples:
        0.0042 -> "4.20ms"
        0.5 -> "0.5s"
        65.3 -> "1m 5.3s"
    """
    if seconds < 0.1:
        return format_ms(seconds)
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    remaining = seconds % 60
    return f"{minutes}m {remaining:.1f}s"


def timing_summary(timings: dict[str, float]) -> str:
    """Format a timings dict as a summary string.

    Example output:
        scan: 3.10ms | build: 1.02ms | total: 4.12ms
    """
    if not timings:
        return "(no timing data)"

    parts = [f"{k}: {format_duration(v)}" for k, v in timings.items()]
    total = sum(timings.values())
    parts.append(f"total: {format_duration(total)}")
    return " | ".join(parts)

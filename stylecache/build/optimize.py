"""
Output optimization.

``transform`` is the default optimizer: comment removal and whitespace
normalization, plus minification when requested. ``OptimizationGate``
decides whether the optimizer has to run at all.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Protocol

from stylecache.build.errors import TransformError

logger = logging.getLogger(__name__)

# Comments starting with /*! are license notices and survive minification
COMMENT_RE = re.compile(r"/\*(?!!).*?\*/", re.DOTALL)
STRING_RE = re.compile(r""""(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'""")
BLANK_LINES_RE = re.compile(r"\n\s*\n+")
SPACE_AROUND_RE = re.compile(r"\s*([{};,>])\s*")
COLON_RE = re.compile(r":\s+")
WHITESPACE_RE = re.compile(r"\s+")


class Optimizer(Protocol):
    def __call__(self, css: str, *, minify: bool, error_recovery: bool) -> str:
        ...


# =============================================================================
# Default Transform
# =============================================================================


def _balanced_prefix(css: str) -> int:
    """Length of the longest prefix with balanced braces, or -1 if all of it is."""
    depth = 0
    last_closed = 0
    masked = STRING_RE.sub(lambda m: "x" * len(m.group(0)), css)
    for i, ch in enumerate(masked):
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return last_closed
            if depth == 0:
                last_closed = i + 1
    return -1 if depth == 0 else last_closed


def _minify(css: str) -> str:
    strings: list[str] = []

    def stash(match: re.Match) -> str:
        strings.append(match.group(0))
        return f"\x00{len(strings) - 1}\x00"

    out = STRING_RE.sub(stash, css)
    out = WHITESPACE_RE.sub(" ", out)
    out = SPACE_AROUND_RE.sub(r"\1", out)
    out = COLON_RE.sub(":", out)
    out = out.replace(";}", "}").strip()
    return re.sub(r"\x00(\d+)\x00", lambda m: strings[int(m.group(1))], out)


def _tidy(css: str) -> str:
    lines = [line.rstrip() for line in css.splitlines()]
    return BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip() + "\n"


def transform(css: str, *, minify: bool = False, error_recovery: bool = True) -> str:
    """Optimize ``css``.

    With ``error_recovery`` an unbalanced tail is kept verbatim after the
    optimized balanced prefix instead of failing.

    Raises:
        TransformError: On unbalanced input when ``error_recovery`` is off.
    """
    css = COMMENT_RE.sub("", css)
    cut = _balanced_prefix(css)
    tail = ""
    if cut != -1:
        if not error_recovery:
            raise TransformError(f"Unbalanced braces after offset {cut}")
        logger.warning(f"Optimizer recovered from unbalanced input at offset {cut}")
        css, tail = css[:cut], css[cut:]

    if minify:
        return _minify(css) + tail.strip()
    if tail:
        return _tidy(css + tail)
    return _tidy(css)


# =============================================================================
# Optimization Gate
# =============================================================================


class OptimizationGate:
    """Runs the optimizer only when the built CSS changed.

    The gate is a value-equality memo of size one: the caller passes the
    previous raw CSS and its optimized form, and gets the previous optimized
    form back untouched when the raw CSS is identical.
    """

    def __init__(self, optimizer: Optimizer = transform):
        self.optimizer = optimizer
        self.invocations = 0

    def maybe_optimize(
        self,
        new_css: str,
        previous_css: Optional[str],
        previous_optimized: Optional[str],
        optimize_enabled: bool,
        minify: bool,
    ) -> str:
        if not optimize_enabled:
            return new_css
        if previous_optimized is not None and new_css == previous_css:
            return previous_optimized

        self.invocations += 1
        try:
            return self.optimizer(new_css, minify=minify, error_recovery=True)
        except TransformError as e:
            logger.warning(f"Optimizer failed, using unoptimized CSS: {e}")
            return new_css


def optimizer_from_callable(func: Callable[[str], str]) -> Optimizer:
    """Adapt a plain ``css -> css`` function (e.g. a third-party minifier)."""

    def optimizer(css: str, *, minify: bool, error_recovery: bool) -> str:
        return func(css)

    return optimizer

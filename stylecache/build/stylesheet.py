"""
Default stylesheet compiler.

Understands four directives:

    @import "other.css";      inlined, reported as a structural dependency
    @source "../src/**/*.py"; extra scan glob, relative to the declaring file
    @config "theme.py";       Python module whose UTILITIES dict extends the
                              utility vocabulary; reported as a dependency
    @utilities;               replaced by the rules for the build candidates

Everything else passes through untouched.
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
import os
import re
import sys
from typing import Callable, Iterable, Optional

from stylecache.build.errors import CompileError
from stylecache.build.manifest import Glob
from stylecache.build.utilities import UtilityRegistry

logger = logging.getLogger(__name__)


IMPORT_RE = re.compile(
    r"""@import\s+(?:url\(\s*)?(?P<q>["'])(?P<path>[^"']+)(?P=q)\s*\)?\s*(?P<rest>[^;]*);"""
)
SOURCE_RE = re.compile(r"""@source\s+(?P<q>["'])(?P<pattern>[^"']+)(?P=q)\s*;[ \t]*\n?""")
CONFIG_RE = re.compile(r"""@config\s+(?P<q>["'])(?P<path>[^"']+)(?P=q)\s*;[ \t]*\n?""")
UTILITIES_RE = re.compile(r"@utilities\s*;")
COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
STRING_RE = re.compile(r""""(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'""")

CONFIG_MODULE_PREFIX = "stylecache_config_"


# =============================================================================
# Compiled Stylesheet
# =============================================================================


class Stylesheet:
    """A resolved stylesheet ready to be built against candidate sets."""

    def __init__(self, css: str, globs: list[Glob], registry: UtilityRegistry):
        self.css = css
        self.globs = globs
        self.registry = registry

    def build(self, candidates: Iterable[str]) -> str:
        if not UTILITIES_RE.search(self.css):
            return self.css
        rules = self.registry.generate(candidates)
        rendered = "\n\n".join(rule.render() for rule in rules)
        return UTILITIES_RE.sub(lambda _: rendered, self.css, count=1)


# =============================================================================
# Directive Resolution
# =============================================================================


def _is_local(ref: str) -> bool:
    return not re.match(r"^[a-z][a-z0-9+.-]*://", ref, re.IGNORECASE) and not ref.startswith("//")


def _check_balanced(css: str, file: Optional[str]) -> None:
    stripped = STRING_RE.sub('""', COMMENT_RE.sub("", css))
    depth = 0
    for line_no, line in enumerate(stripped.splitlines(), start=1):
        for ch in line:
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth < 0:
                    raise CompileError(f"Unexpected '}}' on line {line_no}", file)
    if depth != 0:
        raise CompileError(f"Unclosed block ({depth} '{{' without '}}')", file)


def load_config_module(path: str) -> dict:
    """Import a config file and return its UTILITIES mapping.

    The module is registered in ``sys.modules`` under a name derived from its
    path, so it is only re-executed after ``clear_module_cache`` evicts it.
    """
    name = CONFIG_MODULE_PREFIX + hashlib.sha256(path.encode()).hexdigest()[:12]
    module = sys.modules.get(name)
    if module is None:
        spec = importlib.util.spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise CompileError("Cannot load config module", path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            del sys.modules[name]
            raise CompileError(f"Config module failed: {e}", path) from e

    utilities = getattr(module, "UTILITIES", {})
    if not isinstance(utilities, dict):
        raise CompileError("UTILITIES must be a dict", path)
    return utilities


class _Resolver:
    def __init__(self, on_dependency: Callable[[str], None]):
        self.on_dependency = on_dependency
        self.globs: list[Glob] = []
        self.utilities: dict = {}
        self._stack: list[str] = []

    def resolve(self, css: str, base: str, file: Optional[str]) -> str:
        _check_balanced(css, file)

        def replace_source(match: re.Match) -> str:
            glob = Glob.from_pattern(base, match.group("pattern"))
            if glob not in self.globs:
                self.globs.append(glob)
            return ""

        def replace_config(match: re.Match) -> str:
            path = os.path.abspath(os.path.join(base, match.group("path")))
            if not os.path.isfile(path):
                raise CompileError(f"Cannot resolve config '{match.group('path')}'", file)
            self.on_dependency(path)
            self.utilities.update(load_config_module(path))
            return ""

        def replace_import(match: re.Match) -> str:
            ref = match.group("path")
            if not _is_local(ref) or match.group("rest").strip():
                # Remote and conditional imports are left to the browser
                return match.group(0)
            path = os.path.abspath(os.path.join(base, ref))
            if not os.path.isfile(path):
                raise CompileError(f"Cannot resolve import '{ref}'", file)
            if path in self._stack:
                logger.warning(f"Skipping circular import of {path}")
                return ""
            self.on_dependency(path)
            try:
                with open(path, encoding="utf-8") as f:
                    content = f.read()
            except OSError as e:
                raise CompileError(f"Cannot read import '{ref}': {e}", file) from e
            self._stack.append(path)
            try:
                return self.resolve(content, os.path.dirname(path), path)
            finally:
                self._stack.pop()

        css = SOURCE_RE.sub(replace_source, css)
        css = CONFIG_RE.sub(replace_config, css)
        return IMPORT_RE.sub(replace_import, css)


def compile_stylesheet(
    css: str,
    *,
    base: str,
    on_dependency: Callable[[str], None],
) -> Stylesheet:
    """Resolve directives in ``css`` whose relative paths start at ``base``.

    Raises:
        CompileError: On unbalanced braces or unresolvable imports/configs.
    """
    resolver = _Resolver(on_dependency)
    resolved = resolver.resolve(css, base, None)
    return Stylesheet(resolved, resolver.globs, UtilityRegistry(resolver.utilities))

"""
Utility rule generation for the default compiler.

Maps candidate strings such as ``p-4``, ``hover:bg-blue-500`` or
``md:flex`` onto CSS rules. Only a small, fixed vocabulary is known; unknown
candidates produce nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence


# =============================================================================
# Theme
# =============================================================================

RESPONSIVE_BREAKPOINTS = {
    "sm": "640px",
    "md": "768px",
    "lg": "1024px",
    "xl": "1280px",
    "2xl": "1536px",
}

PSEUDO_VARIANTS = {
    "hover": ":hover",
    "focus": ":focus",
    "active": ":active",
    "disabled": ":disabled",
    "first": ":first-child",
    "last": ":last-child",
}

SPACING_SCALE = {
    "0": "0rem",
    "px": "1px",
    "0.5": "0.125rem",
    "1": "0.25rem",
    "1.5": "0.375rem",
    "2": "0.5rem",
    "2.5": "0.625rem",
    "3": "0.75rem",
    "4": "1rem",
    "5": "1.25rem",
    "6": "1.5rem",
    "8": "2rem",
    "10": "2.5rem",
    "12": "3rem",
    "16": "4rem",
    "20": "5rem",
    "24": "6rem",
    "32": "8rem",
}

SPACING_PROPERTIES = {
    "p": ("padding",),
    "px": ("padding-left", "padding-right"),
    "py": ("padding-top", "padding-bottom"),
    "pt": ("padding-top",),
    "pr": ("padding-right",),
    "pb": ("padding-bottom",),
    "pl": ("padding-left",),
    "m": ("margin",),
    "mx": ("margin-left", "margin-right"),
    "my": ("margin-top", "margin-bottom"),
    "mt": ("margin-top",),
    "mr": ("margin-right",),
    "mb": ("margin-bottom",),
    "ml": ("margin-left",),
    "gap": ("gap",),
    "w": ("width",),
    "h": ("height",),
}

COLOR_PALETTE: dict[str, dict[str, str]] = {
    "black": {"base": "#000000"},
    "white": {"base": "#ffffff"},
    "gray": {
        "100": "#f3f4f6",
        "200": "#e5e7eb",
        "300": "#d1d5db",
        "500": "#6b7280",
        "700": "#374151",
        "900": "#111827",
    },
    "red": {"100": "#fee2e2", "500": "#ef4444", "700": "#b91c1c"},
    "green": {"100": "#dcfce7", "500": "#22c55e", "700": "#15803d"},
    "blue": {"100": "#dbeafe", "500": "#3b82f6", "700": "#1d4ed8"},
}

COLOR_PROPERTIES = {
    "text": "color",
    "bg": "background-color",
    "border": "border-color",
}

STATIC_UTILITIES: dict[str, tuple[str, ...]] = {
    "block": ("display: block",),
    "inline": ("display: inline",),
    "inline-block": ("display: inline-block",),
    "flex": ("display: flex",),
    "inline-flex": ("display: inline-flex",),
    "grid": ("display: grid",),
    "hidden": ("display: none",),
    "flex-row": ("flex-direction: row",),
    "flex-col": ("flex-direction: column",),
    "flex-wrap": ("flex-wrap: wrap",),
    "items-start": ("align-items: flex-start",),
    "items-center": ("align-items: center",),
    "items-end": ("align-items: flex-end",),
    "justify-start": ("justify-content: flex-start",),
    "justify-center": ("justify-content: center",),
    "justify-between": ("justify-content: space-between",),
    "relative": ("position: relative",),
    "absolute": ("position: absolute",),
    "fixed": ("position: fixed",),
    "sticky": ("position: sticky",),
    "text-left": ("text-align: left",),
    "text-center": ("text-align: center",),
    "text-right": ("text-align: right",),
    "italic": ("font-style: italic",),
    "underline": ("text-decoration-line: underline",),
    "font-normal": ("font-weight: 400",),
    "font-medium": ("font-weight: 500",),
    "font-semibold": ("font-weight: 600",),
    "font-bold": ("font-weight: 700",),
    "rounded": ("border-radius: 0.25rem",),
    "rounded-lg": ("border-radius: 0.5rem",),
    "rounded-full": ("border-radius: 9999px",),
    "border": ("border-width: 1px",),
    "shadow": ("box-shadow: 0 1px 3px 0 rgba(0,0,0,0.1), 0 1px 2px 0 rgba(0,0,0,0.06)",),
    "cursor-pointer": ("cursor: pointer",),
    "container": ("width: 100%", "margin-left: auto", "margin-right: auto"),
}

ARBITRARY_VALUE_RE = re.compile(r"^(?P<prefix>[a-z]+)-\[(?P<value>[^\]]+)\]$")


# =============================================================================
# Rules
# =============================================================================


@dataclass(frozen=True)
class Rule:
    """One generated utility rule."""

    candidate: str
    selector: str
    declarations: tuple[str, ...]
    media: Optional[str] = None

    def render(self) -> str:
        body = "".join(f"  {decl};\n" for decl in self.declarations)
        rule = f"{self.selector} {{\n{body}}}"
        if self.media is None:
            return rule
        indented = "\n".join(f"  {line}" for line in rule.splitlines())
        return f"@media (min-width: {self.media}) {{\n{indented}\n}}"


def escape_class(name: str) -> str:
    """Escape a candidate for use as a class selector."""
    return re.sub(r"([^A-Za-z0-9_\-])", r"\\\1", name)


def _spacing(prefix: str, token: str) -> Optional[tuple[str, ...]]:
    props = SPACING_PROPERTIES.get(prefix)
    if props is None:
        return None
    if token == "auto" and prefix.startswith("m"):
        value = "auto"
    elif token == "full" and prefix in ("w", "h"):
        value = "100%"
    else:
        value = SPACING_SCALE.get(token)
    if value is None:
        return None
    return tuple(f"{prop}: {value}" for prop in props)


def _color(prefix: str, token: str) -> Optional[tuple[str, ...]]:
    prop = COLOR_PROPERTIES.get(prefix)
    if prop is None:
        return None
    name, _, shade = token.partition("-")
    palette = COLOR_PALETTE.get(name)
    if palette is None:
        return None
    value = palette.get(shade or "base")
    if value is None:
        return None
    return (f"{prop}: {value}",)


class UtilityRegistry:
    """Resolves candidates to rules.

    ``extra`` maps candidate names to declarations and takes precedence over
    the built-in vocabulary (it comes from ``@config`` files).
    """

    def __init__(self, extra: Optional[Mapping[str, object]] = None):
        self.extra: dict[str, tuple[str, ...]] = {}
        for name, decls in (extra or {}).items():
            self.extra[name] = _normalize_declarations(decls)

    def declarations(self, utility: str) -> Optional[tuple[str, ...]]:
        """Declarations for a variant-free utility, or None if unknown."""
        if utility in self.extra:
            return self.extra[utility]
        if utility in STATIC_UTILITIES:
            return STATIC_UTILITIES[utility]

        arbitrary = ARBITRARY_VALUE_RE.match(utility)
        if arbitrary:
            prefix, value = arbitrary.group("prefix"), arbitrary.group("value").replace("_", " ")
            props = SPACING_PROPERTIES.get(prefix)
            if props:
                return tuple(f"{prop}: {value}" for prop in props)
            prop = COLOR_PROPERTIES.get(prefix)
            if prop:
                return (f"{prop}: {value}",)
            return None

        prefix, sep, token = utility.partition("-")
        if not sep:
            return None
        return _spacing(prefix, token) or _color(prefix, token)

    def rule(self, candidate: str) -> Optional[Rule]:
        """Build the rule for ``candidate`` including its variants."""
        *variants, utility = _split_variants(candidate)
        important = utility.startswith("!")
        if important:
            utility = utility[1:]

        decls = self.declarations(utility)
        if decls is None:
            return None
        if important:
            decls = tuple(f"{d} !important" for d in decls)

        selector = f".{escape_class(candidate)}"
        media: Optional[str] = None
        for variant in variants:
            if variant in PSEUDO_VARIANTS:
                selector += PSEUDO_VARIANTS[variant]
            elif variant in RESPONSIVE_BREAKPOINTS and media is None:
                media = RESPONSIVE_BREAKPOINTS[variant]
            else:
                return None
        return Rule(candidate, selector, decls, media)

    def generate(self, candidates: Iterable[str]) -> list[Rule]:
        """Rules for every known candidate: plain rules first, then by breakpoint."""
        rules = [r for r in (self.rule(c) for c in sorted(set(candidates))) if r is not None]
        order = list(RESPONSIVE_BREAKPOINTS.values())
        return sorted(rules, key=lambda r: (-1 if r.media is None else order.index(r.media)))


def _split_variants(candidate: str) -> list[str]:
    """Split on ':' outside of brackets."""
    parts, depth, current = [], 0, ""
    for ch in candidate:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        if ch == ":" and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += ch
    parts.append(current)
    return parts


def _normalize_declarations(decls: object) -> tuple[str, ...]:
    if isinstance(decls, str):
        items: Sequence[str] = decls.split(";")
    elif isinstance(decls, Mapping):
        items = [f"{k}: {v}" for k, v in decls.items()]
    else:
        items = [str(d) for d in decls]  # type: ignore[union-attr]
    return tuple(item.strip() for item in items if item.strip())

"""Formatting helpers shared by every builder."""

from __future__ import annotations

from collections.abc import Iterable, Mapping


INDENT_UNIT = " " * 4


def indent(level: int) -> str:
    """Return the indentation prefix for ``level`` nesting units."""
    return INDENT_UNIT * max(level, 0)


def is_blank(value: str | None) -> bool:
    """Return ``True`` for ``None`` or whitespace-only strings."""
    return value is None or not value.strip()


def normalise_options(options: Mapping[str, str | None] | None) -> dict[str, str]:
    """Copy an option mapping, turning ``None`` values into flag options."""
    if not options:
        return {}
    return {str(key): "" if value is None else str(value) for key, value in options.items()}


def options_from_flags(flags: Iterable[str | None]) -> dict[str, str]:
    """Build a flag-only option mapping, skipping ``None`` entries."""
    return {flag: "" for flag in flags if flag is not None}


def join_options(options: Mapping[str, str]) -> str:
    """Render ``key=value`` pairs joined by commas, flags without ``=``."""
    parts: list[str] = []
    for key, value in options.items():
        if is_blank(key):
            continue
        parts.append(key if is_blank(value) else f"{key}={value}")
    return ",".join(parts)


def format_options(options: Mapping[str, str]) -> str:
    """Render an option mapping as a bracketed LaTeX option list."""
    return f"[{join_options(options)}]"


__all__ = [
    "INDENT_UNIT",
    "format_options",
    "indent",
    "is_blank",
    "join_options",
    "normalise_options",
    "options_from_flags",
]

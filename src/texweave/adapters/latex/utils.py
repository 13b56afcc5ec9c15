"""Text helpers for content placed in LaTeX documents."""

from __future__ import annotations

import re

from pylatexenc.latexencode import unicode_to_latex


_LATEX_ESCAPE_MAP = {
    "\\": r"\textbackslash ",
    "#": r"\#",
    "$": r"\$",
    "%": r"\%",
    "_": r"\_",
    "&": r"\&",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde ",
    "^": r"\textasciicircum ",
}

_ACCENT_NEEDS_BRACES_PATTERN = re.compile(
    r"\\([" + re.escape("`'^\"~=\\.Hrvuck") + r"])\s*([A-Za-z])(?!\{)"
)


def _wrap_accents(payload: str) -> str:
    """Ensure accent macros wrap their payload in braces."""

    def _repl(match: re.Match[str]) -> str:
        command, char = match.groups()
        return f"\\{command}{{{char}}}"

    return _ACCENT_NEEDS_BRACES_PATTERN.sub(_repl, payload)


def escape_all_chars(text: str, *, legacy_accents: bool = False) -> str:
    """Escape every LaTeX special character in ``text``.

    With ``legacy_accents`` enabled, non-ASCII characters are additionally
    turned into accent macros for engines without Unicode input.
    """
    if not text:
        return text
    escaped = "".join(_LATEX_ESCAPE_MAP.get(char, char) for char in text)
    if legacy_accents:
        encoded = unicode_to_latex(escaped, non_ascii_only=True, unknown_char_warning=False)
        return _wrap_accents(encoded)
    return escaped


def escape_chars(text: str, *, legacy_accents: bool = False) -> str:
    """Escape special characters outside of ``$...$`` inline math."""
    parts: list[str] = []
    buffer: list[str] = []
    in_math = False
    for char in text:
        if in_math:
            parts.append(char)
            if char == "$":
                in_math = False
            continue
        if char == "$":
            parts.append(escape_all_chars("".join(buffer), legacy_accents=legacy_accents))
            buffer.clear()
            parts.append(char)
            in_math = True
            continue
        buffer.append(char)
    parts.append(escape_all_chars("".join(buffer), legacy_accents=legacy_accents))
    return "".join(parts)


def cite(key: str) -> str:
    return f"\\cite{{{key}}}"


def ref(label: str) -> str:
    """Return a cleveref reference, e.g. ``\\cref{eq:energy-0}``."""
    return f"\\cref{{{label}}}"


def quote(text: str) -> str:
    """Return a csquotes quotation."""
    return f"\\enquote{{{text}}}"


__all__ = ["cite", "escape_all_chars", "escape_chars", "quote", "ref"]

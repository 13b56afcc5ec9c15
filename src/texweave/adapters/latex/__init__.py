"""LaTeX engine integration and text helpers."""

from __future__ import annotations

from .compiler import CompilationResult, compile_document, is_executable
from .utils import cite, escape_all_chars, escape_chars, quote, ref


__all__ = [
    "CompilationResult",
    "cite",
    "compile_document",
    "escape_all_chars",
    "escape_chars",
    "is_executable",
    "quote",
    "ref",
]

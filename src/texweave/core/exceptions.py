"""Custom exception hierarchy for the document builders."""

from __future__ import annotations


class TexweaveError(RuntimeError):
    """Base exception for document assembly failures."""


class ConfigurationError(TexweaveError, ValueError):
    """Raised when a builder receives an invalid static configuration."""


class UsageError(TexweaveError):
    """Raised when builders are composed in a structurally invalid way."""


class CompilationError(TexweaveError):
    """Raised when the external TeX engine cannot be executed."""


__all__ = [
    "CompilationError",
    "ConfigurationError",
    "TexweaveError",
    "UsageError",
]

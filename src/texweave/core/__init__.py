"""Building blocks shared by every builder: packages, preamble, settings."""

from __future__ import annotations

from .config import DocumentManifest, DocumentSettings, TexCompiler
from .diagnostics import CollectingEmitter, DiagnosticEmitter, LoggingEmitter, NullEmitter
from .exceptions import CompilationError, ConfigurationError, TexweaveError, UsageError
from .packages import PackageDeclaration, check_incompatible_packages, merge_packages
from .preamble import (
    EMPTY_LINE,
    MAJOR_SEPARATOR,
    MINOR_SEPARATOR,
    PreambleEntry,
    merge_preamble_entries,
)
from .texable import BaseBuilder, Texable
from .utils import indent


__all__ = [
    "EMPTY_LINE",
    "MAJOR_SEPARATOR",
    "MINOR_SEPARATOR",
    "BaseBuilder",
    "CollectingEmitter",
    "CompilationError",
    "ConfigurationError",
    "DiagnosticEmitter",
    "DocumentManifest",
    "DocumentSettings",
    "LoggingEmitter",
    "NullEmitter",
    "PackageDeclaration",
    "PreambleEntry",
    "TexCompiler",
    "Texable",
    "TexweaveError",
    "UsageError",
    "check_incompatible_packages",
    "indent",
    "merge_packages",
    "merge_preamble_entries",
]

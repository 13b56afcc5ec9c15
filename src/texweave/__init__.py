"""Primary public API for texweave."""

from __future__ import annotations

from texweave.adapters.latex import cite, escape_all_chars, escape_chars, quote, ref
from texweave.core.config import DocumentManifest, DocumentSettings, TexCompiler
from texweave.core.diagnostics import CollectingEmitter, LoggingEmitter, NullEmitter
from texweave.core.exceptions import (
    CompilationError,
    ConfigurationError,
    TexweaveError,
    UsageError,
)
from texweave.core.packages import PackageDeclaration
from texweave.core.preamble import PreambleEntry
from texweave.document import Document
from texweave.elements import (
    Equation,
    EquationEnvironment,
    Figure,
    FigureEnvironment,
    PgfPlots,
    Table,
    TableEnvironment,
    Tikz,
)
from texweave.templates.letter import KomaLetter
from texweave.version import get_version


__version__ = get_version()


__all__ = [
    "CollectingEmitter",
    "CompilationError",
    "ConfigurationError",
    "Document",
    "DocumentManifest",
    "DocumentSettings",
    "Equation",
    "EquationEnvironment",
    "Figure",
    "FigureEnvironment",
    "KomaLetter",
    "LoggingEmitter",
    "NullEmitter",
    "PackageDeclaration",
    "PgfPlots",
    "PreambleEntry",
    "Table",
    "TableEnvironment",
    "TexCompiler",
    "TexweaveError",
    "Tikz",
    "UsageError",
    "__version__",
    "cite",
    "escape_all_chars",
    "escape_chars",
    "get_version",
    "quote",
    "ref",
]

"""Content builders that can be added to a document."""

from __future__ import annotations

from .equation import Equation, EquationEnvironment
from .figure import Figure, FigureEnvironment
from .pgfplots import PgfPlots
from .table import Table, TableEnvironment
from .tikz import Tikz


__all__ = [
    "Equation",
    "EquationEnvironment",
    "Figure",
    "FigureEnvironment",
    "PgfPlots",
    "Table",
    "TableEnvironment",
    "Tikz",
]

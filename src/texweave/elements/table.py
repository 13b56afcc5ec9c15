"""Booktabs tables assembled from a sparse grid of cells."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import re

from texweave.core.exceptions import ConfigurationError
from texweave.core.packages import PackageDeclaration
from texweave.core.texable import BaseBuilder
from texweave.core.utils import indent


LABEL_NAMESPACE = "tab:"
TABLE_POSITIONS = frozenset({"!", "h", "t", "b", "p"})

_MULTIROW = re.compile(r"\\multirow\{(\d+)\}")
_MULTICOLUMN = re.compile(r"\\multicolumn\{(\d+)\}")
_COLOR_WRAPPER_WIDTH = len("{\\cellcolor{}}")

Cell = tuple[int, int]


class TableEnvironment(Enum):
    TABULAR = "tabular"
    LONGTABLE = "longtable"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class _Layout:
    """Extents, separators and padding computed right before serialization."""

    columns: int
    rows: int
    separators: dict[Cell, bool] = field(default_factory=dict)
    padding: dict[Cell, int] = field(default_factory=dict)


class Table(BaseBuilder):
    """Fluent builder for ``tabular`` and ``longtable`` environments.

    Cells are addressed as ``(column, row)``, both zero based. Spans are
    declared by putting :meth:`multirow` or :meth:`multicolumn` markup in a
    cell; the covered cells are activated automatically. The grid may be
    sparse, and the number of columns used is checked against the declared
    format only when the table is serialized.
    """

    def __init__(self) -> None:
        super().__init__()
        self._format = ""
        self._defined_columns = 0
        self._environment = TableEnvironment.TABULAR
        self._entries: dict[Cell, str] = {}
        self._colors: dict[Cell, str] = {}
        self._midrules: set[int] = set()
        self._end_head = -1
        self._caption: str | None = None
        self._short_caption: str | None = None
        self._label: str | None = None
        self._centering = True
        self._floating = True
        self._position: str | None = None
        self.use_packages("booktabs", "longtable", "caption", "multirow")
        self.use_packages(PackageDeclaration.of("xcolor", "table"))

    @property
    def environment(self) -> TableEnvironment:
        return self._environment

    @property
    def caption(self) -> str | None:
        return self._caption

    @property
    def short_caption(self) -> str | None:
        return self._short_caption

    @property
    def label(self) -> str | None:
        return self._label

    @property
    def centering(self) -> bool:
        return self._centering

    @property
    def floating(self) -> bool:
        return self._floating

    def set_format(self, *column_specs: str) -> Table:
        """Declare the column format, one specifier per column (``"l"``, ``"S"``...)."""
        trimmed = [spec.strip() for spec in column_specs]
        self._format = " ".join(trimmed)
        self._defined_columns = len(trimmed)
        return self

    def set_environment(self, environment: TableEnvironment) -> Table:
        self._environment = environment
        return self

    def set_entry(self, column: int, row: int, text: str) -> Table:
        self._entries[(column, row)] = text
        return self

    def set_color(self, column: int, row: int, color: str) -> Table:
        """Set the background color of a cell via ``\\cellcolor``."""
        self._colors[(column, row)] = color
        return self

    def set_row(self, row: int, *cells: str) -> Table:
        for column, text in enumerate(cells):
            self.set_entry(column, row, text)
        return self

    def set_column(self, column: int, *cells: str, start_row: int = 0) -> Table:
        for offset, text in enumerate(cells):
            self.set_entry(column, start_row + offset, text)
        return self

    def set_midrule_after(self, row: int) -> Table:
        self._midrules.add(row)
        return self

    def set_end_head(self, row: int) -> Table:
        """Mark the last header row; only honoured by ``longtable``."""
        self._end_head = row
        return self

    def set_caption(self, caption: str | None) -> Table:
        self._caption = caption
        return self

    def set_short_caption(self, short_caption: str | None) -> Table:
        self._short_caption = short_caption
        return self

    def set_label(self, label: str | None) -> Table:
        self._label = label
        return self

    def set_centering(self, centering: bool = True) -> Table:
        self._centering = centering
        return self

    def set_floating(self, floating: bool) -> Table:
        """Wrap the table in a floating ``table`` environment."""
        self._floating = floating
        return self

    def set_position(self, position: str) -> Table:
        if position not in TABLE_POSITIONS:
            raise ConfigurationError(f"Unknown position argument for table: {position!r}")
        self._position = position
        return self

    @staticmethod
    def multirow(rows: int, content: str, width: str = "*") -> str:
        return f"\\multirow{{{rows}}}{{{width}}}{{{content}}}"

    @staticmethod
    def multicolumn(columns: int, alignment: str, content: str) -> str:
        return f"\\multicolumn{{{columns}}}{{{alignment}}}{{{content}}}"

    def _spans(self) -> tuple[set[Cell], set[Cell]]:
        """Return the active cells and the cells joined to their right neighbour."""
        active: set[Cell] = set(self._entries) | set(self._colors)
        joined: set[Cell] = set()
        for (column, row), text in self._entries.items():
            match = _MULTIROW.search(text)
            if match:
                for offset in range(int(match.group(1))):
                    active.add((column, row + offset))

            match = _MULTICOLUMN.search(text)
            if match:
                span = int(match.group(1))
                for offset in range(span):
                    active.add((column + offset, row))
                for offset in range(span - 1):
                    joined.add((column + offset, row))
        return active, joined

    def _cell_width(self, cell: Cell) -> int:
        width = len(self._entries.get(cell, ""))
        color = self._colors.get(cell)
        if color is not None:
            width += _COLOR_WRAPPER_WIDTH + len(color)
        return width

    def _layout(self) -> _Layout:
        active, joined = self._spans()
        columns = 1 + max((column for column, _ in active), default=0)
        rows = 1 + max((row for _, row in active), default=0)
        if columns > self._defined_columns:
            raise ConfigurationError(
                f"More columns requested than defined: {columns} > {self._defined_columns}"
            )

        layout = _Layout(columns, rows)
        for column in range(columns):
            widths = {row: self._cell_width((column, row)) for row in range(rows)}
            widest = max(widths.values(), default=0)
            for row, width in widths.items():
                cell = (column, row)
                layout.padding[cell] = widest - width
                layout.separators[cell] = (
                    cell not in joined and column != columns - 1
                )
        return layout

    def latex_lines(self) -> list[str]:
        layout = self._layout()
        label = self._label if self._floating else None

        lines: list[str] = []
        level = 1
        if self._floating:
            lines.append(f"{indent(level)}\\begin{{table}}[{self._position or ''}]%")
            if self._centering:
                lines.append(f"{indent(level)}\\centering")
            if self._caption is not None:
                short = f"[{self._short_caption}]" if self._short_caption is not None else ""
                lines.append(f"{indent(level + 1)}\\caption{short}{{{self._caption}}}%")
            if label is not None:
                lines.append(f"{indent(level + 1)}\\label{{{LABEL_NAMESPACE}{label}}}%")
            level += 1
        elif self._centering:
            lines.append(f"{indent(level)}{{\\centering")

        environment = self._environment.value
        lines.append(f"{indent(level)}\\begin{{{environment}}}{{{self._format}}}\\toprule")

        for row in range(layout.rows):
            parts = [indent(level + 1)]
            for column in range(layout.columns):
                cell = (column, row)
                color = self._colors.get(cell)
                if color is not None:
                    parts.append(f"{{\\cellcolor{{{color}}}}}")
                parts.append(self._entries.get(cell, ""))
                parts.append(" " * layout.padding[cell])
                if layout.separators[cell]:
                    parts.append(" & ")

            parts.append(" \\tabularnewline")
            if row in self._midrules:
                parts.append("\\midrule")
            if row == self._end_head and self._environment is TableEnvironment.LONGTABLE:
                parts.append("\\endhead")
            if row == layout.rows - 1:
                parts.append("\\bottomrule")
            lines.append("".join(parts))

        lines.append(f"{indent(level)}\\end{{{environment}}}")
        if self._floating:
            lines.append(f"{indent(level - 1)}\\end{{table}}")
        elif self._centering:
            lines.append(f"{indent(level)}}}")
        return lines


__all__ = ["LABEL_NAMESPACE", "TABLE_POSITIONS", "Table", "TableEnvironment"]

"""pgfplots axes fed with coordinates, formulas, files or contour grids."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from texweave.core.exceptions import UsageError
from texweave.core.preamble import PreambleEntry
from texweave.core.texable import BaseBuilder
from texweave.core.utils import format_options, indent, join_options, normalise_options


if TYPE_CHECKING:
    from texweave.document import Document


CONTOUR_DEFAULTS = (
    ("contour filled", "{number=7}"),
    ("samples", "150"),
    ("shader", "interp"),
)


@dataclass(frozen=True, slots=True)
class _ExpressionSeries:
    """A formula or a data file, told apart when the axis is serialized."""

    expression: str
    options: dict[str, str] = field(default_factory=dict)


_Item = str | _ExpressionSeries


def _addplot(options: Mapping[str, str], command: str = "\\addplot") -> str:
    return f"{command}+{format_options(options)}" if options else command


def _as_rows(data: Any) -> list[list[Any]]:
    try:
        rows = [list(row) for row in data]
    except TypeError as exc:
        raise UsageError("Only 2D and 3D arrays are supported") from exc
    if len(rows) not in (2, 3) or len({len(row) for row in rows}) != 1:
        raise UsageError("Only 2D and 3D arrays are supported")
    return rows


class PgfPlots(BaseBuilder):
    """Fluent builder for a pgfplots ``axis`` environment.

    Axis options are collected as key-value pairs. Series are added with
    :meth:`plot`, which accepts a formula, the path of a data file, or an
    array with two (x, y) or three (x, y, z) rows.
    """

    def __init__(self) -> None:
        super().__init__()
        self._options: dict[str, str] = {}
        self._items: list[_Item] = []
        self._estimated_rows = 0
        self.use_packages("pgfplots")
        self.compat("newest")

    @classmethod
    def of(
        cls, data: Any, legend: str | None = None, options: Mapping[str, str | None] | None = None
    ) -> PgfPlots:
        return cls().plot(data, legend, options)

    @classmethod
    def contour_of(
        cls,
        x: Sequence[float],
        y: Sequence[float],
        z: Sequence[Sequence[float]],
        options: Mapping[str, str | None] | None = None,
    ) -> PgfPlots:
        return cls().contour(x, y, z, options)

    @property
    def options(self) -> dict[str, str]:
        return dict(self._options)

    @property
    def estimated_rows(self) -> int:
        """Distinct x values of the last 3D series, a guess at the mesh size."""
        return self._estimated_rows

    def copy(self) -> PgfPlots:
        clone = PgfPlots()
        clone._options = dict(self._options)
        clone._items = list(self._items)
        clone._estimated_rows = self._estimated_rows
        clone._packages = list(self._packages)
        clone._preamble = list(self._preamble)
        return clone

    def add(self, line: str) -> PgfPlots:
        self._items.append(line)
        return self

    def add_options(self, options: Mapping[str, str | None]) -> PgfPlots:
        self._options.update(normalise_options(options))
        return self

    def grid(self) -> PgfPlots:
        return self.add_options({"grid": "major"})

    def xlabel(self, label: str) -> PgfPlots:
        return self.add_options({"xlabel": label})

    def ylabel(self, label: str) -> PgfPlots:
        return self.add_options({"ylabel": label})

    def clabel(self, label: str) -> PgfPlots:
        """Label the colorbar."""
        return self.add_options({"colorbar style": f"{{ylabel={{{label}}}}}"})

    def title(self, title: str) -> PgfPlots:
        return self.add_options({"title": f"{{{title}}}"})

    def plot(
        self, data: Any, legend: str | None = None, options: Mapping[str, str | None] | None = None
    ) -> PgfPlots:
        plot_options = normalise_options(options)
        if isinstance(data, (str, Path)):
            self._items.append(_ExpressionSeries(str(data), plot_options))
        else:
            rows = _as_rows(data)
            command = "\\addplot" if len(rows) == 2 else "\\addplot3"
            self.add(f"{_addplot(plot_options, command)} coordinates {{")
            for point in zip(*rows):
                self.add(f"{indent(1)}({','.join(str(value) for value in point)})")
            self.add("};")
            if len(rows) == 3:
                self._estimated_rows = len(set(rows[0]))

        if legend is not None:
            self.add(f"\\addlegendentry{{{legend}}}")
        return self

    def contour(
        self,
        x: Sequence[float],
        y: Sequence[float],
        z: Sequence[Sequence[float]],
        options: Mapping[str, str | None] | None = None,
    ) -> PgfPlots:
        """Add a filled contour plot of ``z`` sampled on the ``x`` by ``y`` grid."""
        self.add_options({"view": "{0}{90}", "colorbar": ""})
        user_options = normalise_options(options)

        plot_options = {"surf": "", "mesh/rows": str(len(x)), "mesh/cols": str(len(y))}
        plot_options.update(user_options)
        for key, value in CONTOUR_DEFAULTS:
            plot_options.setdefault(key, value)

        flat = [value for row in z for value in row]
        self.add(f"\\addplot3{format_options(plot_options)} table {{")
        self.add(f"{indent(1)}X Y Z")
        for i, x_value in enumerate(x):
            for j, y_value in enumerate(y):
                self.add(f"{indent(1)}{x_value} {y_value} {flat[i * len(y) + j]}")
        self.add("};")
        return self

    def tikz_libraries(self, *libraries: str) -> PgfPlots:
        return self._library_entry("\\usetikzlibrary", libraries)

    def pgf_libraries(self, *libraries: str) -> PgfPlots:
        return self._library_entry("\\usepgflibrary", libraries)

    def pgfplots_libraries(self, *libraries: str) -> PgfPlots:
        return self._library_entry("\\usepgfplotslibrary", libraries)

    def gd_libraries(self, *libraries: str) -> PgfPlots:
        return self._library_entry("\\usegdlibrary", libraries)

    def compat(self, compat: str) -> PgfPlots:
        self._preamble.append(PreambleEntry.mergeable("\\pgfplotsset", {"compat": compat}))
        return self

    def _render_item(self, item: _Item) -> str:
        if isinstance(item, str):
            return item
        source = " file " if Path(item.expression).is_file() else " "
        return f"{_addplot(item.options)}{source}{{{item.expression}}};"

    def latex_lines(self) -> list[str]:
        lines = ["\\begin{axis}", f"{indent(1)}["]
        lines.extend(
            f"{indent(2)}{join_options({key: value})}," for key, value in self._options.items()
        )
        lines.append(f"{indent(1)}]")
        lines.append("")
        lines.extend(f"{indent(1)}{self._render_item(item)}" for item in self._items)
        lines.append("\\end{axis}")
        return lines

    def standalone_document(self) -> Document:
        """Return a ``standalone`` document showing only this axis."""
        from texweave.document import Document

        from .tikz import Tikz

        plot = self.copy()
        plot.pgfplots_libraries("colormaps", "colorbrewer")
        plot.add_options(
            {
                "axis on top": "",
                "axis background/.style": "{fill=white}",
                "samples": "100",
                "legend cell align": "left",
            }
        )
        if self._estimated_rows:
            plot.add_options({"mesh/cols": str(self._estimated_rows)})

        # the cycle list has to be declared before it is referenced
        plot.add_preamble_entries(
            PreambleEntry.of("\\pgfplotsset", "cycle list/Dark2-8"),
            PreambleEntry(
                "\\pgfplotsset",
                {
                    "cycle multiindex* list": "{mark list*\\nextlist Dark2-8\\nextlist}",
                    "colormap/viridis": "",
                },
            ),
        )

        document = Document()
        document.set_repeat(1).set_clean(True)
        document.set_document_class("standalone", {"tikz": ""})
        document.add(Tikz.of(plot))
        return document

    def exec(self, filepath: str | Path) -> int:
        """Compile this axis on its own into ``filepath`` and return the exit status."""
        target = Path(filepath)
        document = self.standalone_document()
        document.set_folder(target.parent).set_filename(target.name)
        return document.exec()


__all__ = ["CONTOUR_DEFAULTS", "PgfPlots"]

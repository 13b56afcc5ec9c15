"""TikZ pictures built from free-form drawing statements."""

from __future__ import annotations

from typing import TYPE_CHECKING

from texweave.core.texable import BaseBuilder
from texweave.core.utils import indent


if TYPE_CHECKING:
    from .pgfplots import PgfPlots


class Tikz(BaseBuilder):
    """Fluent builder for a ``tikzpicture`` environment."""

    def __init__(self) -> None:
        super().__init__()
        self._options: list[str] = []
        self._lines: list[str] = []
        self._filename: str | None = None
        self.use_packages("tikz", "pgf")

    @classmethod
    def of(cls, plot: PgfPlots) -> Tikz:
        return cls().plot(plot)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    @property
    def options(self) -> tuple[str, ...]:
        return tuple(self._options)

    @property
    def filename(self) -> str | None:
        return self._filename

    def plot(self, plot: PgfPlots) -> Tikz:
        """Embed a pgfplots axis, taking over its requirements."""
        self._packages.extend(plot.needed_packages())
        self._preamble.extend(plot.preamble_entries())
        self._lines.extend(plot.latex_lines())
        return self

    def set_filename(self, filename: str | None) -> Tikz:
        """Name the externalized picture via ``\\tikzsetnextfilename``."""
        self._filename = filename
        return self

    def add(self, *lines: str) -> Tikz:
        self._lines.extend(lines)
        return self

    def add_options(self, *options: str) -> Tikz:
        for option in options:
            if option not in self._options:
                self._options.append(option)
        return self

    def node(self, name: str, label: str, *options: str, at: str | None = None) -> Tikz:
        position = f"at ({at}) " if at and at.strip() else ""
        return self.add(f"\\node[{','.join(options)}] {position}({name}) {{{label}}};")

    def draw(self, spec: str, *options: str) -> Tikz:
        return self._statement("draw", spec, options)

    def path(self, spec: str, *options: str) -> Tikz:
        return self._statement("path", spec, options)

    def fill(self, spec: str, *options: str) -> Tikz:
        return self._statement("fill", spec, options)

    def filldraw(self, spec: str, *options: str) -> Tikz:
        return self._statement("filldraw", spec, options)

    def _statement(self, command: str, spec: str, options: tuple[str, ...]) -> Tikz:
        return self.add(f"\\{command} [{','.join(options)}] {spec};")

    def tikz_libraries(self, *libraries: str) -> Tikz:
        return self._library_entry("\\usetikzlibrary", libraries)

    def pgf_libraries(self, *libraries: str) -> Tikz:
        return self._library_entry("\\usepgflibrary", libraries)

    def pgfplots_libraries(self, *libraries: str) -> Tikz:
        return self._library_entry("\\usepgfplotslibrary", libraries)

    def gd_libraries(self, *libraries: str) -> Tikz:
        return self._library_entry("\\usegdlibrary", libraries)

    def latex_lines(self) -> list[str]:
        level = 1
        lines: list[str] = []
        if self._filename is not None:
            lines.append(f"{indent(level)}\\tikzsetnextfilename{{{self._filename}}}")
        lines.append(f"{indent(level)}\\begin{{tikzpicture}}")
        if self._options:
            lines.append(f"{indent(level + 1)}[")
            lines.extend(f"{indent(level + 2)}{option}," for option in self._options)
            lines.append(f"{indent(level + 1)}]")
            lines.append("")
        lines.extend(f"{indent(level + 1)}{line}" if line else "" for line in self._lines)
        lines.append(f"{indent(level)}\\end{{tikzpicture}}")
        return lines


__all__ = ["Tikz"]

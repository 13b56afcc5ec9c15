"""Figures holding graphics, TikZ pictures or subfigures."""

from __future__ import annotations

from enum import Enum

from texweave.core.exceptions import ConfigurationError, UsageError
from texweave.core.packages import PackageDeclaration
from texweave.core.preamble import PreambleEntry
from texweave.core.texable import BaseBuilder
from texweave.core.utils import indent

from .tikz import Tikz


LABEL_NAMESPACE = "fig:"


class FigureEnvironment(Enum):
    """Float environments with the placement codes each one accepts."""

    FIGURE = ("figure", frozenset({"!", "h", "t", "b", "p"}))
    WRAPFIGURE = ("wrapfigure", frozenset({"r", "l", "i", "o"}))

    def __init__(self, tag: str, positions: frozenset[str]) -> None:
        self.tag = tag
        self.positions = positions

    def accepts(self, position: str) -> bool:
        if self is FigureEnvironment.WRAPFIGURE:
            return position.lower() in self.positions
        return position in self.positions

    def __str__(self) -> str:
        return self.tag


class Figure(BaseBuilder):
    """Fluent builder for ``figure`` and ``wrapfigure`` floats.

    A figure shows either an image (``set_path`` with an optional size) or
    a TikZ picture (``set_tikz``). When subfigures are set, they replace the
    figure's own content and are numbered ``<label>-0``, ``<label>-1``...
    """

    def __init__(self) -> None:
        super().__init__()
        self._environment = FigureEnvironment.FIGURE
        self._path = ""
        self._width = ""
        self._height = ""
        self._scale = ""
        self._position = ""
        self._breadth = ""
        self._caption = ""
        self._short_caption = ""
        self._label: str | None = None
        self._centering = True
        self._tikz: Tikz | None = None
        self._subfigures: list[Figure] = []
        self._post_subfigure_code: list[str] = []
        self._indentation: int | None = None
        self._is_subfigure = False
        self.use_packages("caption")

    @classmethod
    def of(cls, environment: FigureEnvironment) -> Figure:
        return cls().set_environment(environment)

    @property
    def environment(self) -> FigureEnvironment:
        return self._environment

    @property
    def label(self) -> str | None:
        return self._label

    @property
    def caption(self) -> str:
        return self._caption

    @property
    def position(self) -> str:
        return self._position

    @property
    def is_subfigure(self) -> bool:
        return self._is_subfigure

    @property
    def subfigures(self) -> tuple[Figure, ...]:
        return tuple(self._subfigures)

    @property
    def tikz(self) -> Tikz | None:
        return self._tikz

    @property
    def size(self) -> str:
        """Return the ``\\includegraphics`` size option, e.g. ``[scale=0.5]``."""
        parts = [
            f"{key}={value}"
            for key, value in (
                ("width", self._width),
                ("height", self._height),
                ("scale", self._scale),
            )
            if value
        ]
        return f"[{','.join(parts)}]" if parts else ""

    def set_environment(self, environment: FigureEnvironment) -> Figure:
        self._environment = environment
        return self

    def set_path(self, path: str) -> Figure:
        self._path = path
        return self

    def set_width(self, width: str) -> Figure:
        self._width = width or ""
        self._scale = ""
        return self

    def set_height(self, height: str) -> Figure:
        self._height = height or ""
        self._scale = ""
        return self

    def set_scale(self, scale: str) -> Figure:
        self._scale = scale or ""
        self._width = ""
        self._height = ""
        return self

    def set_position(self, position: str) -> Figure:
        if not self._environment.accepts(position):
            raise ConfigurationError(
                f"Unknown position argument for {self._environment}: {position!r}"
            )
        self._position = position
        return self

    def set_breadth(self, breadth: str) -> Figure:
        """Set the width of a ``wrapfigure`` or of a subfigure box."""
        self._breadth = breadth
        return self

    def set_caption(self, caption: str) -> Figure:
        self._caption = caption or ""
        return self

    def set_short_caption(self, short_caption: str) -> Figure:
        self._short_caption = short_caption or ""
        return self

    def set_label(self, label: str | None) -> Figure:
        self._label = label
        return self

    def set_centering(self, centering: bool = True) -> Figure:
        self._centering = centering
        return self

    def set_tikz(self, tikz: Tikz) -> Figure:
        self._tikz = tikz
        return self

    def set_subfigures(self, *figures: Figure) -> Figure:
        for figure in figures:
            figure._is_subfigure = True
        self._subfigures = list(figures)
        return self

    def set_post_subfigure_code(self, *code: str) -> Figure:
        """Set the snippets placed between consecutive subfigures (``\\hfill``...)."""
        self._post_subfigure_code = list(code)
        return self

    def set_indentation(self, level: int | None) -> Figure:
        self._indentation = level
        return self

    def needed_packages(self) -> list[PackageDeclaration]:
        packages = list(self._packages)
        if self._environment is FigureEnvironment.WRAPFIGURE:
            packages.append(PackageDeclaration("wrapfig"))
        if self._subfigures:
            packages.append(
                PackageDeclaration(
                    "subcaption", {"hypcap": "true"}, {"subfig": frozenset({"Figure"})}
                )
            )
            packages.append(PackageDeclaration.with_options("caption", {"hypcap": "true"}))
            for figure in self._subfigures:
                packages.extend(figure.needed_packages())
        elif self._tikz is not None:
            packages.extend(self._tikz.needed_packages())
        return packages

    def preamble_entries(self) -> list[PreambleEntry]:
        entries = list(self._preamble)
        if self._subfigures:
            for figure in self._subfigures:
                entries.extend(figure.preamble_entries())
        elif self._tikz is not None:
            entries.extend(self._tikz.preamble_entries())
        return entries

    def latex_lines(self) -> list[str]:
        level = self._indentation if self._indentation is not None else 1
        return self._render(level, self._label, self._environment)

    def _post_code(self) -> list[str]:
        if self._post_subfigure_code and len(self._post_subfigure_code) != len(self._subfigures) - 1:
            raise UsageError(
                "Expected one snippet between each pair of subfigures: "
                f"{len(self._subfigures) - 1} != {len(self._post_subfigure_code)}"
            )
        return self._post_subfigure_code

    def _render(self, level: int, label: str | None, environment: FigureEnvironment) -> list[str]:
        lines: list[str] = []
        position = f"[{self._position}]" if self._position else ""
        if environment is FigureEnvironment.WRAPFIGURE:
            lines.append(
                f"{indent(level)}\\begin{{wrapfigure}}{{{self._position}}}{{{self._breadth}}}%"
            )
        elif self._is_subfigure:
            lines.append(f"{indent(level)}\\begin{{subfigure}}{position}{{{self._breadth}}}%")
        else:
            lines.append(f"{indent(level)}\\begin{{figure}}{position}%")

        if self._centering:
            lines.append(f"{indent(level + 1)}\\centering%")

        if self._subfigures:
            post_code = self._post_code()
            last = len(self._subfigures) - 1
            for index, figure in enumerate(self._subfigures):
                child_label = f"{label}-{index}" if label is not None else figure.label
                lines.extend(figure._render(level + 1, child_label, FigureEnvironment.FIGURE))
                if index != last and index < len(post_code):
                    lines.append(f"{indent(level + 1)}{post_code[index]}%")
        elif self._tikz is not None:
            code = self._tikz.latex_lines()
            begin = 0 if self._tikz.filename is None else 1
            for index, line in enumerate(code):
                if not line:
                    lines.append("")
                    continue
                boundary = index in (begin, len(code) - 1)
                lines.append(f"{indent(level)}{line}" + ("%" if boundary else ""))
        else:
            lines.append(f"{indent(level + 1)}\\includegraphics{self.size}{{{self._path}}}%")

        if self._caption:
            short = f"[{self._short_caption}]" if self._short_caption else ""
            lines.append(f"{indent(level + 1)}\\caption{short}{{{self._caption}}}%")
        if label is not None:
            lines.append(f"{indent(level + 1)}\\label{{{LABEL_NAMESPACE}{label}}}%")

        if environment is FigureEnvironment.WRAPFIGURE:
            lines.append(f"{indent(level)}\\end{{wrapfigure}}%")
        else:
            tag = "subfigure" if self._is_subfigure else "figure"
            lines.append(f"{indent(level)}\\end{{{tag}}}%")
        return lines


__all__ = ["LABEL_NAMESPACE", "Figure", "FigureEnvironment"]

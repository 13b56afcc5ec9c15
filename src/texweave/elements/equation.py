"""Display math built from lines and nested math-mode environments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from texweave.core.exceptions import ConfigurationError, UsageError
from texweave.core.packages import PackageDeclaration
from texweave.core.preamble import PreambleEntry
from texweave.core.texable import BaseBuilder
from texweave.core.utils import indent


LABEL_NAMESPACE = "eq:"


class EquationEnvironment(Enum):
    """The amsmath display environments.

    Each member carries the environment name and three capability flags:
    whether a starred (unnumbered) variant exists, whether the environment
    is only valid inside another math environment, and whether it takes an
    "equation columns" argument.
    """

    EQUATION = ("equation", True, False, False)
    ALIGN = ("align", True, False, False)
    ALIGNED = ("aligned", False, True, False)
    GATHER = ("gather", True, False, False)
    GATHERED = ("gathered", False, True, False)
    ALIGNAT = ("alignat", True, False, True)
    ALIGNEDAT = ("alignedat", False, True, True)
    CASES = ("cases", False, True, False)
    FLALIGN = ("flalign", True, False, False)
    MULTLINE = ("multline", True, False, False)
    SPLIT = ("split", False, True, False)

    def __init__(
        self, tag: str, can_be_starred: bool, math_mode_only: bool, has_columns: bool
    ) -> None:
        self.tag = tag
        self.can_be_starred = can_be_starred
        self.math_mode_only = math_mode_only
        self.has_columns = has_columns

    @property
    def single_number(self) -> bool:
        """Environments holding one numbered statement regardless of line breaks."""
        return self.tag in ("equation", "multline")

    def __str__(self) -> str:
        return self.tag


@dataclass(frozen=True, slots=True)
class EquationLine:
    """A literal line of math."""

    text: str
    ends_line: bool = True


@dataclass(frozen=True, slots=True)
class NestedEquation:
    """A math-mode-only equation embedded in its parent."""

    equation: Equation
    ends_line: bool = True


EquationItem = EquationLine | NestedEquation


def _is_intertext(text: str) -> bool:
    stripped = text.replace("\t", "").strip()
    return stripped.startswith("\\intertext") and stripped.endswith("}")


class Equation(BaseBuilder):
    """Fluent builder for display equations.

    Lines are added with :meth:`add_line`; math-mode-only environments such
    as ``cases`` are embedded with :meth:`nest`. When a label is set, every
    line that ends a statement receives ``\\label{eq:<label>-<n>}`` with a
    counter shared across the whole equation.
    """

    def __init__(self) -> None:
        super().__init__()
        self._items: list[EquationItem] = []
        self._environment = EquationEnvironment.EQUATION
        self._starred = False
        self._use_subequations = False
        self._label: str | None = None
        self._columns = 0
        self.use_packages(
            PackageDeclaration.with_incompatibility("amsmath", "breqn", requested_by=Equation)
        )

    @property
    def environment(self) -> EquationEnvironment:
        return self._environment

    @property
    def starred(self) -> bool:
        return self._starred

    @property
    def label(self) -> str | None:
        return self._label

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def items(self) -> tuple[EquationItem, ...]:
        return tuple(self._items)

    def set_environment(self, environment: EquationEnvironment, starred: bool = False) -> Equation:
        """Select the environment; the star is dropped where it does not exist."""
        self._environment = environment
        self._starred = starred and environment.can_be_starred
        return self

    def set_starred(self, starred: bool = True) -> Equation:
        self._starred = starred
        return self

    def set_label(self, label: str | None) -> Equation:
        """Set the label root; ``eq:`` is prepended when rendering."""
        self._label = label
        return self

    def set_columns(self, columns: int) -> Equation:
        """Set the number of equation columns for ``alignat``/``alignedat``."""
        self._columns = columns
        return self

    def add_line(self, text: str, ends_line: bool = True) -> Equation:
        self._items.append(EquationLine(text, ends_line))
        return self

    def add_lines(self, *lines: str) -> Equation:
        for line in lines:
            self.add_line(line)
        return self

    def add_intertext(self, text: str) -> Equation:
        """Insert a short text interjection that is never labelled."""
        return self.add_line(f"\\intertext{{{text}}}")

    def nest(self, equation: Equation, ends_line: bool = True) -> Equation:
        """Embed a math-mode-only equation such as ``cases`` or ``split``."""
        if not equation.environment.math_mode_only:
            raise UsageError(
                f"Cannot use a {equation.environment} environment inside a "
                f"{self._environment} environment. Use parse() to take over "
                "another top-level equation instead."
            )
        self._items.append(NestedEquation(equation, ends_line))
        return self

    def use_subequations(self, use_subequations: bool = True) -> Equation:
        """Wrap the equation in ``subequations`` to number it (4.9a), (4.9b)..."""
        self._use_subequations = use_subequations
        return self

    def parse(self, equation: Equation) -> Equation:
        """Replace environment, label and content with those of ``equation``."""
        self.set_environment(equation.environment, equation.starred)
        self.use_subequations(equation._use_subequations)
        self.set_label(equation.label)
        self._columns = equation.columns
        self._packages.extend(equation.needed_packages())
        self._preamble.extend(equation.preamble_entries())
        self._items = list(equation.items)
        return self

    def needed_packages(self) -> list[PackageDeclaration]:
        packages = list(self._packages)
        for item in self._items:
            if isinstance(item, NestedEquation):
                packages.extend(item.equation.needed_packages())
        return packages

    def preamble_entries(self) -> list[PreambleEntry]:
        entries = list(self._preamble)
        for item in self._items:
            if isinstance(item, NestedEquation):
                entries.extend(item.equation.preamble_entries())
        return entries

    def latex_lines(self) -> list[str]:
        return self._render(outermost=True)

    def _render(self, *, outermost: bool) -> list[str]:
        environment = self._environment
        starred = self._starred and environment.can_be_starred
        label = None if starred else self._label
        if environment.has_columns and self._columns <= 0:
            raise ConfigurationError(
                f"You did not specify a valid number of columns (specified: {self._columns}) "
                f"for {environment}."
            )

        lines: list[str] = []
        level = 1
        subequations = self._use_subequations and outermost
        if subequations:
            block_label = f"\\label{{{LABEL_NAMESPACE}{label}}}" if label is not None else ""
            lines.append(f"{indent(level)}\\begin{{subequations}}{block_label}")
            level += 1

        tag = environment.tag + ("*" if starred else "")
        columns = f"{{{self._columns}}}" if environment.has_columns else ""
        lines.append(f"{indent(level)}\\begin{{{tag}}}{columns}%")

        # pad text lines so that labels and line breaks line up
        content_indent = indent(level + 1)
        widths = [
            len(content_indent + item.text) if isinstance(item, EquationLine) else 0
            for item in self._items
        ]
        target = max(widths, default=0) + 1

        last = len(self._items) - 1
        counter = 0
        for index, item in enumerate(self._items):
            is_last = index == last
            if environment.single_number:
                eligible = is_last
            else:
                eligible = (item.ends_line and not is_last) or is_last
            use_label = eligible and label is not None and not environment.math_mode_only
            current_label = f"\\label{{{LABEL_NAMESPACE}{label}-{counter}}}"

            if isinstance(item, NestedEquation):
                for line in item.equation._render(outermost=False):
                    lines.append(indent(level) + line)
                if use_label:
                    lines.append(content_indent + current_label)
                    counter += 1
                continue

            ends_line = item.ends_line
            if _is_intertext(item.text):
                use_label = False
                ends_line = False
            lines.append(
                content_indent
                + item.text
                + " " * (target - widths[index])
                + (current_label if use_label else "")
                + ("\\\\%" if ends_line and not is_last else "")
            )
            if use_label:
                counter += 1

        lines.append(f"{indent(level)}\\end{{{tag}}}%")
        if subequations:
            lines.append(f"{indent(level - 1)}\\end{{subequations}}")
        return lines


__all__ = [
    "LABEL_NAMESPACE",
    "Equation",
    "EquationEnvironment",
    "EquationItem",
    "EquationLine",
    "NestedEquation",
]

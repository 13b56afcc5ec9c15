from __future__ import annotations

import pytest

from texweave.core.exceptions import ConfigurationError, UsageError
from texweave.elements.equation import Equation, EquationEnvironment


def _labels(lines: list[str]) -> list[str]:
    return [line for line in lines if "\\label" in line]


def test_equation_holds_a_single_label() -> None:
    lines = Equation().set_label("L").add_lines("a", "b").latex_lines()
    assert lines == [
        "    \\begin{equation}%",
        "        a \\\\%",
        "        b \\label{eq:L-0}",
        "    \\end{equation}%",
    ]


def test_align_labels_every_ended_line() -> None:
    lines = (
        Equation()
        .set_environment(EquationEnvironment.ALIGN)
        .set_label("L")
        .add_lines("a", "b")
        .latex_lines()
    )
    assert lines == [
        "    \\begin{align}%",
        "        a \\label{eq:L-0}\\\\%",
        "        b \\label{eq:L-1}",
        "    \\end{align}%",
    ]


def test_continued_lines_share_a_label() -> None:
    lines = (
        Equation()
        .set_environment(EquationEnvironment.ALIGN)
        .set_label("L")
        .add_line("x &= a", ends_line=False)
        .add_line("+ b")
        .latex_lines()
    )
    assert len(_labels(lines)) == 1
    assert lines[2].endswith("\\label{eq:L-0}")


def test_lines_are_padded_to_a_common_column() -> None:
    lines = Equation().set_environment(EquationEnvironment.ALIGN).add_lines("x", "long").latex_lines()
    assert lines[1] == "        x    \\\\%"
    assert lines[2] == "        long "


@pytest.mark.parametrize("environment", [EquationEnvironment.EQUATION, EquationEnvironment.ALIGN])
def test_starred_equations_carry_no_label(environment: EquationEnvironment) -> None:
    equation = Equation().set_environment(environment, starred=True).set_label("L").add_lines("a", "b")
    lines = equation.latex_lines()
    assert lines[0] == f"    \\begin{{{environment}*}}%"
    assert not _labels(lines)


def test_star_is_ignored_where_it_does_not_exist() -> None:
    equation = Equation().set_environment(EquationEnvironment.CASES, starred=True)
    assert equation.starred is False


def test_cases_nest_inside_align() -> None:
    cases = (
        Equation()
        .set_environment(EquationEnvironment.CASES)
        .add_line("1 & x > 0")
        .add_line("0 & x \\le 0")
    )
    lines = (
        Equation()
        .set_environment(EquationEnvironment.ALIGN)
        .add_line("f(x) &= ", ends_line=False)
        .nest(cases)
        .latex_lines()
    )
    assert lines == [
        "    \\begin{align}%",
        "        f(x) &=  ",
        "        \\begin{cases}%",
        "            1 & x > 0   \\\\%",
        "            0 & x \\le 0 ",
        "        \\end{cases}%",
        "    \\end{align}%",
    ]
    assert sum("\\begin{align}" in line for line in lines) == 1


def test_nested_equation_gets_parent_label_line() -> None:
    cases = Equation().set_environment(EquationEnvironment.CASES).add_line("1")
    lines = (
        Equation()
        .set_environment(EquationEnvironment.ALIGN)
        .set_label("f")
        .add_line("f(x) &= ", ends_line=False)
        .nest(cases)
        .latex_lines()
    )
    assert lines[-2] == "        \\label{eq:f-0}"


def test_nesting_top_level_environment_fails() -> None:
    with pytest.raises(UsageError):
        Equation().nest(Equation().set_environment(EquationEnvironment.EQUATION))


def test_alignat_requires_columns() -> None:
    equation = Equation().set_environment(EquationEnvironment.ALIGNAT).add_line("a &= b")
    with pytest.raises(ConfigurationError):
        equation.latex_lines()

    equation.set_columns(2)
    assert equation.latex_lines()[0] == "    \\begin{alignat}{2}%"


def test_alignedat_requires_columns_when_nested() -> None:
    inner = Equation().set_environment(EquationEnvironment.ALIGNEDAT).add_line("a")
    outer = Equation().nest(inner)
    with pytest.raises(ConfigurationError):
        outer.latex_lines()


def test_intertext_is_never_labelled() -> None:
    lines = (
        Equation()
        .set_environment(EquationEnvironment.ALIGN)
        .set_label("L")
        .add_line("a")
        .add_intertext("so")
        .add_line("b")
        .latex_lines()
    )
    intertext = next(line for line in lines if "\\intertext" in line)
    assert "\\label" not in intertext
    assert not intertext.endswith("\\\\%")
    labels = _labels(lines)
    assert len(labels) == 2
    assert "\\label{eq:L-0}" in labels[0]
    assert "\\label{eq:L-1}" in labels[1]


def test_subequations_block_carries_the_label() -> None:
    lines = (
        Equation()
        .set_environment(EquationEnvironment.ALIGN)
        .set_label("S")
        .use_subequations()
        .add_lines("a", "b")
        .latex_lines()
    )
    assert lines[0] == "    \\begin{subequations}\\label{eq:S}"
    assert lines[1] == "        \\begin{align}%"
    assert lines[-2] == "        \\end{align}%"
    assert lines[-1] == "    \\end{subequations}"


def test_parse_takes_over_another_equation() -> None:
    source = Equation().set_environment(EquationEnvironment.GATHER).set_label("g").add_line("x")
    target = Equation().add_line("ignored").parse(source)
    assert target.environment is EquationEnvironment.GATHER
    assert target.label == "g"
    assert "ignored" not in str(target)


def test_equation_requires_amsmath_and_warns_about_breqn() -> None:
    (amsmath,) = Equation().needed_packages()
    assert amsmath.name == "amsmath"
    assert amsmath.incompatible_with == {"breqn": frozenset({"Equation"})}

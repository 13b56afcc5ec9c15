from __future__ import annotations

import pytest

from texweave.core.exceptions import ConfigurationError, UsageError
from texweave.elements.figure import Figure, FigureEnvironment
from texweave.elements.tikz import Tikz


def test_scale_and_size_are_mutually_exclusive() -> None:
    figure = Figure().set_width("3cm").set_scale("0.5")
    assert figure.size == "[scale=0.5]"

    figure.set_width("3cm").set_height("2cm")
    assert figure.size == "[width=3cm,height=2cm]"


def test_image_figure() -> None:
    lines = Figure().set_path("img.png").set_caption("Cap").set_label("f").latex_lines()
    assert lines == [
        "    \\begin{figure}%",
        "        \\centering%",
        "        \\includegraphics{img.png}%",
        "        \\caption{Cap}%",
        "        \\label{fig:f}%",
        "    \\end{figure}%",
    ]


def test_position_and_short_caption() -> None:
    lines = (
        Figure()
        .set_path("img.png")
        .set_position("h")
        .set_caption("A long caption")
        .set_short_caption("Short")
        .set_centering(False)
        .latex_lines()
    )
    assert lines[0] == "    \\begin{figure}[h]%"
    assert "        \\caption[Short]{A long caption}%" in lines
    assert not any("\\centering" in line for line in lines)


def test_position_is_validated_per_environment() -> None:
    with pytest.raises(ConfigurationError):
        Figure().set_position("r")
    with pytest.raises(ConfigurationError):
        Figure.of(FigureEnvironment.WRAPFIGURE).set_position("h")

    figure = Figure.of(FigureEnvironment.WRAPFIGURE).set_position("R").set_breadth("5cm")
    assert figure.latex_lines()[0] == "    \\begin{wrapfigure}{R}{5cm}%"
    assert "wrapfig" in [package.name for package in figure.needed_packages()]


def test_subfigures_are_numbered_from_parent_label() -> None:
    left = Figure().set_path("a.png").set_breadth("0.45\\textwidth")
    right = Figure().set_path("b.png").set_breadth("0.45\\textwidth")
    parent = (
        Figure()
        .set_subfigures(left, right)
        .set_post_subfigure_code("\\hfill")
        .set_caption("Both")
        .set_label("p")
    )
    lines = parent.latex_lines()

    assert "        \\begin{subfigure}{0.45\\textwidth}%" in lines
    assert "            \\label{fig:p-0}%" in lines
    assert "            \\label{fig:p-1}%" in lines
    assert "        \\hfill%" in lines
    assert "        \\label{fig:p}%" in lines
    assert lines.count("        \\end{subfigure}%") == 2
    assert left.label is None
    assert parent.latex_lines() == lines


def test_subfigure_packages() -> None:
    parent = Figure().set_subfigures(Figure().set_path("a.png"))
    packages = {package.name: package for package in parent.needed_packages()}
    assert packages["subcaption"].options == {"hypcap": "true"}
    assert packages["subcaption"].incompatible_with == {"subfig": frozenset({"Figure"})}


def test_post_subfigure_code_must_match_gaps() -> None:
    parent = Figure().set_subfigures(Figure(), Figure(), Figure()).set_post_subfigure_code("\\hfill")
    with pytest.raises(UsageError):
        parent.latex_lines()


def test_tikz_figure_marks_boundaries() -> None:
    tikz = Tikz().draw("(0,0) -- (1,1)")
    lines = Figure().set_tikz(tikz).latex_lines()
    assert lines[2] == "        \\begin{tikzpicture}%"
    assert lines[3] == "            \\draw [] (0,0) -- (1,1);"
    assert lines[4] == "        \\end{tikzpicture}%"
    assert {"tikz", "pgf"} <= {package.name for package in Figure().set_tikz(tikz).needed_packages()}


def test_named_tikz_figure_marks_the_picture_not_the_filename() -> None:
    tikz = Tikz().set_filename("sketch").draw("(0,0) -- (1,1)")
    lines = Figure().set_tikz(tikz).latex_lines()
    assert lines[2] == "        \\tikzsetnextfilename{sketch}"
    assert lines[3] == "        \\begin{tikzpicture}%"
    assert lines[-2] == "        \\end{tikzpicture}%"


def test_indentation_shifts_the_whole_figure() -> None:
    lines = Figure().set_path("img.png").set_indentation(2).latex_lines()
    assert lines == [
        "        \\begin{figure}%",
        "            \\centering%",
        "            \\includegraphics{img.png}%",
        "        \\end{figure}%",
    ]

    default = Figure().set_path("img.png").set_indentation(None).latex_lines()
    assert default[0] == "    \\begin{figure}%"

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from texweave.core.config import DocumentManifest
from texweave.core.diagnostics import CollectingEmitter
from texweave.core.exceptions import ConfigurationError, UsageError
from texweave.core.packages import PackageDeclaration
from texweave.document import Document
from texweave.elements.equation import Equation, EquationEnvironment
from texweave.elements.tikz import Tikz


class ClassX:
    pass


def _article(emitter: CollectingEmitter | None = None) -> Document:
    return Document(emitter=emitter).set_document_class("article")


def test_minimal_document() -> None:
    source = _article().add("Hello").build()
    assert source == (
        "% !TEX program = lualatex\n"
        "% !TEX encoding = UTF-8 Unicode\n"
        "\n"
        "\\documentclass{article}\n"
        "\n"
        "\\begin{document}\n"
        "    Hello\n"
        "\\end{document}\n"
    )


def test_build_without_class_fails() -> None:
    with pytest.raises(ConfigurationError):
        Document().build()


def test_build_is_repeatable() -> None:
    document = _article().set_title("T").add(Equation().add_line("x"))
    assert document.build() == document.build()
    assert str(document) == document.build()


def test_incompatible_packages_detected() -> None:
    emitter = CollectingEmitter()
    document = _article(emitter).use_packages(
        PackageDeclaration.with_incompatibility("a", "b", requested_by=ClassX),
        PackageDeclaration("b"),
    )
    assert document.check_incompatible_packages() is True
    assert emitter.warnings


def test_compatible_packages_pass() -> None:
    emitter = CollectingEmitter()
    document = _article(emitter).use_packages(
        PackageDeclaration.with_incompatibility("a", "b", requested_by=ClassX),
        PackageDeclaration("c"),
    )
    assert document.check_incompatible_packages() is False
    assert not emitter.warnings


def test_adding_builder_reports_clash_through_logging(caplog: pytest.LogCaptureFixture) -> None:
    document = _article().use_packages("breqn")
    with caplog.at_level(logging.WARNING, logger="texweave.document"):
        document.add(Equation().add_line("x"))
    assert any("breqn" in record.getMessage() for record in caplog.records)


def test_document_options_win_over_builder_options() -> None:
    document = _article().use_package_with_option("amsmath", "fleqn")
    document.add(Equation().add_line("x"))
    (amsmath,) = [package for package in document.packages if package.name == "amsmath"]
    assert amsmath.options == {"fleqn": ""}
    assert amsmath.incompatible_with == {"breqn": frozenset({"Equation"})}
    assert "\\usepackage[fleqn]{amsmath}" in document.build()


def test_builder_library_entries_share_one_line() -> None:
    document = _article()
    document.add(Tikz().tikz_libraries("calc").draw("(0,0) -- (1,0)"))
    document.add(Tikz().tikz_libraries("arrows.meta"))
    source = document.build()
    assert source.count("\\usetikzlibrary") == 1
    assert "\\usetikzlibrary{calc,arrows.meta}" in source


def test_document_library_helpers_emit_one_line_per_library() -> None:
    source = _article().tikz_libraries("calc", "positioning").build()
    assert "\\usepackage{tikz}" in source
    assert "\\usetikzlibrary{calc}\n\\usetikzlibrary{positioning}" in source


def test_sectioning_labels() -> None:
    document = _article().chapter("One").section("Intro", label="intro").subsubsection("Deep", "deep")
    assert document.body == (
        "    \\chapter{One}",
        "    \\section{Intro}\\label{sec:intro}",
        "    \\subsubsection{Deep}\\label{sec:deep}",
    )


def test_equation_helpers() -> None:
    document = _article().labeled_equation("energy", "E = mc^2")
    document.equation("a &= b", "c &= d", environment=EquationEnvironment.ALIGN)
    body = "\n".join(document.body)
    assert "\\label{eq:energy-0}" in body
    assert "\\begin{align}%" in body


def test_title_page_on_standard_class_uses_scrextend() -> None:
    source = _article().set_title("Report").set_authors("Ann\\thanks{Lab}", "Bob").build()
    assert "\\usepackage[extendedfeature=title]{scrextend}" in source
    assert "% titlepage" in source
    assert "\\title{\\color{black}Report}" in source
    assert "\\author{Ann\\thanks{Lab}\\and Bob}" in source
    assert "pdfauthor={Ann,Bob}" in source
    assert "    \\maketitle\n" in source


def test_title_page_dropped_for_unknown_class() -> None:
    source = Document().set_document_class("beamer").set_title("Talk").build()
    assert "% titlepage" not in source
    assert "\\maketitle" not in source


def test_koma_headers_and_colors() -> None:
    source = (
        Document()
        .set_document_class("scrartcl")
        .set_color_scheme("blue", "gray")
        .left_header("odd", "even")
        .use_packages("caption")
        .build()
    )
    assert "\\usepackage{scrlayer-scrpage}" in source
    assert "\\clearpairofpagestyles\n\\lehead{even}\n\\lohead{odd}" in source
    assert "\\captionsetup{labelfont+={color={blue}}}" in source
    assert "\\addtokomafont{footnoterule}{\\color{gray}}" in source
    assert "\\addtokomafont{section}{\\color{blue}}" in source
    assert "\\addtokomafont{chapter}" not in source


def test_color_scheme_can_be_disabled() -> None:
    source = Document().set_document_class("scrreprt").set_color_scheme(None, None).build()
    assert "\\addtokomafont" not in source


def test_bibliography_toggle() -> None:
    document = _article().set_bibfile("refs")
    source = document.build()
    assert "% !BIB program = biber" in source
    assert "\\addbibresource{refs.bib}" in source
    assert "backend=biber" in source
    assert "\\setcounter{biburllcpenalty}{7000}" in source

    source = document.set_bibliography(False).build()
    assert "biblatex" not in source
    assert "biburllcpenalty" not in source


def test_lists_disable_protrusion_with_microtype() -> None:
    document = _article().use_packages("microtype").toc().lof()
    assert document.body == (
        "    {\\microtypesetup{protrusion=false}\\tableofcontents}",
        "    {\\microtypesetup{protrusion=false}\\listoffigures}",
    )
    assert _article().lot().body == ("    \\listoftables",)


def test_unbalanced_environments_warn() -> None:
    emitter = CollectingEmitter()
    document = _article(emitter).begin_env("center").add("x")
    document.build()
    assert any("center" in warning for warning in emitter.warnings)

    emitter.warnings.clear()
    document.end_env("center").build()
    assert not emitter.warnings

    document.end_env("flushleft")
    assert any("flushleft" in warning for warning in emitter.warnings)


def test_required_packages_precede_document_class() -> None:
    source = _article().require_package("fix-cm").build()
    assert source.index("\\RequirePackage{fix-cm}") < source.index("\\documentclass")


def test_adding_unknown_objects_fails() -> None:
    with pytest.raises(UsageError):
        _article().add(42)  # type: ignore[arg-type]


def test_repeat_must_be_positive() -> None:
    with pytest.raises(ConfigurationError):
        Document().set_repeat(0)


def test_merging_documents_keeps_explicit_settings() -> None:
    target = _article().set_folder("out").add("first")
    source = Document().set_repeat(1).add("second").use_packages("siunitx")
    target.add(source)

    assert target.settings.repeat == 1
    assert target.settings.folder == Path("out")
    assert target.body == ("    first", "    second")
    assert target.has_package("siunitx")
    assert target.document_class == "article"


def test_copy_is_independent() -> None:
    original = _article().set_repeat(2).add("x")
    clone = original.copy().add("y")
    assert original.body == ("    x",)
    assert clone.body == ("    x", "    y")
    assert clone.settings.repeat == 2


def test_open_environments_survive_copy_and_merge() -> None:
    emitter = CollectingEmitter()
    original = _article(emitter).begin_env("center").add("x")
    clone = original.copy()

    clone.build()
    assert any("center" in warning for warning in emitter.warnings)

    emitter.warnings.clear()
    clone.end_env("center").build()
    assert not emitter.warnings

    original.build()
    assert any("center" in warning for warning in emitter.warnings)

    emitter.warnings.clear()
    target = _article(emitter).begin_env("figure")
    target.add(Document(emitter=emitter).begin_env("center"))
    target.end_env("center").end_env("figure").build()
    assert not emitter.warnings


def test_save_uses_title_slug(tmp_path: Path) -> None:
    emitter = CollectingEmitter()
    document = _article(emitter).set_title("My Report").set_folder(tmp_path / "build")
    path = document.save(show_path=True)

    assert path == tmp_path / "build" / "my-report.tex"
    assert path.read_text(encoding="utf-8") == document.build()
    assert emitter.events == [("file_saved", {"path": str(path)})]


def test_externalize_creates_folder(tmp_path: Path) -> None:
    source = _article().set_folder(tmp_path).externalize("figures").build()
    assert (tmp_path / "figures").is_dir()
    assert "\\usetikzlibrary{external}" in source
    assert "\\tikzexternalize[prefix=figures/]" in source
    assert "\\usepackage{shellesc}" in source


def test_standard_preset() -> None:
    source = Document.standard().set_filename("demo.tex").section("Energy", label="energy").build()
    assert source.startswith("% !TEX program = lualatex\n")
    assert "\\documentclass[a4paper,DIV=calc,BCOR=8mm,headinclude," in source
    assert "\\usepackage[fleqn]{amsmath}" in source
    assert "\\usepackage[automark]{scrlayer-scrpage}" in source
    assert "\\lehead{\\leftmark}" in source
    assert "\\rohead{\\rightmark}" in source
    assert "\\lefoot{\\pagemark}" in source
    assert "\\rofoot{\\pagemark}" in source
    assert "\\addtokomafont{section}{\\color{red!31.372549019!black}}" in source
    assert "\\setmainfont{Latin Modern Roman}" in source
    assert "    \\section{Energy}\\label{sec:energy}" in source


def test_from_manifest() -> None:
    manifest = DocumentManifest.model_validate(
        {
            "class": "article",
            "packages": ["siunitx", {"name": "hyperref", "options": {"hidelinks": ""}}],
            "preamble": ["\\newcommand{\\R}{\\mathbb{R}}"],
            "settings": {"title": "Manifest"},
            "toc": True,
            "body": [
                {"kind": "section", "title": "Intro", "label": "intro"},
                {"kind": "text", "text": "Some text."},
                {"kind": "equation", "environment": "align", "lines": ["a &= b"], "label": "e"},
                {"kind": "figure", "path": "img.png", "caption": "Image", "width": "3cm"},
                {"kind": "table", "format": ["l", "r"], "rows": [["a", "1"]], "caption": "T"},
            ],
        }
    )
    source = Document.from_manifest(manifest).build()

    assert "\\usepackage{siunitx}" in source
    assert "hidelinks" in source
    assert "\\newcommand{\\R}{\\mathbb{R}}" in source
    assert "\\title{\\color{black}Manifest}" in source
    assert "    \\tableofcontents" in source
    assert "\\label{eq:e-0}" in source
    assert "\\includegraphics[width=3cm]{img.png}%" in source
    assert "\\caption{T}%" in source


def test_from_manifest_rejects_unknown_equation_environment() -> None:
    manifest = DocumentManifest.model_validate(
        {"class": "article", "body": [{"kind": "equation", "environment": "eqnarray", "lines": ["x"]}]}
    )
    with pytest.raises(ConfigurationError):
        Document.from_manifest(manifest)

from __future__ import annotations

from datetime import date
from pathlib import Path

from texweave.core.preamble import PreambleEntry
from texweave.core.texable import BaseBuilder
from texweave.templates.letter import KomaLetter


class Sender(BaseBuilder):
    def __init__(self) -> None:
        super().__init__()
        self.use_package_with_options("babel", {"main": "english"})
        self.use_packages("fontspec", "phonenumbers")
        self.add_preamble_entries(PreambleEntry("\\setkomavar{fromname}{Ada Lovelace}"))

    def latex_lines(self) -> list[str]:
        return []


def _letter(tmp_path: Path) -> KomaLetter:
    return (
        KomaLetter(tmp_path / "letters" / "reply.tex")
        .set_user(Sender())
        .set_recipient("Charles Babbage", street="Dorset Street 1", city="London")
        .set_subject("Engine")
        .set_date(date(1843, 7, 10))
        .set_opening("Dear Charles,")
        .write("First paragraph.", "Second paragraph.")
        .set_closing("Yours,")
        .set_enclosures("Notes")
    )


def test_body_is_rendered_from_the_template(tmp_path: Path) -> None:
    assert _letter(tmp_path).render_body() == [
        "\\begin{letter}{}",
        "    \\opening{Dear Charles,}",
        "    First paragraph.",
        "",
        "    Second paragraph.",
        "",
        "    \\closing{Yours,}",
        "    \\encl{",
        "        Notes\\\\",
        "    }",
        "\\end{letter}",
    ]


def test_optional_closing_material_is_skipped(tmp_path: Path) -> None:
    lines = KomaLetter(tmp_path / "a.tex").write("Hi.").render_body()
    assert lines == ["\\begin{letter}{}", "    Hi.", "", "\\end{letter}"]


def test_letter_source(tmp_path: Path) -> None:
    source = _letter(tmp_path).build()

    assert source.index("\\documentclass[version=last]{scrlttr2}") < source.index("\\begin{document}")
    assert "\\usepackage[main=english]{babel}" in source
    assert "\\usepackage{fontspec}" in source
    assert source.count("\\usepackage{phonenumbers}") == 1
    assert "\\setkomavar{fromname}{Ada Lovelace}" in source
    assert "\\setkomavar{toname}{Charles Babbage}" in source
    assert "\\setkomavar{toaddress}{Dorset Street 1\\\\London\\\\}" in source
    assert "\\setkomavar{subject}{Engine}" in source
    assert "\\setkomavar{date}{\\DTMdisplaydate{1843}{7}{10}{-1}}" in source
    assert "foldmarks=TBMPL" in source
    assert source.index("\\layout") < source.index("\\begin{document}")
    assert "    \\begin{letter}{}" in source


def test_language_overrides_the_sender(tmp_path: Path) -> None:
    source = _letter(tmp_path).set_language("ngerman").build()
    assert "\\usepackage[main=ngerman]{babel}" in source


def test_foldmarks_can_be_disabled(tmp_path: Path) -> None:
    source = _letter(tmp_path).set_foldmarks(None).set_smaller(False).build()
    assert "foldmarks=off" in source
    assert "\\setboolean{smaller}{false}\n\n\\setkomavar{toname}" in source


def test_document_targets_the_letter_file(tmp_path: Path) -> None:
    document = _letter(tmp_path).set_clean(True, "out").document()
    assert document.settings.source_path == tmp_path / "letters" / "reply.tex"
    assert document.settings.clean is True
    assert "out" in document.settings.clean_extensions
    assert document.settings.compiler.executable == "lualatex"

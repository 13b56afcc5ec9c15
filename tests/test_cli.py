from __future__ import annotations

import importlib
from pathlib import Path

import pytest
from typer.testing import CliRunner

import texweave
from texweave.core.exceptions import ConfigurationError
from texweave.ui.cli import app
from texweave.ui.cli.commands import load_manifest


engines_module = importlib.import_module("texweave.ui.cli.commands.engines")


MANIFEST = """\
class: article
packages:
  - siunitx
settings:
  title: Notes
body:
  - kind: section
    title: Intro
    label: intro
  - kind: text
    text: Hello.
"""


def _manifest(tmp_path: Path, text: str = MANIFEST) -> Path:
    path = tmp_path / "doc.yml"
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_version_flag() -> None:
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 0, result.stdout
    assert result.stdout.strip() == texweave.get_version()


def test_build_writes_source(tmp_path: Path) -> None:
    target = tmp_path / "out" / "notes.tex"
    result = CliRunner().invoke(app, ["build", str(_manifest(tmp_path)), "--output", str(target)])

    assert result.exit_code == 0, result.output
    source = target.read_text(encoding="utf-8")
    assert "\\documentclass{article}" in source
    assert "\\section{Intro}\\label{sec:intro}" in source
    assert "    Hello." in source


def test_build_defaults_next_to_the_manifest(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["build", str(_manifest(tmp_path))])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "notes.tex").is_file()


def test_build_rejects_invalid_yaml(tmp_path: Path) -> None:
    path = _manifest(tmp_path, "class: [article\n")
    result = CliRunner().invoke(app, ["build", str(path)])
    assert result.exit_code == 1
    assert not list(tmp_path.glob("*.tex"))


def test_load_manifest_rejects_unknown_keys(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_manifest(_manifest(tmp_path, "class: article\ncolour: red\n"))


def test_load_manifest_requires_a_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_manifest(_manifest(tmp_path, "- article\n"))


def test_engines_lists_missing_binaries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(engines_module.shutil, "which", lambda name: None)
    result = CliRunner().invoke(app, ["engines"])
    assert result.exit_code == 0, result.output
    assert "lualatex" in result.stdout
    assert "missing" in result.stdout

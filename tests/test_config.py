from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError
import pytest

from texweave.core.config import (
    DocumentManifest,
    DocumentSettings,
    EquationBlock,
    SectionBlock,
    TexCompiler,
)


def test_settings_defaults() -> None:
    settings = DocumentSettings()
    assert settings.compiler is TexCompiler.LUALATEX
    assert settings.repeat == 3
    assert settings.clean_extensions == ("aux", "bbl", "log")
    assert settings.primary_color == "black"
    assert settings.resolved_filename() == "document.tex"


def test_filename_falls_back_to_title_slug(tmp_path: Path) -> None:
    settings = DocumentSettings(title="Über große Flüsse", folder=tmp_path)
    assert settings.resolved_filename() == "uber-grosse-flusse.tex"
    assert settings.jobname == "uber-grosse-flusse"
    assert settings.source_path == tmp_path / "uber-grosse-flusse.tex"


def test_explicit_filename_gets_tex_suffix() -> None:
    assert DocumentSettings(filename="report").resolved_filename() == "report.tex"
    assert DocumentSettings(filename="report.tex").resolved_filename() == "report.tex"


def test_merged_with_only_carries_explicit_fields() -> None:
    base = DocumentSettings(repeat=5, title="Base")
    override = DocumentSettings()
    override.clean = True

    merged = base.merged_with(override)
    assert merged.repeat == 5
    assert merged.title == "Base"
    assert merged.clean is True
    assert base.clean is False


def test_header_needs_six_slots() -> None:
    with pytest.raises(ValidationError):
        DocumentSettings(header=("a", "b"))


def test_clean_extensions_drop_leading_dots() -> None:
    settings = DocumentSettings(clean_extensions=(".aux", "log", ".aux"))
    assert settings.clean_extensions == ("aux", "log")


def test_unknown_settings_are_rejected() -> None:
    with pytest.raises(ValidationError):
        DocumentSettings.model_validate({"engine": "lualatex"})


def test_manifest_parses_body_blocks() -> None:
    manifest = DocumentManifest.model_validate(
        {
            "class": "article",
            "class_options": {"12pt": ""},
            "body": [
                {"kind": "section", "title": "Intro", "label": "intro"},
                {"kind": "equation", "lines": ["a = b"]},
            ],
        }
    )
    assert manifest.document_class == "article"
    assert isinstance(manifest.body[0], SectionBlock)
    assert isinstance(manifest.body[1], EquationBlock)
    assert manifest.body[1].environment == "equation"


def test_manifest_rejects_unknown_block_kind() -> None:
    with pytest.raises(ValidationError):
        DocumentManifest.model_validate({"body": [{"kind": "poem", "text": "roses"}]})

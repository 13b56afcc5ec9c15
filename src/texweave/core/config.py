"""Configuration models for documents and build manifests.

DocumentSettings

`compiler` (`TexCompiler`)
: TeX engine used when the document is compiled. Defaults to LuaLaTeX.

`folder` (`Path`)
: Directory receiving the `.tex` source and every artifact of the engine.

`filename` (`str | None`)
: Name of the `.tex` file. Falls back to a slug of the title, then to
  `document.tex`.

`repeat` (`int`)
: Number of engine passes, so that cross references settle.

`clean` / `clean_extensions`
: Remove auxiliary files with the listed extensions after compiling.

`color_scheme` (`tuple[str, str] | None`)
: Primary and secondary colors used for headings, captions and page furniture.

`header` / `footer` (`tuple[str | None, ...]`)
: Six KOMA-Script slots each, ordered left-even, left-odd, center-even,
  center-odd, right-even, right-odd.

`maketitle` and the title page fields
: Content of the KOMA-Script title page.

`bibliography` / `bibfile`
: Enable biblatex and name the `.bib` resource (without extension).

DocumentManifest

Declarative description of a document consumed by the command line: a preset,
the document class, packages, preamble lines, settings and a list of body
blocks.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from slugify import slugify


DEFAULT_CLEAN_EXTENSIONS = ("aux", "bbl", "log")
EMPTY_SLOTS: tuple[str | None, ...] = (None,) * 6


class TexCompiler(str, Enum):
    """TeX engines that can be invoked on a document."""

    LATEX = "latex"
    PDFLATEX = "pdflatex"
    XETEX = "xetex"
    LUALATEX = "lualatex"

    @property
    def executable(self) -> str:
        return self.value


class DocumentSettings(BaseModel):
    """Build and title page settings of a document.

    Fields assigned after construction are recorded in ``model_fields_set``,
    which :meth:`merged_with` relies on to only carry over explicit choices.
    """

    model_config = ConfigDict(extra="forbid")

    compiler: TexCompiler = TexCompiler.LUALATEX
    folder: Path = Path(".")
    filename: str | None = None
    repeat: int = Field(default=3, ge=1)
    clean: bool = False
    clean_extensions: tuple[str, ...] = DEFAULT_CLEAN_EXTENSIONS
    color_scheme: tuple[str, str] | None = ("black", "black")
    header: tuple[str | None, ...] = EMPTY_SLOTS
    footer: tuple[str | None, ...] = EMPTY_SLOTS
    maketitle: bool = False
    titlehead: str | None = None
    subject: str | None = None
    title: str | None = None
    subtitle: str | None = None
    author: str | None = None
    date: str | None = None
    publisher: str | None = None
    extratitle: str | None = None
    uppertitleback: str | None = None
    lowertitleback: str | None = None
    dedication: str | None = None
    bibliography: bool = False
    bibfile: str | None = None

    @field_validator("header", "footer")
    @classmethod
    def _six_slots(cls, value: tuple[str | None, ...]) -> tuple[str | None, ...]:
        if len(value) != 6:
            raise ValueError("Header and footer need exactly six slots.")
        return value

    @field_validator("clean_extensions")
    @classmethod
    def _strip_dots(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(ext.lstrip(".") for ext in value if ext.strip()))

    def merged_with(self, override: DocumentSettings) -> DocumentSettings:
        """Return a copy where every field explicitly set on ``override`` wins."""
        updates = {name: getattr(override, name) for name in override.model_fields_set}
        return self.model_copy(update=updates, deep=True)

    @property
    def primary_color(self) -> str | None:
        return self.color_scheme[0] if self.color_scheme else None

    @property
    def secondary_color(self) -> str | None:
        return self.color_scheme[1] if self.color_scheme else None

    def resolved_filename(self) -> str:
        """Return the `.tex` file name, derived from the title when unset."""
        name = self.filename
        if not name or not name.strip():
            name = slugify(self.title, separator="-") if self.title else ""
            name = name or "document"
        return name if name.endswith(".tex") else f"{name}.tex"

    @property
    def jobname(self) -> str:
        return Path(self.resolved_filename()).stem

    @property
    def source_path(self) -> Path:
        return self.folder / self.resolved_filename()


class PackageSpec(BaseModel):
    """A package requested from a manifest."""

    model_config = ConfigDict(extra="forbid")

    name: str
    options: dict[str, str] = Field(default_factory=dict)


class TextBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["text"] = "text"
    text: str


class SectionBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["chapter", "section", "subsection", "subsubsection"]
    title: str
    label: str | None = None


class EquationBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["equation"]
    environment: str = "equation"
    lines: list[str]
    label: str | None = None
    starred: bool = False
    columns: int = 0


class FigureBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["figure"]
    path: str
    caption: str = ""
    label: str | None = None
    width: str | None = None
    position: str | None = None


class TableBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["table"]
    format: list[str]
    rows: list[list[str]]
    caption: str | None = None
    label: str | None = None
    midrule_after: list[int] = Field(default_factory=list)
    floating: bool = True


BodyBlock = Annotated[
    TextBlock | SectionBlock | EquationBlock | FigureBlock | TableBlock,
    Field(discriminator="kind"),
]


class DocumentManifest(BaseModel):
    """Document description read by ``texweave build``."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    preset: Literal["empty", "standard"] = "empty"
    document_class: str | None = Field(default=None, alias="class")
    class_options: dict[str, str] = Field(default_factory=dict)
    packages: list[PackageSpec | str] = Field(default_factory=list)
    preamble: list[str] = Field(default_factory=list)
    settings: DocumentSettings | None = None
    toc: bool = False
    body: list[BodyBlock] = Field(default_factory=list)


__all__ = [
    "DEFAULT_CLEAN_EXTENSIONS",
    "BodyBlock",
    "DocumentManifest",
    "DocumentSettings",
    "EquationBlock",
    "FigureBlock",
    "PackageSpec",
    "SectionBlock",
    "TableBlock",
    "TexCompiler",
    "TextBlock",
]

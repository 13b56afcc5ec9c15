"""The document aggregate: packages, preamble, title page and body."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
from pathlib import Path
from typing import Any

from texweave.adapters.latex.compiler import CompilationResult, compile_document, is_executable
from texweave.core.config import (
    DEFAULT_CLEAN_EXTENSIONS,
    DocumentManifest,
    DocumentSettings,
    EquationBlock,
    FigureBlock,
    PackageSpec,
    SectionBlock,
    TableBlock,
    TexCompiler,
    TextBlock,
)
from texweave.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from texweave.core.exceptions import CompilationError, ConfigurationError, UsageError
from texweave.core.packages import PackageDeclaration, check_incompatible_packages, merge_packages
from texweave.core.preamble import (
    EMPTY_LINE,
    MAJOR_SEPARATOR,
    PreambleEntry,
    merge_preamble_entries,
)
from texweave.core.texable import Texable
from texweave.core.utils import format_options, indent, is_blank
from texweave.elements.equation import Equation, EquationEnvironment
from texweave.elements.figure import Figure, FigureEnvironment
from texweave.elements.pgfplots import PgfPlots
from texweave.elements.table import Table
from texweave.elements.tikz import Tikz


logger = logging.getLogger(__name__)

LABEL_NAMESPACE = "sec:"

KOMA_CLASSES = frozenset({"scrbook", "scrreprt", "scrartcl"})
STANDARD_CLASSES = frozenset({"article", "book", "report", "letter"})

HEADER_COMMANDS = ("\\lehead", "\\lohead", "\\cehead", "\\cohead", "\\rehead", "\\rohead")
FOOTER_COMMANDS = ("\\lefoot", "\\lofoot", "\\cefoot", "\\cofoot", "\\refoot", "\\rofoot")
LIBRARY_COMMANDS = ("\\usegdlibrary", "\\usepgfplotslibrary", "\\usepgflibrary", "\\usetikzlibrary")

BIBURL_PENALTIES = (
    "\\setcounter{biburllcpenalty}{7000}",
    "\\setcounter{biburlucpenalty}{7000}",
    "\\setcounter{biburlnumpenalty}{7000}",
)

TITLE_PAGE_FIELDS = (
    "titlehead",
    "subject",
    "title",
    "subtitle",
    "author",
    "date",
    "publisher",
    "extratitle",
    "uppertitleback",
    "lowertitleback",
    "dedication",
)


def _strip_thanks(text: str) -> str:
    """Remove ``\\thanks{...}`` groups, honouring nested braces."""
    marker = "\\thanks{"
    while (start := text.find(marker)) != -1:
        depth = 1
        position = start + len(marker)
        while position < len(text) and depth:
            if text[position] == "{":
                depth += 1
            elif text[position] == "}":
                depth -= 1
            position += 1
        text = text[:start] + text[position:]
    return text


class Document:
    """Fluent builder for a complete LaTeX document.

    Strings and builders are appended to the body with :meth:`add`; the
    packages and preamble entries of each builder are merged into the
    document as they arrive. :meth:`build` renders the document without
    modifying it, so it can be called any number of times.
    """

    def __init__(
        self,
        settings: DocumentSettings | None = None,
        *,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self._settings = settings.model_copy(deep=True) if settings else DocumentSettings()
        self._emitter = emitter or LoggingEmitter(logger_obj=logger)
        self._required: list[PackageDeclaration] = []
        self._packages: list[PackageDeclaration] = []
        self._preamble: list[PreambleEntry] = []
        self._document_class: str | None = None
        self._class_options: dict[str, str] = {}
        self._body: list[str] = []
        self._open_environments: list[str] = []

    # ------------------------------------------------------------------ presets

    @classmethod
    def standard(cls, *, emitter: DiagnosticEmitter | None = None) -> Document:
        """Return a KOMA-Script article configured for LuaLaTeX."""
        doc = cls(emitter=emitter)
        doc.set_compiler(TexCompiler.LUALATEX).set_folder(Path("LaTeX")).set_repeat(3)
        doc.set_color_scheme("red!31.372549019!black", "green!31.372549019!black")
        doc.left_footer(None, "\\pagemark").right_footer("\\pagemark", None)
        doc.left_header(None, "\\leftmark").right_header("\\rightmark", None)
        doc.set_document_class(
            "scrartcl",
            {
                "a4paper": "",
                "DIV": "calc",
                "BCOR": "8mm",
                "headinclude": "",
                "bibliography": "totoc",
                "listof": "totoc",
                "index": "totoc",
                "english": "",
                "oneside": "",
                "12pt": "",
                "version": "last",
                "captions": "tableheading",
            },
        )
        doc.use_packages(
            "csquotes",
            "babel",
            "amsmath",
            "fontspec",
            "unicode-math",
            "microtype",
            "selnolig",
            "siunitx",
            "booktabs",
            "xcolor",
            "colortbl",
            "hyperref",
            "cleveref",
            "bookmark",
            "scrlayer-scrpage",
        )
        doc.use_package_with_options(
            "unicode-math", {"math-style": "ISO", "bold-style": "ISO", "nabla": "upright"}
        )
        doc.use_package_with_option("amsmath", "fleqn")
        doc.use_package_with_options("csquotes", {"strict": "true", "autostyle": "true"})
        doc.use_package_with_options("babel", {"main": "english"})
        doc.use_package_with_option("xcolor", "table")
        doc.use_package_with_option("cleveref", "noabbrev")
        doc.use_package_with_options(
            "caption",
            {
                "format": "plain",
                "indention": "1em",
                "labelfont": f"{{color={doc.settings.primary_color},small,sf,bf}}",
                "textfont": "{color={black},small}",
                "width": "0.925\\textwidth",
            },
        )
        doc.use_package_with_options(
            "microtype",
            {
                "activate": "{true,nocompatibility}",
                "final": "",
                "tracking": "true",
                "factor": "1100",
                "stretch": "10",
                "shrink": "",
            },
        )
        doc.use_package_with_options(
            "siunitx",
            {"locale": "UK", "separate-uncertainty": "", "per-mode": "symbol-or-fraction"},
        )
        doc.use_package_with_options(
            "hyperref",
            {"pdfpagemode": "UseOutlines", "pdfencoding": "unicode", "bookmarksopenlevel": "0"},
        )
        doc.use_package_with_option("bookmark", "open")
        doc.use_package_with_option("scrlayer-scrpage", "automark")

        doc.add_to_preamble(
            "\\setmainfont{Latin Modern Roman}",
            # float placement; floatpagefraction must stay below topfraction
            "\\setcounter{totalnumber}{4}",
            "\\setcounter{topnumber}{2}",
            "\\setcounter{bottomnumber}{2}",
            "\\setcounter{dbltopnumber}{2}",
            "\\renewcommand{\\topfraction}{0.9}",
            "\\renewcommand{\\bottomfraction}{0.5}",
            "\\renewcommand{\\floatpagefraction}{0.8}",
            "\\renewcommand{\\textfraction}{0.1}",
            "\\renewcommand{\\dbltopfraction}{0.9}",
            "\\renewcommand{\\dblfloatpagefraction}{0.8}",
            PreambleEntry.of(
                "\\AtBeginEnvironment{tabular}", "\\addfontfeatures{Numbers={Monospaced}}"
            ),
            "\\SetTracking{encoding={*}, shape=sc}{40}",
            PreambleEntry("\\DisableLigatures[ff,ffi,fj,fi]", {"encoding": "*", "family": "sc*"}),
            PreambleEntry(
                "\\bookmarksetup",
                {"addtohook": "{\\ifnum\\bookmarkget{level}<1 \\bookmarksetup{bold}\\fi}"},
            ),
            # no line break before citations
            "\\def\\nobreakbefore{\\relax\\ifvmode\\else\\ifhmode\\ifdim\\lastskip > 0pt"
            "\\relax\\unskip\\nobreakspace\\fi\\fi\\fi}",
            "\\let\\oldcite\\cite",
            "\\renewcommand\\cite{\\nobreakbefore\\oldcite}",
        )
        return doc

    @classmethod
    def from_manifest(
        cls, manifest: DocumentManifest, *, emitter: DiagnosticEmitter | None = None
    ) -> Document:
        """Create a document from a parsed manifest."""
        doc = cls.standard(emitter=emitter) if manifest.preset == "standard" else cls(emitter=emitter)
        if manifest.settings is not None:
            overrides = manifest.settings
            doc._settings = doc._settings.merged_with(overrides)
            explicit = overrides.model_fields_set
            if "maketitle" not in explicit and explicit.intersection(TITLE_PAGE_FIELDS):
                doc._settings.maketitle = True
            if overrides.bibliography or overrides.bibfile:
                doc.set_bibliography(True)

        if manifest.document_class:
            doc.set_document_class(manifest.document_class, manifest.class_options)
        else:
            doc._class_options.update(manifest.class_options)

        for package in manifest.packages:
            if isinstance(package, PackageSpec):
                doc.use_package_with_options(package.name, package.options)
            else:
                doc.use_packages(package)
        doc.add_to_preamble(*manifest.preamble)
        if manifest.toc:
            doc.toc()

        for block in manifest.body:
            match block:
                case TextBlock():
                    doc.add(block.text)
                case SectionBlock():
                    getattr(doc, block.kind)(block.title, label=block.label)
                case EquationBlock():
                    try:
                        environment = EquationEnvironment[block.environment.upper()]
                    except KeyError as exc:
                        raise ConfigurationError(
                            f"Unknown equation environment '{block.environment}'."
                        ) from exc
                    doc.add(
                        Equation()
                        .set_environment(environment, block.starred)
                        .set_columns(block.columns)
                        .set_label(block.label)
                        .add_lines(*block.lines)
                    )
                case FigureBlock():
                    figure = Figure().set_path(block.path).set_caption(block.caption)
                    figure.set_label(block.label)
                    if block.width:
                        figure.set_width(block.width)
                    if block.position:
                        figure.set_position(block.position)
                    doc.add(figure)
                case TableBlock():
                    table = Table().set_format(*block.format).set_floating(block.floating)
                    for row, cells in enumerate(block.rows):
                        table.set_row(row, *cells)
                    for row in block.midrule_after:
                        table.set_midrule_after(row)
                    doc.add(table.set_caption(block.caption).set_label(block.label))
        return doc

    def copy(self) -> Document:
        """Return an independent document with the same content."""
        clone = Document(emitter=self._emitter)
        clone.add(self)
        clone._settings = self._settings.model_copy(deep=True)
        return clone

    # ----------------------------------------------------------------- settings

    @property
    def settings(self) -> DocumentSettings:
        return self._settings

    @property
    def document_class(self) -> str | None:
        return self._document_class

    @property
    def class_options(self) -> dict[str, str]:
        return dict(self._class_options)

    @property
    def body(self) -> tuple[str, ...]:
        return tuple(self._body)

    @property
    def packages(self) -> list[PackageDeclaration]:
        return merge_packages(self._packages)

    @property
    def required_packages(self) -> list[PackageDeclaration]:
        return merge_packages(self._required)

    @property
    def preamble(self) -> list[PreambleEntry]:
        return merge_preamble_entries(self._preamble)

    def set_compiler(self, compiler: TexCompiler | str) -> Document:
        self._settings.compiler = TexCompiler(compiler)
        return self

    def set_folder(self, folder: str | Path) -> Document:
        self._settings.folder = Path(folder)
        return self

    def set_filename(self, filename: str | None) -> Document:
        self._settings.filename = filename
        return self

    def set_repeat(self, repeat: int) -> Document:
        """Set the number of engine passes."""
        if repeat < 1:
            raise ConfigurationError(f"The engine has to run at least once, got {repeat}.")
        self._settings.repeat = repeat
        return self

    def set_clean(self, clean: bool, *extensions: str) -> Document:
        """Remove auxiliary files after compiling; ``extensions`` extend the defaults."""
        self._settings.clean = clean
        self._settings.clean_extensions = tuple(
            dict.fromkeys((*DEFAULT_CLEAN_EXTENSIONS, *(ext.lstrip(".") for ext in extensions)))
        )
        return self

    def set_color_scheme(self, primary: str | None, secondary: str | None) -> Document:
        """Set the colors of headings and captions; two ``None`` disable coloring."""
        if primary is None and secondary is None:
            self._settings.color_scheme = None
        else:
            self._settings.color_scheme = (primary or "black", secondary or "black")
        return self

    def _set_slots(self, which: str, offset: int, odd: str | None, even: str | None) -> Document:
        slots = list(getattr(self._settings, which))
        slots[offset] = even
        slots[offset + 1] = odd
        setattr(self._settings, which, tuple(slots))
        return self.use_packages("scrlayer-scrpage")

    def left_header(self, odd: str | None, even: str | None) -> Document:
        return self._set_slots("header", 0, odd, even)

    def center_header(self, odd: str | None, even: str | None) -> Document:
        return self._set_slots("header", 2, odd, even)

    def right_header(self, odd: str | None, even: str | None) -> Document:
        return self._set_slots("header", 4, odd, even)

    def left_footer(self, odd: str | None, even: str | None) -> Document:
        return self._set_slots("footer", 0, odd, even)

    def center_footer(self, odd: str | None, even: str | None) -> Document:
        return self._set_slots("footer", 2, odd, even)

    def right_footer(self, odd: str | None, even: str | None) -> Document:
        return self._set_slots("footer", 4, odd, even)

    # ---------------------------------------------------------------- title page

    def set_maketitle(self, maketitle: bool = True) -> Document:
        self._settings.maketitle = maketitle
        return self

    def _title_field(self, name: str, value: str | None) -> Document:
        setattr(self._settings, name, value)
        return self.set_maketitle(True)

    def set_titlehead(self, titlehead: str) -> Document:
        return self._title_field("titlehead", titlehead)

    def set_subject(self, subject: str) -> Document:
        self.use_package_with_options("hyperref", {"pdfsubject": f"{{{subject}}}"})
        return self._title_field("subject", subject)

    def set_title(self, title: str) -> Document:
        self.use_package_with_options("hyperref", {"pdftitle": f"{{{title}}}"})
        return self._title_field("title", title)

    def set_subtitle(self, subtitle: str) -> Document:
        return self._title_field("subtitle", subtitle)

    def set_authors(self, *authors: str) -> Document:
        author = "\\and ".join(authors)
        pdf_author = _strip_thanks(author.replace("\\and ", ",").replace("\\and", ","))
        self.use_package_with_options("hyperref", {"pdfauthor": f"{{{pdf_author}}}"})
        return self._title_field("author", author)

    def set_date(self, date: str) -> Document:
        return self._title_field("date", date)

    def set_publisher(self, publisher: str) -> Document:
        return self._title_field("publisher", publisher)

    def set_extratitle(self, extratitle: str) -> Document:
        return self._title_field("extratitle", extratitle)

    def set_uppertitleback(self, uppertitleback: str) -> Document:
        return self._title_field("uppertitleback", uppertitleback)

    def set_lowertitleback(self, lowertitleback: str) -> Document:
        return self._title_field("lowertitleback", lowertitleback)

    def set_dedication(self, dedication: str) -> Document:
        return self._title_field("dedication", dedication)

    # -------------------------------------------------------------- bibliography

    def set_bibliography(self, enabled: bool = True) -> Document:
        """Load biblatex with biber, or remove it again."""
        if enabled:
            self.use_package_with_options(
                "biblatex",
                {
                    "backend": "biber",
                    "hyperref": "true",
                    "language": "english",
                    "style": "numeric-comp",
                    "maxbibnames": "5",
                    "sortlocale": "en",
                },
            )
            for penalty in BIBURL_PENALTIES:
                if not self.has_preamble_entry(penalty):
                    self.add_to_preamble(penalty)
        else:
            self.remove_packages("biblatex")
            for penalty in BIBURL_PENALTIES:
                self.remove_from_preamble(penalty)
        self._settings.bibliography = enabled
        return self

    def set_bibfile(self, bibfile: str) -> Document:
        """Set the ``.bib`` resource, given without its extension."""
        self._settings.bibfile = bibfile
        return self.set_bibliography(True)

    def print_bibliography(self) -> Document:
        return self.add("\\printbibliography")

    # ------------------------------------------------------------------ packages

    def set_document_class(
        self, name: str, options: Mapping[str, str | None] | None = None
    ) -> Document:
        self._document_class = name
        self._class_options.update(
            {key: "" if value is None else value for key, value in (options or {}).items()}
        )
        return self

    def use_packages(self, *packages: PackageDeclaration | str) -> Document:
        for package in packages:
            if isinstance(package, str):
                package = PackageDeclaration(package)
            self._packages.append(package)
        return self

    def use_package_with_options(
        self, name: str, options: Mapping[str, str | None] | None
    ) -> Document:
        self._packages.append(PackageDeclaration.with_options(name, options))
        return self

    def use_package_with_option(self, name: str, option: str) -> Document:
        self._packages.append(PackageDeclaration.of(name, option))
        return self

    def remove_packages(self, *names: str) -> Document:
        self._packages = [package for package in self._packages if package.name not in names]
        return self

    def has_package(self, name: str) -> bool:
        return any(package.name == name for package in self._packages)

    def require_package(
        self, name: str, options: Mapping[str, str | None] | None = None
    ) -> Document:
        """Load a package with ``\\RequirePackage`` ahead of the document class."""
        self._required.append(PackageDeclaration.with_options(name, options))
        return self

    def check_incompatible_packages(self) -> bool:
        """Warn about known package clashes; returns ``True`` if any were found."""
        return check_incompatible_packages(
            merge_packages([*self._packages, *self._required]), self._emitter
        )

    # ------------------------------------------------------------------ preamble

    def add_to_preamble(self, *entries: PreambleEntry | str | None) -> Document:
        for entry in entries:
            if entry is None:
                continue
            self._preamble.append(PreambleEntry(entry) if isinstance(entry, str) else entry)
        return self

    def remove_from_preamble(self, command: str) -> Document:
        self._preamble = [entry for entry in self._preamble if entry.command != command]
        return self

    def has_preamble_entry(self, command: str | None) -> bool:
        return command is not None and any(entry.command == command for entry in self._preamble)

    def _libraries(self, package: str, command: str, libraries: Sequence[str]) -> Document:
        if libraries:
            self.use_packages(package)
            for library in libraries:
                self.add_to_preamble(PreambleEntry.of(command, library))
        return self

    def tikz_libraries(self, *libraries: str) -> Document:
        return self._libraries("tikz", "\\usetikzlibrary", libraries)

    def pgf_libraries(self, *libraries: str) -> Document:
        return self._libraries("pgf", "\\usepgflibrary", libraries)

    def pgfplots_libraries(self, *libraries: str) -> Document:
        return self._libraries("pgfplots", "\\usepgfplotslibrary", libraries)

    def gd_libraries(self, *libraries: str) -> Document:
        return self._libraries("tikz", "\\usegdlibrary", libraries)

    def externalize(self, folder: str | Path = "tikz") -> Document:
        """Cache TikZ pictures as separate PDFs below ``folder``."""
        if folder is None:
            raise ConfigurationError("None is not a valid tikz externalization folder.")
        self.use_packages("tikz", "shellesc")
        self.tikz_libraries("external")

        prefix = str(folder).replace("\\", "/")
        if prefix:
            if not prefix.endswith("/"):
                prefix += "/"
            target = Path(prefix)
            if not target.is_absolute():
                target = self._settings.folder / target
            target.mkdir(parents=True, exist_ok=True)

        output = self._settings.folder.as_posix().rstrip("/") + "/"
        self.add_to_preamble(f"\\tikzexternalize[{f'prefix={prefix}' if prefix else ''}]")
        self.add_to_preamble(
            f"\\tikzset{{external/system call={{{self._settings.compiler.executable} "
            f"--output-directory={output} \\tikzexternalcheckshellescape --enable-write18 "
            '-halt-on-error -interaction=batchmode -jobname "\\image" "\\texsource"}}'
        )
        return self

    # ---------------------------------------------------------------------- body

    def add(self, *items: str | Texable | Document) -> Document:
        """Append strings, builders or whole documents."""
        merged_builder = False
        for item in items:
            if isinstance(item, Document):
                self._merge_document(item)
            elif isinstance(item, str):
                self._body.append(indent(1) + item)
            elif isinstance(item, Texable):
                # render first so builders report every package they end up needing
                self._body.extend(item.latex_lines())
                self._packages.extend(item.needed_packages())
                self._preamble.extend(item.preamble_entries())
                merged_builder = True
            else:
                raise UsageError(f"Cannot add {type(item).__name__} to a document.")

        if merged_builder:
            self._required = merge_packages(self._required, first_wins=True)
            self._packages = merge_packages(self._packages, first_wins=True)
            self._preamble = merge_preamble_entries(self._preamble)
            self.check_incompatible_packages()
        return self

    def _merge_document(self, other: Document) -> None:
        self._settings = self._settings.merged_with(other._settings)
        if other._document_class is not None:
            self._document_class = other._document_class
        self._class_options.update(other._class_options)
        self._required = merge_packages([*self._required, *other._required])
        self._packages = merge_packages([*self._packages, *other._packages])
        self._preamble = merge_preamble_entries(
            [*self._preamble, *merge_preamble_entries(other._preamble)]
        )
        self._body.extend(other._body)
        # most recently opened first
        self._open_environments[:0] = other._open_environments

    def _sectioning(self, command: str, title: str, label: str | None) -> Document:
        suffix = "" if is_blank(label) else f"\\label{{{LABEL_NAMESPACE}{label}}}"
        return self.add(f"\\{command}{{{title}}}{suffix}")

    def chapter(self, title: str, label: str | None = None) -> Document:
        return self._sectioning("chapter", title, label)

    def section(self, title: str, label: str | None = None) -> Document:
        return self._sectioning("section", title, label)

    def subsection(self, title: str, label: str | None = None) -> Document:
        return self._sectioning("subsection", title, label)

    def subsubsection(self, title: str, label: str | None = None) -> Document:
        return self._sectioning("subsubsection", title, label)

    def _without_protrusion(self, code: str) -> str:
        if self.has_package("microtype"):
            return f"{{\\microtypesetup{{protrusion=false}}{code}}}"
        return code

    def toc(self) -> Document:
        return self.add(self._without_protrusion("\\tableofcontents"))

    def lof(self) -> Document:
        return self.add(self._without_protrusion("\\listoffigures"))

    def lot(self) -> Document:
        return self.add(self._without_protrusion("\\listoftables"))

    def begin_env(self, environment: str) -> Document:
        """Open an environment; :meth:`build` warns if it is never closed."""
        self._open_environments.insert(0, environment)
        return self.add(f"\\begin{{{environment}}}%")

    def end_env(self, environment: str) -> Document:
        if environment in self._open_environments:
            self._open_environments.remove(environment)
        else:
            self._emitter.warning(
                "Seems like you closed an environment that was not opened via begin_env(): "
                f"{environment}. Continuing, as it might have been opened via add()."
            )
        return self.add(f"\\end{{{environment}}}%")

    def add_figure(
        self, path: str, caption: str, *, width: str = "", label: str | None = None
    ) -> Document:
        figure = Figure.of(FigureEnvironment.FIGURE).set_centering(True).set_path(path)
        if width:
            figure.set_width(width)
        return self.add(figure.set_caption(caption).set_label(label))

    def plot(self, plot: PgfPlots, caption: str = "") -> Document:
        """Add a pgfplots axis wrapped in a centered figure."""
        return self.add(
            Figure.of(FigureEnvironment.FIGURE)
            .set_centering(True)
            .set_caption(caption)
            .set_tikz(Tikz.of(plot))
        )

    def plot_data(
        self,
        data: Any,
        caption: str = "",
        legend: str | None = None,
        options: Mapping[str, str | None] | None = None,
    ) -> Document:
        return self.plot(PgfPlots.of(data, legend, options), caption)

    def equation(
        self,
        *lines: str,
        environment: EquationEnvironment = EquationEnvironment.EQUATION,
        label: str | None = None,
    ) -> Document:
        return self.add(
            Equation().set_environment(environment).add_lines(*lines).set_label(label)
        )

    def labeled_equation(self, label: str, *lines: str) -> Document:
        return self.equation(*lines, label=label)

    # ----------------------------------------------------------------- rendering

    def _default_preamble(
        self, packages: Iterable[PackageDeclaration], document_class: str | None
    ) -> list[PreambleEntry]:
        names = {package.name for package in packages}
        settings = self._settings
        entries: list[PreambleEntry] = []

        if "biblatex" in names and settings.bibfile:
            entries.append(PreambleEntry.mergeable("\\addbibresource", {f"{settings.bibfile}.bib": ""}))
            entries.append(EMPTY_LINE)

        # slots that later library entries of the same command merge into
        mergeable_commands = {entry.command for entry in self._preamble if not entry.standalone}
        libraries = [cmd for cmd in LIBRARY_COMMANDS if cmd in mergeable_commands]
        entries.extend(PreambleEntry.mergeable(cmd) for cmd in libraries)
        if libraries:
            entries.append(EMPTY_LINE)

        if "scrlayer-scrpage" in names:
            for slots, clear, commands in (
                (settings.header, "\\clearpairofpagestyles", HEADER_COMMANDS),
                (settings.footer, "\\clearmainofpairofpagestyles", FOOTER_COMMANDS),
            ):
                if not any(slot is not None for slot in slots):
                    continue
                entries.append(PreambleEntry(clear))
                entries.extend(
                    PreambleEntry.mergeable(command, {slot: ""})
                    for command, slot in zip(commands, slots, strict=True)
                    if slot is not None
                )
                entries.append(EMPTY_LINE)

        primary = settings.primary_color
        secondary = settings.secondary_color
        if settings.color_scheme is not None:
            labelfont = {"labelfont+": f"{{color={{{primary}}}}}"}
            if "caption" in names:
                entries.append(PreambleEntry.mergeable("\\captionsetup", labelfont))
            if "subcaption" in names:
                entries.append(PreambleEntry.mergeable("\\captionsetup[sub]", labelfont))
            if "caption" in names or "subcaption" in names:
                entries.append(EMPTY_LINE)

            if document_class in KOMA_CLASSES:
                fonts = [("pagehead", primary), ("footnoterule", secondary), ("pagenumber", secondary)]
                if document_class == "scrbook":
                    fonts.append(("part", primary))
                if document_class in ("scrbook", "scrreprt"):
                    fonts.append(("chapter", primary))
                fonts.extend((name, primary) for name in ("section", "subsection", "subsubsection"))
                entries.extend(
                    PreambleEntry.mergeable(f"\\addtokomafont{{{element}}}", {f"\\color{{{color}}}": ""})
                    for element, color in fonts
                )
                entries.append(EMPTY_LINE)
        return entries

    def _title_page(self) -> list[str]:
        settings = self._settings
        color = settings.primary_color

        def colored(text: str) -> str:
            return f"\\color{{{color}}}{text}" if color else text

        fields = [
            ("titlehead", settings.titlehead),
            ("subject", settings.subject),
            ("title", colored(settings.title) if settings.title is not None else None),
            ("subtitle", colored(settings.subtitle) if settings.subtitle is not None else None),
            ("author", settings.author),
            ("date", settings.date),
            ("publishers", settings.publisher),
            ("extratitle", settings.extratitle),
            ("uppertitleback", settings.uppertitleback),
            ("lowertitleback", settings.lowertitleback),
            ("dedication", settings.dedication),
        ]
        lines = [MAJOR_SEPARATOR.command, "% titlepage", MAJOR_SEPARATOR.command]
        lines.extend(f"\\{command}{{{value}}}" for command, value in fields if value is not None)
        lines.extend([MAJOR_SEPARATOR.command, ""])
        return lines

    def build(self) -> str:
        """Render the complete document source."""
        if self._document_class is None:
            raise ConfigurationError("No document class set; call set_document_class() first.")
        if self._open_environments:
            self._emitter.warning(
                "Seems like you opened environment(s) that were not closed via end_env(): "
                f"{self._open_environments}. Continuing, as they might have been closed via add()."
            )

        settings = self._settings
        document_class = self._document_class
        packages = list(self._packages)
        maketitle = settings.maketitle
        if maketitle and document_class not in KOMA_CLASSES:
            if document_class in STANDARD_CLASSES:
                packages.append(PackageDeclaration.with_options("scrextend", {"extendedfeature": "title"}))
            else:
                maketitle = False

        packages = merge_packages(packages)
        required = merge_packages(self._required)

        lines = [f"% !TEX program = {settings.compiler.executable}"]
        if settings.bibliography:
            lines.append("% !BIB program = biber")
        lines.extend(["% !TEX encoding = UTF-8 Unicode", ""])

        if required:
            lines.extend([MAJOR_SEPARATOR.command, "% Required packages", MAJOR_SEPARATOR.command])
            lines.extend(package.usepackage("\\RequirePackage") for package in required)
            lines.extend([MAJOR_SEPARATOR.command, ""])

        class_options = format_options(self._class_options) if self._class_options else ""
        lines.extend([f"\\documentclass{class_options}{{{document_class}}}", ""])

        if packages:
            lines.extend([MAJOR_SEPARATOR.command, "% packages", MAJOR_SEPARATOR.command])
            lines.extend(package.usepackage() for package in packages)
            lines.extend([MAJOR_SEPARATOR.command, ""])

        defaults = self._default_preamble(packages, document_class)
        if self._preamble or defaults:
            preamble = merge_preamble_entries(
                [
                    MAJOR_SEPARATOR,
                    PreambleEntry("% settings/user defs"),
                    MAJOR_SEPARATOR,
                    *defaults,
                    *self._preamble,
                ]
            )
            lines.extend(entry.line() for entry in preamble)
            lines.extend([MAJOR_SEPARATOR.command, ""])

        if maketitle:
            lines.extend(self._title_page())

        lines.append("\\begin{document}")
        if maketitle:
            if any(package.name == "scrlayer-scrpage" for package in packages):
                lines.extend(
                    [
                        indent(1) + "\\pagestyle{empty}",
                        indent(1) + "\\maketitle[-1]",
                        indent(1) + "\\pagestyle{scrheadings}",
                        "",
                    ]
                )
            else:
                lines.extend([indent(1) + "\\maketitle", ""])
        lines.extend(self._body)
        lines.append("\\end{document}")
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.build()

    # ----------------------------------------------------------------- execution

    def save(self, show_path: bool = False) -> Path:
        """Write the rendered source into the configured folder."""
        source = self.build()
        path = self._settings.source_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        if show_path:
            self._emitter.event("file_saved", {"path": str(path)})
        return path

    def compile(self, show_path: bool = False) -> CompilationResult:
        """Save the document and run the configured engine on it."""
        compiler = self._settings.compiler
        if compiler is TexCompiler.LUALATEX:
            for name in ("fontspec", "unicode-math"):
                if not self.has_package(name):
                    logger.info(
                        "You are using lualatex without the %s package. Proceeding without it.",
                        name,
                    )
        if not is_executable(compiler):
            raise CompilationError(
                f"Seems like {compiler.executable} is not accessible. "
                "Please make sure that it is installed and on the PATH."
            )
        return compile_document(self.save(show_path), self._settings, emitter=self._emitter)

    def exec(self) -> int:
        """Compile and return the highest exit status of all engine passes."""
        return self.compile().returncode


__all__ = ["KOMA_CLASSES", "LABEL_NAMESPACE", "STANDARD_CLASSES", "Document"]

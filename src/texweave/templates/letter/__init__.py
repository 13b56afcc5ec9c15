"""KOMA-Script letter preset built on top of :class:`~texweave.document.Document`."""

from __future__ import annotations

from datetime import date as Date
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from texweave.core.config import TexCompiler
from texweave.core.diagnostics import DiagnosticEmitter
from texweave.core.preamble import EMPTY_LINE, MINOR_SEPARATOR
from texweave.core.texable import Texable
from texweave.core.utils import indent
from texweave.document import Document


_PACKAGE_ROOT = Path(__file__).parent.resolve()
TEMPLATE_DIR = _PACKAGE_ROOT / "template"

DEFAULT_FOLDMARKS = "TBMPL"


def _build_environment(template_dir: Path = TEMPLATE_DIR) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        block_start_string=r"\BLOCK{",
        block_end_string="}",
        variable_start_string=r"\VAR{",
        variable_end_string="}",
        comment_start_string=r"\#{",
        comment_end_string="}",
    )


def _layout_preamble(foldmarks: str | None) -> list[str]:
    """Return the letterhead and footer definitions of the preset."""
    return [
        f"\\KOMAoptions{{fromphone=on,fromrule=aftername,fromemail=on,"
        f"foldmarks={foldmarks or 'off'}}}",
        "\\SetTracking{encoding={*},shape=sc}{40}",
        "",
        "\\newboolean{showbank}",
        "\\setboolean{showbank}{false}",
        "\\newboolean{smaller}",
        "\\setboolean{smaller}{false}",
        "\\setkomafont{fromname}{\\scshape \\LARGE}",
        "\\setkomafont{backaddress}{\\mdseries}",
        "",
        "\\makeatletter",
        "\\newcommand{\\layout}{\\ifthenelse{\\boolean{smaller}}{",
        indent(1) + "\\@setplength{firstheadvpos}{17mm}%",
        indent(1) + "\\@setplength{firstfootvpos}{275mm}%",
        indent(1) + "\\@setplength{locwidth}{70mm}%",
        indent(1) + "\\@setplength{locvpos}{55mm}%",
        indent(1) + "\\@setplength{foldmarkhpos}{6.5mm}%",
        indent(1) + "}{}}",
        "\\makeatother%",
        "",
        "\\setkomavar{firsthead}{%",
        indent(1) + "\\usekomavar{fromlogo}\\hfill\\scshape\\LARGE\\usekomavar{fromname}\\\\",
        indent(1) + "\\rule[3pt]{\\textwidth}{.4pt}%",
        "}",
        "",
        "\\setkomavar{firstfoot}{\\footnotesize%",
        indent(1) + "\\rule[3pt]{\\textwidth}{.4pt}\\\\",
        indent(1) + "\\begin{tabular}[t]{l@{}}%",
        indent(2) + "\\usekomavar{fromname}\\\\",
        indent(2) + "\\usekomavar{fromaddress}\\\\",
        indent(1) + "\\end{tabular}%",
        indent(1) + "\\hfill",
        indent(1) + "\\begin{tabular}[t]{l@{}}%",
        indent(2) + "\\usekomavar{fromphone}\\\\",
        indent(2) + "\\usekomavar{fromemail}\\\\",
        indent(1) + "\\end{tabular}%",
        indent(1) + "\\ifthenelse{\\boolean{showbank}}{\\ifkomavarempty{frombank}{}{%",
        indent(2) + "\\hfill",
        indent(2) + "\\begin{tabular}[t]{r@{}}%",
        indent(3) + "\\usekomavar{frombank}",
        indent(2) + "\\end{tabular}%",
        indent(2) + "}}{}%",
        "}",
        "",
        "\\renewcommand*{\\raggedsignature}{\\raggedright}",
    ]


class KomaLetter:
    """A ``scrlttr2`` letter.

    Sender details (name, address, bank...) usually come from a reusable
    :class:`~texweave.core.texable.Texable` passed to :meth:`set_user`,
    everything specific to one letter is set on the instance. Paragraphs
    and closing material are rendered through ``template/letter.tex``.
    """

    def __init__(self, file: str | Path, *, emitter: DiagnosticEmitter | None = None) -> None:
        self._file = Path(file)
        self._emitter = emitter
        self._user: Texable | None = None
        self._show_bank = True
        self._smaller = True
        self._clean = True
        self._clean_extensions: tuple[str, ...] = ()
        self._foldmarks: str | None = DEFAULT_FOLDMARKS
        self._language: str | None = None
        self._to_name: str | None = None
        self._to_street: str | None = None
        self._to_city: str | None = None
        self._to_extra: str | None = None
        self._title: str | None = None
        self._subject: str | None = None
        self._your_ref: str | None = None
        self._my_ref: str | None = None
        self._your_mail: str | None = None
        self._customer: str | None = None
        self._invoice: str | None = None
        self._date: Date | None = None
        self._opening: str | None = None
        self._closing: str | None = None
        self._ps: str | None = None
        self._enclosures: list[str] = []
        self._cc: list[str] = []
        self._paragraphs: list[str] = []

    @classmethod
    def of(cls, file: str | Path) -> KomaLetter:
        return cls(file)

    @property
    def file(self) -> Path:
        return self._file

    def set_file(self, file: str | Path) -> KomaLetter:
        self._file = Path(file)
        return self

    def set_clean(self, clean: bool, *extensions: str) -> KomaLetter:
        """Remove auxiliary files after compiling, plus any extra ``extensions``."""
        self._clean = clean
        self._clean_extensions = extensions
        return self

    def set_user(self, user: Texable | None) -> KomaLetter:
        self._user = user
        return self

    def set_show_bank(self, show_bank: bool) -> KomaLetter:
        self._show_bank = show_bank
        return self

    def set_smaller(self, smaller: bool) -> KomaLetter:
        """Use the compact letterhead and footer placement."""
        self._smaller = smaller
        return self

    def set_foldmarks(self, foldmarks: str | None) -> KomaLetter:
        """Select the fold marks (``TBMPL`` by default); ``None`` disables them."""
        self._foldmarks = foldmarks
        return self

    def set_language(self, language: str | None) -> KomaLetter:
        """Set the babel language, e.g. ``ngerman``."""
        self._language = language
        return self

    def write(self, *paragraphs: str) -> KomaLetter:
        self._paragraphs = list(paragraphs)
        return self

    def set_recipient(
        self,
        name: str | None,
        *,
        street: str | None = None,
        city: str | None = None,
        extra: str | None = None,
    ) -> KomaLetter:
        self._to_name = name
        self._to_street = street
        self._to_city = city
        self._to_extra = extra
        return self

    def set_title(self, title: str | None) -> KomaLetter:
        self._title = title
        return self

    def set_subject(self, subject: str | None) -> KomaLetter:
        self._subject = subject
        return self

    def set_your_ref(self, your_ref: str | None) -> KomaLetter:
        self._your_ref = your_ref
        return self

    def set_my_ref(self, my_ref: str | None) -> KomaLetter:
        self._my_ref = my_ref
        return self

    def set_your_mail(self, your_mail: str | None) -> KomaLetter:
        """Set the date of the recipient's letter being answered."""
        self._your_mail = your_mail
        return self

    def set_customer(self, customer: str | None) -> KomaLetter:
        self._customer = customer
        return self

    def set_invoice(self, invoice: str | None) -> KomaLetter:
        self._invoice = invoice
        return self

    def set_date(self, date: Date | None) -> KomaLetter:
        """Set the letter date; today is used when unset."""
        self._date = date
        return self

    def set_opening(self, opening: str | None) -> KomaLetter:
        self._opening = opening
        return self

    def set_closing(self, closing: str | None) -> KomaLetter:
        self._closing = closing
        return self

    def set_ps(self, ps: str | None) -> KomaLetter:
        self._ps = ps
        return self

    def set_enclosures(self, *enclosures: str) -> KomaLetter:
        self._enclosures = list(enclosures)
        return self

    def set_cc(self, *cc: str) -> KomaLetter:
        self._cc = list(cc)
        return self

    def _locale(self) -> str:
        if self._language is not None:
            return self._language
        if self._user is not None:
            for package in self._user.needed_packages():
                if package.name == "babel":
                    return package.options.get("main", "english")
        return "english"

    def _address(self) -> str:
        parts = [
            f"{self._to_street}\\\\" if self._to_street is not None else "",
            f"{self._to_city}\\\\" if self._to_city is not None else "",
            self._to_extra or "",
        ]
        return "".join(parts)

    def _setup(self) -> Document:
        doc = Document(emitter=self._emitter)
        doc.set_compiler(TexCompiler.LUALATEX)
        doc.set_document_class("scrlttr2", {"version": "last"})
        doc.use_packages("babel")
        doc.use_package_with_options(
            "microtype",
            {"activate": "{true,nocompatibility}", "final": "", "tracking": "true"},
        )
        doc.use_package_with_options(
            "siunitx", {"locale": "DE", "separate-uncertainty": "", "per-mode": "fraction"}
        )
        doc.use_package_with_options(
            "csquotes", {"strict": "true", "autostyle": "true", "german": "guillemets"}
        )
        doc.use_packages("xcolor", "datetime2", "selnolig", "phonenumbers", "marvosym", "ifthen")
        doc.use_package_with_option("hyperref", "hidelinks")

        doc.add_to_preamble(MINOR_SEPARATOR, "% layout definitions", MINOR_SEPARATOR)
        doc.add_to_preamble(*_layout_preamble(self._foldmarks))
        doc.add_to_preamble(MINOR_SEPARATOR, EMPTY_LINE)
        return doc

    def _settings_preamble(self, letter_date: Date) -> list[str]:
        def field(name: str, value: str | None) -> str:
            return f"\\setkomavar{{{name}}}{{{value or ''}}}"

        return [
            f"\\setboolean{{showbank}}{{{str(self._show_bank).lower()}}}",
            f"\\setboolean{{smaller}}{{{str(self._smaller).lower()}}}",
            "",
            field("toname", self._to_name),
            field("toaddress", self._address()),
            "",
            field("title", self._title),
            field("subject", self._subject),
            field("yourref", self._your_ref),
            field("yourmail", self._your_mail),
            field("myref", self._my_ref),
            field("customer", self._customer),
            field("invoice", self._invoice),
            "\\setkomavar{date}{\\DTMdisplaydate"
            f"{{{letter_date.year}}}{{{letter_date.month}}}{{{letter_date.day}}}{{-1}}}}",
        ]

    def render_body(self) -> list[str]:
        """Render the ``letter`` environment, one entry per source line."""
        template = _build_environment().get_template("letter.tex")
        text = template.render(
            opening=self._opening,
            paragraphs=self._paragraphs,
            closing=self._closing,
            ps=self._ps,
            enclosures=self._enclosures,
            cc=self._cc,
        )
        return text.splitlines()

    def document(self) -> Document:
        """Assemble the letter into a document ready to be saved or compiled."""
        doc = self._setup()
        doc.set_folder(self._file.parent).set_filename(self._file.name)
        if self._user is not None:
            doc.add(self._user)

        doc.use_package_with_options("babel", {"main": self._locale()})
        doc.add_to_preamble(MINOR_SEPARATOR, "% mail specific settings", MINOR_SEPARATOR)
        doc.add_to_preamble(*self._settings_preamble(self._date or Date.today()))
        doc.add_to_preamble(MINOR_SEPARATOR, EMPTY_LINE, "\\layout")

        doc.add(*self.render_body())
        return doc.set_clean(self._clean, *self._clean_extensions)

    def build(self) -> str:
        return self.document().build()

    def exec(self) -> int:
        """Compile the letter and return the engine's exit status."""
        return self.document().exec()


__all__ = ["DEFAULT_FOLDMARKS", "KomaLetter", "TEMPLATE_DIR"]

"""Run TeX engines and biber on a saved document."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import re
import shutil
import subprocess

from texweave.core.config import DocumentSettings, TexCompiler
from texweave.core.diagnostics import DiagnosticEmitter, LoggingEmitter
from texweave.core.exceptions import CompilationError


class LatexMessageSeverity(Enum):
    """Classification severity extracted from engine output."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class LatexMessage:
    """A message extracted from engine output."""

    severity: LatexMessageSeverity
    summary: str


@dataclass(slots=True)
class CompilationResult:
    """Outcome of all engine passes for one document."""

    source: Path
    returncode: int = 0
    passes: int = 0
    messages: list[LatexMessage] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def errors(self) -> list[LatexMessage]:
        return [msg for msg in self.messages if msg.severity is LatexMessageSeverity.ERROR]


_MESSAGE_PATTERNS: list[tuple[re.Pattern[str], LatexMessageSeverity]] = [
    (re.compile(r"^! (?P<summary>.+)$"), LatexMessageSeverity.ERROR),
    (re.compile(r"^.*(?P<summary>Fatal error occurred.*)$"), LatexMessageSeverity.ERROR),
    (re.compile(r"^LaTeX Warning: (?P<summary>.+)$"), LatexMessageSeverity.WARNING),
    (
        re.compile(r"^Package (?P<context>\S+) Warning: (?P<summary>.+)$"),
        LatexMessageSeverity.WARNING,
    ),
]


def parse_engine_output(lines: Iterable[str]) -> list[LatexMessage]:
    """Extract errors and warnings from engine output lines."""
    messages: list[LatexMessage] = []
    for raw in lines:
        line = raw.rstrip()
        for pattern, severity in _MESSAGE_PATTERNS:
            match = pattern.match(line)
            if match:
                messages.append(LatexMessage(severity, match.group("summary").strip()))
                break
    return messages


def engine_command(compiler: TexCompiler, folder: Path, source: Path) -> list[str]:
    """Return the argv of one engine pass."""
    return [
        compiler.executable,
        f"--output-directory={folder}",
        "--enable-write18",
        "--interaction=nonstopmode",
        "-halt-on-error",
        str(source),
    ]


def biber_command(folder: Path, jobname: str) -> list[str]:
    return ["biber", f"--output-directory={folder}", jobname]


def is_executable(compiler: TexCompiler | str) -> bool:
    """Return ``True`` when ``<engine> --version`` runs successfully."""
    name = compiler.executable if isinstance(compiler, TexCompiler) else str(compiler)
    if shutil.which(name) is None:
        return False
    try:
        completed = subprocess.run(
            [name, "--version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return False
    return completed.returncode == 0


def _run(argv: Sequence[str]) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(
            list(argv),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise CompilationError(f"Unable to run '{argv[0]}': {exc}") from exc


def clean_auxiliary_files(
    source: Path, extensions: Iterable[str], emitter: DiagnosticEmitter
) -> list[Path]:
    """Delete ``<source stem>.<ext>`` for every extension, reporting each removal."""
    removed: list[Path] = []
    for ext in extensions:
        candidate = source.with_suffix(f".{ext}")
        if not candidate.is_file():
            continue
        try:
            candidate.unlink()
        except OSError as exc:
            emitter.error(f"Unable to delete {candidate}: {exc}", exc)
            continue
        removed.append(candidate)
        emitter.event("file_removed", {"path": str(candidate)})
    return removed


def compile_document(
    source: Path,
    settings: DocumentSettings,
    *,
    emitter: DiagnosticEmitter | None = None,
) -> CompilationResult:
    """Compile a saved ``.tex`` file ``settings.repeat`` times.

    biber runs after each pass when a bibliography file is configured. The
    result's ``returncode`` is the highest status returned by any pass.
    """
    sink = emitter or LoggingEmitter()
    compiler = settings.compiler
    if shutil.which(compiler.executable) is None:
        raise CompilationError(
            f"Seems like {compiler.executable} is not accessible. "
            "Please make sure that it is installed and on the PATH."
        )

    folder = source.parent
    result = CompilationResult(source=source)
    for index in range(1, settings.repeat + 1):
        sink.event(
            "compile_pass",
            {"engine": compiler.executable, "index": index, "total": settings.repeat},
        )
        completed = _run(engine_command(compiler, folder, source))
        result.passes += 1
        result.returncode = max(result.returncode, completed.returncode)

        messages = parse_engine_output((completed.stdout or "").splitlines())
        result.messages.extend(messages)
        if any(msg.severity is LatexMessageSeverity.ERROR for msg in messages):
            sink.error(completed.stdout or "")

        if settings.bibliography and settings.bibfile:
            _run(biber_command(folder, source.stem))

    if settings.clean:
        result.removed = clean_auxiliary_files(source, settings.clean_extensions, sink)
    return result


__all__ = [
    "CompilationResult",
    "LatexMessage",
    "LatexMessageSeverity",
    "biber_command",
    "clean_auxiliary_files",
    "compile_document",
    "engine_command",
    "is_executable",
    "parse_engine_output",
]

"""Build a document described by a YAML manifest."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import ValidationError
import typer
import yaml

from texweave.core.config import DocumentManifest
from texweave.core.exceptions import ConfigurationError, TexweaveError
from texweave.document import Document

from ..diagnostics import CliEmitter
from ..state import emit_error, set_cli_state


OUTPUT_PANEL = "Output"
DIAGNOSTICS_PANEL = "Diagnostics"


def load_manifest(path: Path) -> DocumentManifest:
    """Read and validate a document manifest."""
    try:
        payload: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Unable to read manifest '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in manifest '{path}': {exc}") from exc

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Manifest '{path}' must contain a mapping at the top level.")

    try:
        return DocumentManifest.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid manifest '{path}': {exc}") from exc


def build(
    manifest_path: Annotated[
        Path,
        typer.Argument(
            metavar="MANIFEST",
            help="YAML file describing the document.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            resolve_path=True,
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Target .tex file. Defaults to the folder and filename of the manifest settings.",
            rich_help_panel=OUTPUT_PANEL,
        ),
    ] = None,
    compile_pdf: Annotated[
        bool,
        typer.Option(
            "--compile",
            help="Run the configured TeX engine on the generated source.",
            rich_help_panel=OUTPUT_PANEL,
        ),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
            rich_help_panel=DIAGNOSTICS_PANEL,
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Show full tracebacks when an unexpected error occurs.",
            rich_help_panel=DIAGNOSTICS_PANEL,
        ),
    ] = False,
) -> None:
    """Write the LaTeX source of a manifest and optionally compile it."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    emitter = CliEmitter(state)

    try:
        manifest = load_manifest(manifest_path)
        document = Document.from_manifest(manifest, emitter=emitter)
    except TexweaveError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    if output is not None:
        document.set_folder(output.parent).set_filename(output.name)
    elif not document.settings.folder.is_absolute():
        document.set_folder(manifest_path.parent / document.settings.folder)

    try:
        if not compile_pdf:
            document.save(show_path=True)
            return
        result = document.compile(show_path=True)
    except TexweaveError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    if not result.succeeded:
        for message in result.errors:
            emit_error(message.summary)
        emit_error(f"{document.settings.compiler.executable} exited with status {result.returncode}.")
        raise typer.Exit(code=result.returncode)


__all__ = ["build", "load_manifest"]

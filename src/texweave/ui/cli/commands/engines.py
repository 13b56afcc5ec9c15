"""List the TeX engines and whether they can be run."""

from __future__ import annotations

import shutil

from texweave.adapters.latex.compiler import is_executable
from texweave.core.config import TexCompiler

from ..state import get_cli_state


def engines() -> None:
    """Print a table of the supported engines and their availability."""
    from rich import box
    from rich.table import Table

    console = get_cli_state().console
    table = Table(
        title="TeX Engines",
        box=box.SQUARE,
        show_edge=True,
        header_style="bold cyan",
    )
    table.add_column("Engine", style="magenta")
    table.add_column("Status")
    table.add_column("Location")

    for compiler in TexCompiler:
        location = shutil.which(compiler.executable)
        if location is None:
            table.add_row(compiler.executable, "[red]missing[/red]", "-")
        elif is_executable(compiler):
            table.add_row(compiler.executable, "[green]available[/green]", location)
        else:
            table.add_row(compiler.executable, "[yellow]broken[/yellow]", location)

    console.print(table)


__all__ = ["engines"]

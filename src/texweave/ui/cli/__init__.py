"""Public CLI exports for texweave."""

from __future__ import annotations

from .app import app, main
from .commands import build, engines
from .diagnostics import CliEmitter
from .state import debug_enabled, emit_error, emit_warning, get_cli_state


__all__ = [
    "CliEmitter",
    "app",
    "build",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "engines",
    "get_cli_state",
    "main",
]

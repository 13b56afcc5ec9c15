"""CLI command implementations exposed via `texweave.ui.cli`."""

from __future__ import annotations

from .build import build, load_manifest
from .engines import engines


__all__ = ["build", "engines", "load_manifest"]

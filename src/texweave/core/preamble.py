"""Preamble entries and the rules for merging repeated commands."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .utils import is_blank, join_options, normalise_options


@dataclass(frozen=True, slots=True)
class PreambleEntry:
    """A single preamble command such as ``\\pgfplotsset``.

    Standalone entries are emitted verbatim. Entries that are not standalone
    are merged with the first earlier non-standalone entry sharing the same
    command, so repeated ``\\pgfplotsset`` calls collapse into one.
    """

    command: str
    options: Mapping[str, str] = field(default_factory=dict)
    standalone: bool = True

    def __post_init__(self) -> None:
        if self.command is None:
            raise TypeError("Preamble command may not be None.")
        object.__setattr__(self, "options", MappingProxyType(normalise_options(self.options)))

    def __hash__(self) -> int:
        return hash((self.command, frozenset(self.options.items()), self.standalone))

    @classmethod
    def of(cls, command: str, option: str | None = None, *, standalone: bool = True) -> PreambleEntry:
        """Create an entry with at most one flag-only option."""
        return cls(command, {option: ""} if option else {}, standalone)

    @classmethod
    def mergeable(
        cls, command: str, options: Mapping[str, str | None] | None = None
    ) -> PreambleEntry:
        """Create a non-standalone entry that later duplicates merge into."""
        return cls(command, normalise_options(options), standalone=False)

    def line(self) -> str:
        """Return the rendered preamble line, e.g. ``\\cmd{a=b,c}``."""
        if self.command.startswith("%") or is_blank(self.command) or not self.options:
            return self.command
        return f"{self.command}{{{join_options(self.options)}}}"


EMPTY_LINE = PreambleEntry("")
MINOR_SEPARATOR = PreambleEntry("% ----------------")
MAJOR_SEPARATOR = PreambleEntry("% ================")


def merge_preamble_entries(entries: Iterable[PreambleEntry]) -> list[PreambleEntry]:
    """Merge non-standalone duplicates into the slot of their first occurrence."""
    merged: list[PreambleEntry] = []
    slots: dict[str, int] = {}
    for entry in entries:
        if entry.standalone:
            merged.append(entry)
            continue

        index = slots.get(entry.command)
        if index is None:
            slots[entry.command] = len(merged)
            merged.append(entry)
            continue

        current = merged[index]
        options = dict(current.options)
        options.update(entry.options)
        merged[index] = PreambleEntry(current.command, options, standalone=False)
    return merged


cleanup_preamble = merge_preamble_entries


__all__ = [
    "EMPTY_LINE",
    "MAJOR_SEPARATOR",
    "MINOR_SEPARATOR",
    "PreambleEntry",
    "cleanup_preamble",
    "merge_preamble_entries",
]

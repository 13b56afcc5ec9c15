"""Base contract implemented by every content builder."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Protocol, TypeVar, runtime_checkable

from .packages import PackageDeclaration
from .preamble import PreambleEntry
from .utils import options_from_flags


@runtime_checkable
class Texable(Protocol):
    """Anything that can be attached to a document."""

    def needed_packages(self) -> list[PackageDeclaration]: ...

    def preamble_entries(self) -> list[PreambleEntry]: ...

    def latex_lines(self) -> list[str]: ...


B = TypeVar("B", bound="BaseBuilder")


class BaseBuilder(ABC):
    """Shared bookkeeping for builders that carry their own requirements."""

    def __init__(self) -> None:
        self._packages: list[PackageDeclaration] = []
        self._preamble: list[PreambleEntry] = []

    def use_packages(self: B, *packages: PackageDeclaration | str) -> B:
        """Declare packages needed by this builder."""
        for package in packages:
            if isinstance(package, str):
                package = PackageDeclaration(package)
            self._packages.append(package)
        return self

    def use_package_with_options(
        self: B, name: str, options: Mapping[str, str | None] | None = None
    ) -> B:
        """Declare a package together with key-value options."""
        self._packages.append(PackageDeclaration.with_options(name, options))
        return self

    def add_preamble_entries(self: B, *entries: PreambleEntry) -> B:
        """Attach preamble entries required by this builder."""
        self._preamble.extend(entries)
        return self

    def _library_entry(self: B, command: str, libraries: Iterable[str | None]) -> B:
        self._preamble.append(PreambleEntry(command, options_from_flags(libraries), False))
        return self

    def needed_packages(self) -> list[PackageDeclaration]:
        """Return a copy of the packages this builder requires."""
        return list(self._packages)

    def preamble_entries(self) -> list[PreambleEntry]:
        """Return a copy of the preamble entries this builder requires."""
        return list(self._preamble)

    @abstractmethod
    def latex_lines(self) -> list[str]:
        """Serialize the builder into LaTeX source lines."""
        raise NotImplementedError

    def __str__(self) -> str:
        return "\n".join(self.latex_lines())


__all__ = ["BaseBuilder", "Texable"]

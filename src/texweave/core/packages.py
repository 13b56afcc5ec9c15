"""LaTeX package declarations and the merge rules applied to them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .diagnostics import DiagnosticEmitter, LoggingEmitter
from .exceptions import ConfigurationError
from .utils import format_options, normalise_options


Requester = str | type


def _requester_tag(requester: Requester) -> str:
    return requester.__name__ if isinstance(requester, type) else str(requester)


@dataclass(frozen=True, slots=True)
class PackageDeclaration:
    """A package to load, with its options and known incompatibilities.

    ``options`` maps option keys to values; an empty value marks a flag-only
    option such as ``open`` for ``bookmark``. ``incompatible_with`` maps the
    names of packages that clash with this one to the set of requesters that
    asked for this package, which helps when reporting the clash. Both are
    stored as read-only views, so declarations are hashable and can be shared.
    """

    name: str
    options: Mapping[str, str] = field(default_factory=dict)
    incompatible_with: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.name is None or not str(self.name).strip():
            raise ConfigurationError("Package name may not be empty or blank.")
        object.__setattr__(self, "options", MappingProxyType(normalise_options(self.options)))
        registry = {
            str(key): frozenset(_requester_tag(item) for item in value)
            for key, value in (self.incompatible_with or {}).items()
        }
        object.__setattr__(self, "incompatible_with", MappingProxyType(registry))

    def __hash__(self) -> int:
        return hash(
            (
                self.name,
                frozenset(self.options.items()),
                frozenset(self.incompatible_with.items()),
            )
        )

    @classmethod
    def of(cls, name: str, option: str | None = None) -> PackageDeclaration:
        """Declare a package with at most one flag-only option."""
        return cls(name, {option: ""} if option else {})

    @classmethod
    def with_options(
        cls, name: str, options: Mapping[str, str | None] | None
    ) -> PackageDeclaration:
        """Declare a package with key-value options."""
        return cls(name, normalise_options(options))

    @classmethod
    def with_incompatibility(
        cls, name: str, incompatible_package: str, requested_by: Requester
    ) -> PackageDeclaration:
        """Declare a package that is known to clash with ``incompatible_package``."""
        return cls(name, {}, {incompatible_package: frozenset({_requester_tag(requested_by)})})

    def usepackage(self, command: str = "\\usepackage") -> str:
        """Return the loading line, e.g. ``\\usepackage[key=value]{name}``."""
        options = format_options(self.options) if self.options else ""
        return f"{command}{options}{{{self.name}}}"


def merge_packages(
    packages: Iterable[PackageDeclaration], *, first_wins: bool = False
) -> list[PackageDeclaration]:
    """Collapse duplicate package declarations.

    The first occurrence of each name fixes its position. Options declared
    later override earlier values, unless ``first_wins`` is set, in which
    case later declarations may only add keys that are still missing.
    Incompatibility registries are unioned.
    """
    merged: dict[str, PackageDeclaration] = {}
    for package in packages:
        previous = merged.get(package.name)
        if previous is None:
            merged[package.name] = package
            continue

        options = dict(previous.options)
        for key, value in package.options.items():
            if first_wins:
                options.setdefault(key, value)
            else:
                options[key] = value

        registry = dict(previous.incompatible_with)
        for key, requesters in package.incompatible_with.items():
            registry[key] = registry.get(key, frozenset()) | requesters

        merged[package.name] = PackageDeclaration(package.name, options, registry)
    return list(merged.values())


cleanup_packages = merge_packages


def check_incompatible_packages(
    packages: Iterable[PackageDeclaration],
    emitter: DiagnosticEmitter | None = None,
) -> bool:
    """Report package pairs where one lists the other as incompatible.

    This is a rough, directional check: a clash is only found when the
    package that knows about it is loaded together with the package it
    names. Returns ``True`` when at least one clash was reported.
    """
    sink = emitter or LoggingEmitter()
    candidates = list(packages)
    found = False
    for package in candidates:
        for other in candidates:
            requesters = package.incompatible_with.get(other.name)
            if requesters is None:
                continue
            sink.warning(
                "Probably incompatible packages found. "
                f"You used these classes: {sorted(requesters)}, which need the "
                f"'{package.name}' package, which is (probably) incompatible with the "
                f"'{other.name}' package that is used in your main document. "
                "Continuing, but the build may fail."
            )
            found = True
    return found


__all__ = [
    "PackageDeclaration",
    "check_incompatible_packages",
    "cleanup_packages",
    "merge_packages",
]

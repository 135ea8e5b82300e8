"""Exceptions raised while wiring and resolving modules."""

from __future__ import annotations

from typing import Sequence

from .cycles import format_cycle


class WireworkError(Exception):
    """Base class for every error raised by a wirework container."""


class InvalidNameError(WireworkError, ValueError):
    """Raised when a module is registered without a usable name."""


class MissingDefinitionError(WireworkError, TypeError):
    """Raised when no callable can be derived from a module's declaration."""

    def __init__(self, name: str, reason: str | None = None) -> None:
        self.name = name
        message = f"Must give a function for module {name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class DuplicateModuleError(WireworkError, ValueError):
    """Raised when a name is registered twice without a mock override."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} already registered")


class MissingDependencyError(WireworkError, LookupError):
    """Raised when a module, or one of its dependencies, is not registered.

    ``name`` is the name that could not be found; ``dependent`` is the module
    that asked for it, or ``None`` when it was requested directly.
    """

    def __init__(self, name: str, dependent: str | None = None) -> None:
        self.name = name
        self.dependent = dependent
        if dependent is None:
            message = f"Missing dependency `{name}`"
        else:
            message = f"Missing dependency `{name}` for module `{dependent}`"
        super().__init__(message)


class CircularDependencyError(WireworkError):
    """Raised when the module graph contains at least one cycle.

    The message lists every cycle that was found, one per line.
    """

    def __init__(self, name: str, cycles: Sequence[Sequence[str]]) -> None:
        self.name = name
        self.cycles = [tuple(cycle) for cycle in cycles]
        rendered = "\n".join(format_cycle(cycle) for cycle in self.cycles)
        super().__init__(f"Circular dependency detected with {name}:\n{rendered}")

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any

from .declarations import DefineFunction


class ModuleState(enum.Enum):
    """Lifecycle states for a registered module."""

    REGISTERED = "registered"
    """Module is registered and has not been resolved yet."""

    RESOLVING = "resolving"
    """Module's dependencies are being resolved, or its define is running."""

    RESOLVED = "resolved"
    """Module's define has returned and its value is cached."""


@dataclass(eq=False)
class Module:
    """A named unit of work registered with a container.

    Re-registering a name never mutates an existing ``Module``, it creates a
    new one.  Only the container that owns a module changes its state.

    While a module is resolving, ``defining`` is the task running its define
    function and ``pending`` is the whole resolution, which also applies the
    module's partial mock, if it has one.
    """

    name: str
    dependencies: tuple[str, ...]
    define: DefineFunction
    state: ModuleState = field(default=ModuleState.REGISTERED)
    exported: Any = field(default=None, repr=False)
    pending: "asyncio.Task[Any] | None" = field(default=None, repr=False)
    defining: "asyncio.Task[Any] | None" = field(default=None, repr=False)

    @property
    def resolved(self) -> bool:
        return self.state is ModuleState.RESOLVED

    def export(self, value: Any) -> None:
        self.exported = value
        self.state = ModuleState.RESOLVED
        self.pending = None
        self.defining = None

    def reset(self) -> None:
        self.exported = None
        self.state = ModuleState.REGISTERED
        self.pending = None
        self.defining = None

    def as_span_attributes(self) -> dict[str, str | list[str]]:
        return {
            "wirework.module.name": self.name,
            "wirework.module.dependencies": list(self.dependencies),
        }

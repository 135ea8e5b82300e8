"""
wirework - An asyncio dependency injection container.

wirework resolves named modules, and everything they depend on, exactly once,
and reports missing and circular dependencies before anything runs.
"""

import logging
from importlib.metadata import version

__version__ = version("wirework")

from .container import Container
from .errors import (
    CircularDependencyError,
    DuplicateModuleError,
    InvalidNameError,
    MissingDefinitionError,
    MissingDependencyError,
    WireworkError,
)
from .module import Module, ModuleState

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CircularDependencyError",
    "Container",
    "DuplicateModuleError",
    "InvalidNameError",
    "MissingDefinitionError",
    "MissingDependencyError",
    "Module",
    "ModuleState",
    "WireworkError",
    "__version__",
]

"""Discovering module declarations in Python files."""

from __future__ import annotations

import glob
import importlib.util
import inspect
import itertools
import sys
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, Mapping

from .declarations import Declaration

_scanned = itertools.count(1)


def find_files(
    patterns: str | Iterable[str], root: str | Path | None = None
) -> list[Path]:
    """Expand glob patterns into a list of distinct files.

    Files come out in the order of the patterns that first matched them, and
    sorted by path within each pattern.  Relative patterns are matched
    against ``root``, or the working directory when no root is given.  ``**``
    matches any number of directories.
    """
    if isinstance(patterns, str):
        patterns = [patterns]

    base = Path(root) if root is not None else Path.cwd()

    found: dict[Path, None] = {}
    for pattern in patterns:
        if Path(pattern).is_absolute():
            matches = [Path(match) for match in glob.glob(pattern, recursive=True)]
        else:
            matches = [
                base / match
                for match in glob.glob(pattern, root_dir=base, recursive=True)
            ]
        for path in sorted(match.resolve() for match in matches if match.is_file()):
            found.setdefault(path)

    return list(found)


def import_file(path: Path) -> ModuleType:
    module_name = f"_wirework_scanned_{next(_scanned)}_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot import modules from {path}", path=str(path))

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[module_name]
        raise
    return module


def load_declarations(path: Path) -> list[tuple[str, Declaration]]:
    """Import a file and collect the modules it declares.

    A file lists its modules in a module-level ``__modules__``, which may be a
    mapping of names to declarations, or an iterable of ``(name, declaration)``
    pairs, of mappings with ``name`` and ``define`` keys (and optionally
    ``dependencies``), or of objects with those attributes:

    ```python
    def config():
        return {"greeting": "Howdy"}

    def greeter(config):
        return Greeter(config["greeting"])

    __modules__ = {"config": config, "greeter": greeter}
    ```

    Without ``__modules__``, every public function defined in the file is
    registered under its own name.
    """
    module = import_file(path)

    declared = getattr(module, "__modules__", None)
    if declared is None:
        return [
            (name, value)
            for name, value in vars(module).items()
            if not name.startswith("_")
            and inspect.isfunction(value)
            and value.__module__ == module.__name__
        ]

    if isinstance(declared, Mapping):
        return list(declared.items())  # type: ignore[arg-type]

    return [_declaration_of(item, path) for item in declared]


def _declaration_of(item: Any, path: Path) -> tuple[str, Declaration]:
    if isinstance(item, tuple) and not hasattr(item, "_fields"):
        name, declaration = item
        return name, declaration

    if isinstance(item, Mapping):
        name = item.get("name")
        define = item.get("define")
        dependencies = item.get("dependencies")
    else:
        name = getattr(item, "name", None)
        define = getattr(item, "define", None)
        dependencies = getattr(item, "dependencies", None)

    if name is None:
        raise ValueError(f"Module declared in {path} has no name: {item!r}")

    if dependencies is None or define is None:
        return name, define

    return name, [*dependencies, define]

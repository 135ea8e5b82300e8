"""Normalizing module declarations into dependency names and a callable."""

from __future__ import annotations

import inspect
import weakref
from typing import Any, Callable, NamedTuple, Sequence

from .errors import InvalidNameError, MissingDefinitionError
from .instrumentation import CACHE_SIZE

DefineFunction = Callable[..., Any]
Declaration = DefineFunction | Sequence[str | DefineFunction]

# entries are dropped when their function is garbage collected
_signature_cache: weakref.WeakKeyDictionary[Callable[..., Any], inspect.Signature]
_signature_cache = weakref.WeakKeyDictionary()

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class Extracted(NamedTuple):
    dependencies: tuple[str, ...]
    function: DefineFunction


def get_signature(function: Callable[..., Any]) -> inspect.Signature:
    try:
        cached = _signature_cache.get(function)
    except TypeError:
        # builtins can't be weakly referenced and unhashable callables can't
        # be keys, so their signatures aren't cached
        return _read_signature(function)

    if cached is not None:
        return cached

    signature = _read_signature(function)
    _signature_cache[function] = signature
    CACHE_SIZE.set(len(_signature_cache), {"cache": "signature"})
    return signature


def _read_signature(function: Callable[..., Any]) -> inspect.Signature:
    signature_attr = getattr(function, "__signature__", None)
    if isinstance(signature_attr, inspect.Signature):
        return signature_attr
    return inspect.signature(function)


def get_dependency_names(function: Callable[..., Any]) -> tuple[str, ...]:
    """The names of the modules a function asks for, in parameter order.

    Only positional parameters without a default are dependencies; ``*args``,
    ``**kwargs``, keyword-only and defaulted parameters are left alone so that
    a define function can still carry its own optional settings.
    """
    return tuple(
        name
        for name, parameter in get_signature(function).parameters.items()
        if parameter.kind in _POSITIONAL and parameter.default is parameter.empty
    )


def extract_dependencies(name: str, declaration: Declaration | None) -> Extracted:
    """Split a declaration into its dependency names and its define function.

    A declaration is either a callable, whose dependencies are inferred from
    its parameter names, or a list or tuple of dependency names followed by
    the callable, which takes the dependencies positionally in that order:

    ```python
    container.register("greeting", lambda config: config["greeting"])
    container.register("greeting", ["config", lambda c: c["greeting"]])
    ```
    """
    if declaration is None:
        raise MissingDefinitionError(name)

    if callable(declaration):
        return Extracted(get_dependency_names(declaration), declaration)

    if isinstance(declaration, (str, bytes)) or not isinstance(
        declaration, Sequence
    ):
        raise MissingDefinitionError(name, f"got {type(declaration).__name__}")

    if not declaration:
        raise MissingDefinitionError(name)

    *dependencies, function = declaration
    if not callable(function):
        raise MissingDefinitionError(name, "the last element must be callable")

    for dependency in dependencies:
        if not dependency or not isinstance(dependency, str):
            raise InvalidNameError(
                f"Dependencies of module {name} must be non-empty strings, "
                f"got {dependency!r}"
            )

    return Extracted(tuple(dependencies), function)  # type: ignore[arg-type]

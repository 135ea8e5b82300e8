import asyncio
import inspect
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, MutableMapping, Self

from opentelemetry import trace

from .cycles import Cycle, detect_cycles, reachable
from .declarations import Declaration, extract_dependencies
from .errors import (
    CircularDependencyError,
    DuplicateModuleError,
    InvalidNameError,
    MissingDependencyError,
)
from .graph import render_graph
from .instrumentation import (
    MODULES_IGNORED,
    MODULES_REGISTERED,
    MODULES_RESOLVED,
    RESOLUTION_FAILURES,
    RESOLUTIONS_RUNNING,
)
from .module import Module, ModuleState
from .scanning import find_files, load_declarations

tracer: trace.Tracer = trace.get_tracer(__name__)

Logger = logging.Logger | logging.LoggerAdapter[Any]
ModuleNames = Iterable[str] | Mapping[str, Any]


def _module_names(modules: ModuleNames | None) -> frozenset[str]:
    if modules is None:
        return frozenset()
    if isinstance(modules, Mapping):
        return frozenset(name for name, enabled in modules.items() if enabled)
    if isinstance(modules, str):
        return frozenset([modules])
    return frozenset(modules)


def overlay(target: Any, source: Any) -> list[str]:
    """Copy each attribute of ``source`` that isn't ``None`` onto ``target``.

    Mappings contribute their items and other objects their instance
    attributes.  ``target`` is changed in place.  Returns the names that
    ``target`` refused, such as the attributes of an ``int`` or a frozen
    dataclass, which are left as they were.
    """
    if isinstance(source, Mapping):
        attributes: Mapping[str, Any] = source
    elif hasattr(source, "__dict__"):
        attributes = vars(source)
    else:
        return []

    skipped: list[str] = []
    for key, value in attributes.items():
        if value is None:
            continue
        if isinstance(target, MutableMapping):
            target[key] = value
            continue
        try:
            setattr(target, key, value)
        except (AttributeError, TypeError):
            skipped.append(str(key))

    return skipped


class Container:
    """A registry of named modules that resolves them on demand.

    Modules are registered with a name and a declaration, either a function
    whose parameter names are the names of its dependencies, or a list of
    dependency names followed by the function:

    ```python
    container = Container()
    container.register("config", load_config)
    container.register("database", lambda config: Database(config["url"]))
    container.register("users", ["database", UserRepository])

    users = await container.resolve("users")
    ```

    Each module's define function runs at most once per container; later
    resolutions get the cached value.
    """

    _modules: dict[str, Module]
    _partial_modules: dict[str, Module]
    _cycles: list[Cycle] | None
    _scopes: dict[str, frozenset[str]] | None

    def __init__(
        self,
        verbose: bool = False,
        mock_modules: ModuleNames | None = None,
        partial_mock_modules: ModuleNames | None = None,
        logger: Logger | None = None,
    ) -> None:
        """
        Args:
            verbose: Log registrations and resolutions at the DEBUG level.
            mock_modules: Names whose first registration is permanent; later
                registrations of the same name are ignored.
            partial_mock_modules: Names whose re-registration keeps the
                earlier module as a partial mock, overlaid onto the new
                module's value when it resolves.
            logger: Where to send diagnostics, defaults to the
                ``wirework.container`` logger.
        """
        self.verbose = verbose
        self.mock_modules = _module_names(mock_modules)
        self.partial_mock_modules = _module_names(partial_mock_modules)
        self.logger: Logger = (
            logger if logger is not None else logging.getLogger(__name__)
        )

        self._modules = {}
        self._partial_modules = {}
        self._cycles = None
        self._scopes = None

    def set_logger(self, logger: Logger) -> Self:
        self.logger = logger
        return self

    @property
    def modules(self) -> Mapping[str, Module]:
        return MappingProxyType(self._modules)

    def _debug(self, message: str, *args: Any) -> None:
        if self.verbose:
            self.logger.debug(message, *args)

    def register(self, name: str, declaration: Declaration | None = None) -> None:
        """Register a module under a unique name.

        Args:
            name: The name dependents use to ask for this module.
            declaration: A function, or a list of dependency names followed
                by a function.
        """
        self._register(name, declaration)

    def _register(self, name: str, declaration: Declaration | None) -> Module | None:
        self._cycles = None
        self._scopes = None

        if not name or not isinstance(name, str):
            raise InvalidNameError("Module must have a name")

        self._debug("Registering %s", name)

        dependencies, define = extract_dependencies(name, declaration)
        module = Module(name, dependencies, define)

        if name in self._modules:
            if name in self.mock_modules:
                self._debug("Keeping the mock registered first for %s", name)
                MODULES_IGNORED.add(1, {"module": name})
                return None
            elif name in self.partial_mock_modules:
                self._debug("Keeping %s as a partial mock", name)
                self._partial_modules[name] = self._modules[name]
            else:
                raise DuplicateModuleError(name)

        self._modules[name] = module
        MODULES_REGISTERED.add(1, {"module": name})
        return module

    def is_registered(self, name: str) -> bool:
        return name in self._modules

    def register_and_export(self, name: str, value: Any) -> Any:
        """Register a value that already exists, such as a client or a module
        from outside of the container, as a resolved module.

        ```python
        container.register_and_export("http", httpx.AsyncClient())
        ```
        """
        module = self._register(name, lambda: value)
        if module is not None:
            module.export(value)
        return value

    def cycles(self) -> list[Cycle]:
        """Every cycle in the current module graph, computed once per change."""
        if self._cycles is None:
            self._cycles = detect_cycles(
                {name: module.dependencies for name, module in self._modules.items()}
            )
        return list(self._cycles)

    def missing_dependencies(self) -> dict[str, list[str]]:
        """The unregistered dependencies of each module, for modules that have any."""
        missing: dict[str, list[str]] = {}
        for name in sorted(self._modules):
            absent = [
                dependency
                for dependency in self._modules[name].dependencies
                if dependency not in self._modules
            ]
            if absent:
                missing[name] = absent
        return missing

    async def resolve(self, name: str) -> Any:
        """Produce the value of a module, resolving its dependencies first.

        Raises:
            MissingDependencyError: The module or one of its dependencies is
                not registered.
            CircularDependencyError: The module graph has a cycle.
        """
        return await self._resolve(name, self._modules)

    async def _resolve(
        self,
        name: str,
        registry: dict[str, Module],
        requester: str | None = None,
    ) -> Any:
        module = registry.get(name)
        if module is None:
            raise MissingDependencyError(name)

        if module.state is ModuleState.RESOLVED:
            self._debug("%s resolved from cache", name)
            return module.exported

        for dependency in module.dependencies:
            if dependency not in self._modules:
                self.logger.warning("Dependency %s not found for %s", dependency, name)
                raise MissingDependencyError(dependency, name)

        cycles = self.cycles()
        if cycles:
            raise CircularDependencyError(name, cycles)

        if module.state is ModuleState.REGISTERED:
            module.state = ModuleState.RESOLVING
            module.defining = asyncio.create_task(
                self._define(module),
                name=f"wirework.define:{name}",
            )
            module.pending = asyncio.create_task(
                self._materialize(module, registry),
                name=f"wirework.resolve:{name}",
            )

        if (
            requester is not None
            and registry is self._modules
            and requester in self._overlay_scopes().get(name, ())
        ):
            # the overlay is waiting on the requester
            assert module.defining is not None
            return await asyncio.shield(module.defining)

        assert module.pending is not None
        return await asyncio.shield(module.pending)

    def _overlay_scopes(self) -> dict[str, frozenset[str]]:
        """Map each module with a partial mock to the modules that partial mock
        needs, directly or indirectly.

        Those modules get the value of the define function before the
        partial mock is overlaid onto it, the same way the partial mock does.
        """
        if self._scopes is None:
            graph: dict[str, tuple[str, ...]] = {}
            for name, module in self._modules.items():
                graph[name] = module.dependencies
                if name in self._partial_modules:
                    graph[name] += self._partial_modules[name].dependencies

            self._scopes = {
                name: reachable(graph, shadow.dependencies) | {name}
                for name, shadow in self._partial_modules.items()
            }
        return self._scopes

    async def _define(self, module: Module) -> Any:
        with tracer.start_as_current_span(
            "wirework.resolve",
            attributes=module.as_span_attributes(),
        ):
            RESOLUTIONS_RUNNING.add(1)
            try:
                arguments = await asyncio.gather(
                    *(
                        self._resolve(dependency, self._modules, module.name)
                        for dependency in module.dependencies
                    )
                )

                value = module.define(*arguments)
                if inspect.isawaitable(value):
                    value = await value
                return value
            finally:
                RESOLUTIONS_RUNNING.add(-1)

    async def _materialize(self, module: Module, registry: dict[str, Module]) -> Any:
        assert module.defining is not None
        try:
            value = await module.defining

            if registry is self._modules and module.name in self._partial_modules:
                mock = await self._resolve(module.name, self._partial_modules)
                skipped = overlay(value, mock)
                if skipped:
                    self.logger.warning(
                        "Could not overlay %s onto %s", ", ".join(skipped), module.name
                    )
        except BaseException:
            module.reset()
            RESOLUTION_FAILURES.add(1, {"module": module.name})
            raise

        module.export(value)
        MODULES_RESOLVED.add(1, {"module": module.name})
        self._debug("%s resolved", module.name)
        return value

    async def inject(
        self, declaration: Declaration | None, context: Any = None
    ) -> Any:
        """Call a function with its dependencies resolved from this container.

        Nothing is registered and the function runs on every call.  When
        ``context`` is given it is passed as the first argument, the way a
        method receives ``self``, and is not treated as a dependency.
        """
        if declaration is None:
            return None

        dependencies, function = extract_dependencies(
            getattr(declaration, "__name__", "<injected>"), declaration
        )
        if context is not None and callable(declaration):
            dependencies = dependencies[1:]

        arguments = await asyncio.gather(
            *(self.resolve(dependency) for dependency in dependencies)
        )
        if context is not None:
            arguments = [context, *arguments]

        result = function(*arguments)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def scan(
        self, patterns: str | Iterable[str], root: str | Path | None = None
    ) -> None:
        """Register the modules declared by every Python file matching the
        glob ``patterns``, relative to ``root`` or the working directory."""
        paths = await asyncio.to_thread(find_files, patterns, root)
        for path in paths:
            try:
                declarations = await asyncio.to_thread(load_declarations, path)
                for name, declaration in declarations:
                    self.register(name, declaration)
            except Exception:
                self.logger.exception("Error while processing file %s", path)
                raise

    def graph_source(self, exclude: Iterable[str] | None = None) -> str:
        return render_graph(
            {name: module.dependencies for name, module in self._modules.items()},
            exclude,
        )

    def save_graph(
        self, path: str | Path, exclude: Iterable[str] | None = None
    ) -> None:
        """Write the module graph to ``path`` in the DOT language."""
        Path(path).write_text(self.graph_source(exclude))

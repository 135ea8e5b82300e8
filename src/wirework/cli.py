import asyncio
import enum
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer

from . import __version__
from .container import Container
from .cycles import format_cycle
from .errors import WireworkError

app: typer.Typer = typer.Typer(
    help="wirework - Resolve and inspect the modules wired into a container",
    add_completion=True,
    no_args_is_help=True,
)


class LogLevel(enum.StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(enum.StrEnum):
    RICH = "rich"
    PLAIN = "plain"
    JSON = "json"


def logging_handler(format: LogFormat) -> logging.Handler:
    """A handler that writes records to standard error in ``format``, leaving
    standard output for the results of the commands."""
    if format == LogFormat.RICH:
        from rich.console import Console
        from rich.logging import RichHandler

        rich_handler = RichHandler(console=Console(stderr=True), show_path=False)
        rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        return rich_handler

    handler = logging.StreamHandler(stream=sys.stderr)
    if format == LogFormat.JSON:
        from pythonjsonlogger.json import JsonFormatter

        handler.setFormatter(
            JsonFormatter("{name}{asctime}{levelname}{message}{exc_info}", style="{")
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    return handler


def set_logging_format(format: LogFormat) -> None:
    logging.getLogger().addHandler(logging_handler(format))


def set_logging_level(level: LogLevel) -> None:
    logging.getLogger().setLevel(level)


Patterns = Annotated[
    list[str],
    typer.Argument(
        help=(
            "Glob patterns of the Python files that declare modules.  Use ** to "
            "match any number of directories."
        ),
    ),
]
Root = Annotated[
    Path | None,
    typer.Option(
        help="The directory that relative patterns are matched against",
        envvar="WIREWORK_ROOT",
    ),
]
Mocks = Annotated[
    list[str],
    typer.Option(
        "--mock",
        help=(
            "A module whose first registration is kept when it is registered "
            "again.  This can be specified multiple times."
        ),
        envvar="WIREWORK_MOCK_MODULES",
    ),
]
PartialMocks = Annotated[
    list[str],
    typer.Option(
        "--partial-mock",
        help=(
            "A module whose first registration is overlaid onto the value of "
            "its next registration.  This can be specified multiple times."
        ),
        envvar="WIREWORK_PARTIAL_MOCK_MODULES",
    ),
]
Verbose = Annotated[
    bool,
    typer.Option(
        "--verbose",
        help="Log every registration and resolution at the DEBUG level",
        envvar="WIREWORK_VERBOSE",
    ),
]
LoggingLevel = Annotated[
    LogLevel,
    typer.Option(
        help="The logging level",
        envvar="WIREWORK_LOGGING_LEVEL",
        callback=set_logging_level,
    ),
]
LoggingFormat = Annotated[
    LogFormat,
    typer.Option(
        help="The logging format",
        envvar="WIREWORK_LOGGING_FORMAT",
        callback=set_logging_format,
    ),
]

DEFAULT_LOGGING_FORMAT = LogFormat.RICH if sys.stderr.isatty() else LogFormat.PLAIN


async def scanned_container(
    patterns: list[str],
    root: Path | None,
    mocks: list[str],
    partial_mocks: list[str],
    verbose: bool,
) -> Container:
    container = Container(
        verbose=verbose,
        mock_modules=mocks,
        partial_mock_modules=partial_mocks,
    )
    await container.scan(patterns, root=root)
    return container


@app.command(help="Check the declared modules for missing and circular dependencies")
def check(
    patterns: Patterns,
    root: Root = None,
    mocks: Mocks = [],
    partial_mocks: PartialMocks = [],
    verbose: Verbose = False,
    logging_level: LoggingLevel = LogLevel.WARNING,
    logging_format: LoggingFormat = DEFAULT_LOGGING_FORMAT,
) -> None:
    container = asyncio.run(
        scanned_container(patterns, root, mocks, partial_mocks, verbose)
    )

    missing = container.missing_dependencies()
    cycles = container.cycles()

    for name, dependencies in missing.items():
        for dependency in dependencies:
            print(f"Missing dependency {dependency!r} for module {name!r}")

    for cycle in cycles:
        print(f"Circular dependency {format_cycle(cycle)}")

    if missing or cycles:
        raise typer.Exit(code=1)

    print(f"{len(container.modules)} modules, no problems found")


@app.command(help="Write the module graph in the DOT language")
def graph(
    patterns: Patterns,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Where to write the graph, defaults to standard output",
        ),
    ] = None,
    exclude: Annotated[
        list[str],
        typer.Option(
            "--exclude",
            help=(
                "A module to leave off of every dependency list.  This can be "
                "specified multiple times."
            ),
        ),
    ] = [],
    root: Root = None,
    mocks: Mocks = [],
    partial_mocks: PartialMocks = [],
    verbose: Verbose = False,
    logging_level: LoggingLevel = LogLevel.WARNING,
    logging_format: LoggingFormat = DEFAULT_LOGGING_FORMAT,
) -> None:
    container = asyncio.run(
        scanned_container(patterns, root, mocks, partial_mocks, verbose)
    )

    if output is None:
        print(container.graph_source(exclude), end="")
    else:
        container.save_graph(output, exclude)
        print(f"Wrote {len(container.modules)} modules to {output}")


@app.command(help="Resolve a module and print its value")
def resolve(
    name: Annotated[
        str,
        typer.Argument(help="The name of the module to resolve"),
    ],
    patterns: Patterns,
    root: Root = None,
    mocks: Mocks = [],
    partial_mocks: PartialMocks = [],
    verbose: Verbose = False,
    logging_level: LoggingLevel = LogLevel.WARNING,
    logging_format: LoggingFormat = DEFAULT_LOGGING_FORMAT,
) -> None:
    async def run() -> object:
        container = await scanned_container(
            patterns, root, mocks, partial_mocks, verbose
        )
        return await container.resolve(name)

    try:
        value = asyncio.run(run())
    except WireworkError as error:
        print(str(error))
        raise typer.Exit(code=1)

    print(repr(value))


@app.command(
    help="Print the version of wirework",
)
def version() -> None:
    print(__version__)

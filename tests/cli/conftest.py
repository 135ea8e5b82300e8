import logging
from typing import Generator

import pytest
from typer.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Provides a CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None, None, None]:
    """The logging options configure the root logger, so put it back after each
    command."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)

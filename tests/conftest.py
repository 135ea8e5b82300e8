from pathlib import Path

import pytest

from wirework import Container


@pytest.fixture
def container() -> Container:
    return Container()


@pytest.fixture
def files() -> Path:
    return Path(__file__).parent / "files"

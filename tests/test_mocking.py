"""Tests for replacing modules with mocks and partial mocks."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace

import pytest

from wirework import Container, DuplicateModuleError, ModuleState
from wirework.container import overlay


async def test_mock_modules_keep_their_first_registration():
    container = Container(mock_modules={"first": True})

    container.register("first", lambda: "mock")
    container.register("first", lambda: "orig")

    assert await container.resolve("first") == "mock"


async def test_mock_modules_may_be_listed_by_name():
    container = Container(mock_modules=["first"])

    container.register("first", lambda: "mock")
    container.register("first", lambda: "orig")
    container.register("first", lambda: "again")

    assert await container.resolve("first") == "mock"


def test_disabled_mock_modules_are_still_unique():
    container = Container(mock_modules={"first": False})

    container.register("first", lambda: "mock")

    with pytest.raises(DuplicateModuleError):
        container.register("first", lambda: "orig")


def test_mocks_do_not_apply_to_other_modules():
    container = Container(mock_modules={"first": True})

    container.register("second", lambda: "one")

    with pytest.raises(DuplicateModuleError):
        container.register("second", lambda: "two")


async def test_exporting_over_a_mock_keeps_the_mock():
    container = Container(mock_modules={"client": True})

    container.register("client", lambda: "mock client")
    assert container.register_and_export("client", "real client") == "real client"

    assert await container.resolve("client") == "mock client"


async def test_mocks_can_stand_in_for_missing_dependencies():
    container = Container(mock_modules={"database": True})

    container.register("database", lambda: {"users": ["alice"]})
    container.register("database", lambda config: config["url"])
    container.register("users", lambda database: database["users"])

    assert await container.resolve("users") == ["alice"]


async def test_partial_mocks_overlay_attributes():
    container = Container(partial_mock_modules={"foo": True})

    class Foo:
        def get_x(self) -> int:
            return 1

        def get_y(self) -> int:
            return 2

    container.register("foo", lambda: SimpleNamespace(get_x=lambda: 150))
    container.register("foo", lambda: Foo())

    foo = await container.resolve("foo")

    assert isinstance(foo, Foo)
    assert foo.get_x() == 150
    assert foo.get_y() == 2


async def test_partial_mocks_overlay_mappings_in_place():
    container = Container(partial_mock_modules=["settings"])
    real = {"url": "postgres://prod", "pool_size": 20, "debug": False}

    container.register("settings", lambda: {"url": "sqlite://", "debug": None})
    container.register("settings", lambda: real)

    settings = await container.resolve("settings")

    assert settings is real
    assert settings == {"url": "sqlite://", "pool_size": 20, "debug": False}


async def test_partial_mocks_are_resolved_once():
    container = Container(partial_mock_modules=["foo"])
    calls: list[str] = []

    def mock():
        calls.append("mock")
        return {"x": 150}

    def real():
        calls.append("real")
        return {"x": 1, "y": 2}

    container.register("foo", mock)
    container.register("foo", real)

    first = await container.resolve("foo")
    second = await container.resolve("foo")

    assert first is second
    assert first == {"x": 150, "y": 2}
    assert sorted(calls) == ["mock", "real"]


async def test_partial_mocks_may_have_dependencies():
    container = Container(partial_mock_modules=["greeter"])

    container.register("greeting", lambda: "Howdy")
    container.register("greeter", lambda greeting: {"greet": greeting + "!"})
    container.register("greeter", lambda: {"greet": "Hello", "farewell": "Bye"})

    assert await container.resolve("greeter") == {"greet": "Howdy!", "farewell": "Bye"}


async def test_partial_mocks_without_an_override_resolve_normally():
    container = Container(partial_mock_modules=["foo"])

    container.register("foo", lambda: {"x": 1})

    assert await container.resolve("foo") == {"x": 1}


async def test_failing_partial_mock_fails_the_module():
    container = Container(partial_mock_modules=["foo"])

    def broken():
        raise ValueError("bad mock")

    container.register("foo", broken)
    container.register("foo", lambda: {"x": 1})

    with pytest.raises(ValueError, match="bad mock"):
        await container.resolve("foo")

    assert container.modules["foo"].state is ModuleState.REGISTERED


async def test_partial_mocks_from_scanned_files(files: Path):
    container = Container(partial_mock_modules={"foo": True})

    await container.scan([str(files / "foo_mock.py")])
    await container.scan([str(files / "foo.py")])

    foo = await container.resolve("foo")

    assert foo.get_x() == 150
    assert foo.get_y() == 2


async def test_scanned_files_without_mocking(files: Path):
    container = Container()

    await container.scan([str(files / "foo.py")])

    foo = await container.resolve("foo")

    assert foo.get_x() == 1
    assert foo.get_y() == 2


async def test_partial_mocks_may_depend_on_the_module_they_replace():
    container = Container(partial_mock_modules=["foo"])

    container.register("foo", ["foo", lambda real: {"x": real["x"] + 149}])
    container.register("foo", lambda: {"x": 1, "y": 2})

    foo = await asyncio.wait_for(container.resolve("foo"), timeout=1)

    assert foo == {"x": 150, "y": 2}


async def test_partial_mocks_may_reach_the_module_they_replace_indirectly():
    container = Container(partial_mock_modules=["foo"])

    container.register("foo", lambda spy: {"x": spy})
    container.register("spy", lambda foo: foo["x"] * 150)
    container.register("foo", lambda: {"x": 1, "y": 2})

    spy, foo = await asyncio.wait_for(
        asyncio.gather(container.resolve("spy"), container.resolve("foo")),
        timeout=1,
    )

    assert spy == 150
    assert foo == {"x": 150, "y": 2}
    assert container.modules["spy"].state is ModuleState.RESOLVED


async def test_dependents_outside_the_partial_mock_see_the_overlay():
    container = Container(partial_mock_modules=["foo"])

    container.register("foo", ["foo", lambda real: {"x": 150}])
    container.register("foo", lambda: {"x": 1})
    container.register("bar", lambda foo: foo["x"])

    assert await asyncio.wait_for(container.resolve("bar"), timeout=1) == 150


async def test_partial_mocks_leave_immutable_values_alone(
    caplog: pytest.LogCaptureFixture,
):
    container = Container(partial_mock_modules=["limit"])

    container.register("limit", lambda: SimpleNamespace(real=5))
    container.register("limit", lambda: 10)

    with caplog.at_level(logging.WARNING, logger="wirework"):
        assert await container.resolve("limit") == 10

    assert "Could not overlay real onto limit" in caplog.text
    assert container.modules["limit"].state is ModuleState.RESOLVED


def test_overlay_reports_attributes_it_could_not_set():
    @dataclass(frozen=True)
    class Point:
        x: int
        y: int

    point = Point(1, 2)

    assert overlay(point, {"x": 5, "y": None}) == ["x"]
    assert point == Point(1, 2)


def test_overlay_sets_attributes_and_keys():
    target = SimpleNamespace(x=1, y=2)
    assert overlay(target, SimpleNamespace(x=5, y=None)) == []
    assert target == SimpleNamespace(x=5, y=2)

    mapping = {"x": 1}
    assert overlay(mapping, {"x": 5, "z": 3}) == []
    assert mapping == {"x": 5, "z": 3}

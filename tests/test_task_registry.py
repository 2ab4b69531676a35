# tests/test_task_registry.py

from __future__ import annotations

import pytest

from taskforge.core.errors import TaskNotFound
from taskforge.tasks.task_models import RunContext
from taskforge.tasks.task_registry import TaskRegistry, split_colon_args


def _noop(ctx, *args):
    return None


@pytest.fixture()
def enqueued() -> list[tuple[str, ...]]:
    return []


@pytest.fixture()
def registry(enqueued) -> TaskRegistry:
    return TaskRegistry(enqueue=lambda *names: enqueued.append(names))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("foo", ["foo"]),
        ("foo:bar:baz", ["foo", "bar", "baz"]),
        ("a\\:b:c", ["a:b", "c"]),
        ("a\\\\:b", ["a\\", "b"]),
        ("a\\\\\\:b", ["a\\:b"]),
        ("", []),
        (None, []),
    ],
)
def test_split_colon_args(raw, expected) -> None:
    assert split_colon_args(raw) == expected


def test_resolve_prefers_longest_registered_prefix(registry: TaskRegistry) -> None:
    registry.register("foo", _noop)
    registry.register("foo:bar", _noop)
    registry.register("foo:bar:baz", _noop)

    inv = registry.resolve("foo:bar:baz")
    assert inv is not None
    assert inv.task_name == "foo:bar:baz"
    assert inv.args == ()

    registry.rename("foo:bar:baz", "other")
    inv = registry.resolve("foo:bar:baz")
    assert inv.task_name == "foo:bar"
    assert inv.args == ("baz",)

    registry.rename("foo:bar", "other2")
    inv = registry.resolve("foo:bar:baz")
    assert inv.task_name == "foo"
    assert inv.args == ("bar", "baz")
    assert inv.flags == {"bar": True, "baz": True}
    assert inv.raw_name == "foo:bar:baz"

    registry.rename("foo", "other3")
    assert registry.resolve("foo:bar:baz") is None


def test_resolve_all_splits_found_and_missing(registry: TaskRegistry) -> None:
    registry.register("a", _noop)
    resolved, missing = registry.resolve_all(["a", "nope", "a:x"])
    assert [inv.raw_name for inv in resolved] == ["a", "a:x"]
    assert missing == ["nope"]


def test_register_overwrites_and_exists(registry: TaskRegistry) -> None:
    assert not registry.exists("build")
    first = registry.register("build", _noop)
    assert registry.exists("build")
    assert first.info == "Custom task."

    second = registry.register("build", _noop, "Builds things.")
    assert registry.get("build") is second
    assert second.info == "Builds things."
    assert len(registry) == 1


def test_alias_info_and_body_enqueues_without_running(registry: TaskRegistry, enqueued) -> None:
    many = registry.register("default", ["lint", "test"])
    one = registry.register("ci", "test")

    assert many.is_alias and one.is_alias
    assert registry.is_alias("default")
    assert many.info == 'Alias for "lint", "test" tasks.'
    assert one.info == 'Alias for "test" task.'

    many.body(RunContext(invocation_name="default", task_name="default"))
    assert enqueued == [("lint", "test")]


def test_alias_keeps_explicit_info(registry: TaskRegistry) -> None:
    task = registry.register("default", ["a"], "Everything.")
    assert task.info == "Everything."


def test_rename_moves_definition(registry: TaskRegistry) -> None:
    task = registry.register("old", _noop)
    registry.rename("old", "new")

    assert not registry.exists("old")
    assert registry.get("new") is task
    assert task.name == "new"


def test_rename_missing_task_raises(registry: TaskRegistry) -> None:
    with pytest.raises(TaskNotFound) as exc_info:
        registry.rename("ghost", "spirit")
    assert 'Cannot rename missing "ghost" task.' in str(exc_info.value)


def test_is_alias_unknown_task_raises(registry: TaskRegistry) -> None:
    with pytest.raises(TaskNotFound):
        registry.is_alias("ghost")


def test_register_rejects_callable_info(registry: TaskRegistry) -> None:
    with pytest.raises(TypeError):
        registry.register("x", "Does x.", _noop)
    assert not registry.exists("x")

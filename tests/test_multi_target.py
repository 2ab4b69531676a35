# tests/test_multi_target.py

from __future__ import annotations

import pytest

from taskforge.core.errors import ConfigMissing, GenericTaskFailure, InvalidTargetRequested
from taskforge.tasks.multi_target import is_valid_target, join_invocation
from taskforge.tasks.task_config import TaskConfig
from taskforge.tasks.task_manager import TaskManager
from taskforge.tasks.task_models import RunContext, TargetContext
from taskforge.tasks.task_registry import split_colon_args

from .fakes import RecordingPolicy

CONFIG = {
    "foo": {"x": {"src": ["a.js"]}},
    "bar": {
        "y": {"src": ["b.js"], "dest": "out/b.js", "options": {"level": 2}},
        "_hidden": {"src": ["secret.js"]},
        "options": {"level": 1, "banner": "hi"},
    },
}


@pytest.fixture()
def targets_seen(manager: TaskManager, task_config: TaskConfig) -> list[TargetContext]:
    task_config.init(CONFIG)
    seen: list[TargetContext] = []

    def body(ctx: TargetContext, *args):
        seen.append(ctx)

    manager.register_multi_task("bar", body)
    manager.register_multi_task("foo", body)
    return seen


@pytest.mark.parametrize(
    ("target", "valid"),
    [("y", True), ("options", False), ("_hidden", False), ("opts", True), ("x_", True)],
)
def test_is_valid_target(target, valid) -> None:
    assert is_valid_target(target) is valid


def test_join_invocation_escapes_colons() -> None:
    name = join_invocation("copy", "a:b", "c\\d")
    assert split_colon_args(name) == ["copy", "a:b", "c\\d"]


def test_run_all_targets_skips_options_and_private(manager: TaskManager, targets_seen) -> None:
    assert manager.multi.run_all_targets("bar") is True
    assert [inv.raw_name for inv in manager.scheduler.queue.invocations()] == ["bar:y"]


def test_no_target_runs_every_valid_target(manager: TaskManager, targets_seen) -> None:
    manager.run("bar", "foo")
    manager.start()

    assert [(ctx.task_name, ctx.target) for ctx in targets_seen] == [("bar", "y"), ("foo", "x")]
    assert dict(manager.scheduler.success) == {
        "bar": True,
        "bar:y": True,
        "foo": True,
        "foo:x": True,
    }


def test_wildcard_keeps_positional_args(manager: TaskManager, targets_seen) -> None:
    manager.run("bar:*:fast:dry")
    manager.start()

    [ctx] = targets_seen
    assert ctx.invocation_name == "bar:y:fast:dry"
    assert ctx.args == ["fast", "dry"]
    assert ctx.flags == {"fast": True, "dry": True}


def test_single_target_context(manager: TaskManager, targets_seen, expander) -> None:
    manager.run("bar:y")
    manager.start()

    [ctx] = targets_seen
    assert ctx.target == "y"
    assert ctx.data == CONFIG["bar"]["y"]
    assert len(ctx.files) == 1
    assert ctx.files[0].dest == "out/b.js"
    assert ctx.files_src == ["found/b.js"]
    assert ctx.options({"level": 0, "extra": True}) == {"level": 2, "banner": "hi", "extra": True}


def test_private_target_is_rejected(manager: TaskManager, targets_seen, policy: RecordingPolicy) -> None:
    manager.set_options(on_error=policy.on_error)
    manager.run("bar:_hidden")
    manager.start()

    assert targets_seen == []
    assert manager.scheduler.success["bar:_hidden"] is False
    assert isinstance(policy.errors[0][1], InvalidTargetRequested)


def test_dispatch_raises_for_reserved_target(manager: TaskManager, targets_seen) -> None:
    ctx = RunContext(invocation_name="bar:options", task_name="bar")
    with pytest.raises(InvalidTargetRequested):
        manager.multi.dispatch(ctx, lambda c: None, "options")


def test_no_targets_is_a_task_failure(
    manager: TaskManager, targets_seen, policy: RecordingPolicy, caplog
) -> None:
    manager.register_multi_task("empty", lambda ctx: None)
    manager.set_options(on_error=policy.on_error)

    with caplog.at_level("ERROR", logger="taskforge"):
        manager.run("empty")
        manager.start()

    assert manager.scheduler.success["empty"] is False
    assert isinstance(policy.errors[0][1], GenericTaskFailure)
    assert 'No "empty" targets found.' in caplog.text


def test_missing_target_config(manager: TaskManager, targets_seen, policy: RecordingPolicy) -> None:
    manager.set_options(on_error=policy.on_error)
    manager.run("bar:nope")
    manager.start()

    [(context, error)] = policy.errors
    assert context.invocation_name == "bar:nope"
    assert isinstance(error, ConfigMissing)
    assert error.path == "bar.nope"


def test_target_names_with_colons_round_trip(manager: TaskManager, task_config: TaskConfig) -> None:
    task_config.init({"copy": {"a:b": ["x.txt"]}})
    seen = []
    manager.register_multi_task("copy", lambda ctx: seen.append((ctx.target, ctx.invocation_name)))

    manager.run("copy")
    manager.start()

    assert seen == [("a:b", "copy:a\\:b")]


def test_async_completion_through_target_context(manager: TaskManager, targets_seen) -> None:
    # The target context shares the completion slot with the scheduler's context.
    captured = {}

    def body(ctx, *args):
        captured["ctx"] = ctx

    ctx = RunContext(invocation_name="bar:y", task_name="bar", config=manager.config)
    manager.multi.dispatch(ctx, body, "y")

    target_ctx = captured["ctx"]
    assert target_ctx.async_slot is ctx.async_slot

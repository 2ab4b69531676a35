# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskforge.bootstrap import create_manager
from taskforge.tasks.task_config import TaskConfig
from taskforge.tasks.task_manager import TaskManager
from taskforge.tasks.task_scheduler import Scheduler

from .fakes import FakeExpander, RecordingPolicy


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap/runner.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskforge-test",
        log_level="DEBUG",
        log_dir=tmp_path / "logs",
        default_task="default",
        force=False,
        verbose=False,
        defer_completion=True,
    )


@pytest.fixture()
def task_config() -> TaskConfig:
    return TaskConfig()


@pytest.fixture()
def expander() -> FakeExpander:
    return FakeExpander()


@pytest.fixture()
def policy() -> RecordingPolicy:
    return RecordingPolicy()


@pytest.fixture()
def scheduler() -> Scheduler:
    return Scheduler()


@pytest.fixture()
def manager(settings: SimpleNamespace, task_config: TaskConfig, expander: FakeExpander) -> TaskManager:
    """TaskManager wired with an in-memory config and the fake expander."""
    return create_manager(settings=settings, config=task_config, expander=expander)

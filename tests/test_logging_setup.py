# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from taskforge.logging_setup import _ConsoleNoiseFilter, setup_logging


@pytest.fixture()
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "passes"),
    [
        ("taskforge", logging.DEBUG, True),
        ("taskforge.tasks.task_scheduler", logging.INFO, True),
        ("taskforgery", logging.INFO, False),
        ("py.warnings", logging.WARNING, False),
        ("py.warnings", logging.ERROR, True),
        ("asyncio", logging.WARNING, False),
        ("asyncio", logging.ERROR, True),
    ],
)
def test_console_filter(name, level, passes) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is passes


def test_setup_logging_without_file(restore_root_logging) -> None:
    assert setup_logging() is None
    assert len(restore_root_logging.handlers) == 1
    assert restore_root_logging.level == logging.DEBUG


def test_setup_logging_writes_file_and_does_not_duplicate(restore_root_logging, tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    setup_logging(log_dir=log_dir)
    log_file = setup_logging(log_dir=log_dir, console_level=logging.WARNING)

    assert log_file == log_dir / "taskforge.log"
    assert len(restore_root_logging.handlers) == 2

    logging.getLogger("taskforge.test").debug("hello file")
    for h in restore_root_logging.handlers:
        h.flush()
    assert "hello file" in log_file.read_text(encoding="utf-8")

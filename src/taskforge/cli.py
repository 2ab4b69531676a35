# src/taskforge/cli.py

"""
CLI entrypoint.

Initializes logging, builds a TaskManager, loads the taskfile (a Python module
exposing register(manager)), then runs the requested task names.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import importlib.util
import logging
from pathlib import Path

from .bootstrap import create_manager
from .config import get_settings
from .logging_setup import setup_logging
from .runner import run_tasks
from .tasks.task_manager import TaskManager

logger = logging.getLogger(__name__)

DEFAULT_TASKFILE = "taskfile.py"


def load_taskfile(manager: TaskManager, path: str | Path) -> None:
    """Import `path` and call its register(manager)."""
    path = Path(path)
    spec = importlib.util.spec_from_file_location(f"taskfile_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load taskfile {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    register = getattr(module, "register", None)
    if not callable(register):
        raise ImportError(f"Taskfile {path} has no register(manager) function")

    with manager.loading(source=str(path)):
        register(manager)
    logger.debug("Loaded taskfile %s", path)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="taskforge", description="Run tasks from a taskfile.")
    parser.add_argument("tasks", nargs="*", help='invocation strings, e.g. "build" or "copy:dist:fast"')
    parser.add_argument("-f", "--taskfile", default=DEFAULT_TASKFILE)
    parser.add_argument("--force", action="store_true", default=None, help="keep going after failures")
    parser.add_argument("-v", "--verbose", action="store_true", default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    overrides = {k: v for k, v in (("force", args.force), ("verbose", args.verbose)) if v is not None}
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    console_level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    if settings.verbose:
        console_level = min(console_level, logging.DEBUG)
    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    manager = create_manager(settings=settings)

    taskfile = Path(args.taskfile)
    if not taskfile.is_file():
        logger.error("Taskfile not found: %s", taskfile)
        return 2

    try:
        load_taskfile(manager, taskfile)
    except Exception:
        logger.exception("Failed to load taskfile %s", taskfile)
        return 2

    report = asyncio.run(run_tasks(manager, args.tasks, settings=settings))
    return 0 if report.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())

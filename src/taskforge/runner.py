# src/taskforge/runner.py

"""
Top-level run: queue a list of task names, drain, report.

The default FailurePolicy turns the first failure into "stop here" (the rest of
the queue is cleared) unless settings.force is on, in which case failures are
logged and the run continues.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .config import get_settings
from .core.errors import ResolutionFailure
from .tasks.task_manager import TaskManager
from .tasks.task_scheduler import ErrorContext, Scheduler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunReport:
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed and not self.aborted


class FailurePolicy:
    """Error/done hooks for Scheduler.set_options()."""

    def __init__(self, scheduler: Scheduler, *, force: bool = False) -> None:
        self._scheduler = scheduler
        self._force = force
        self.failures: list[tuple[ErrorContext, BaseException]] = []
        self.aborted = False

    def on_error(self, context: ErrorContext, error: BaseException) -> None:
        self.failures.append((context, error))
        if self._force:
            logger.warning("Warning: %s Used force, continuing.", error)
            return

        logger.error("Warning: %s Use force to continue.", error)
        self.aborted = True
        self._scheduler.clear_queue()

    def on_done(self) -> None:
        if not self.failures:
            logger.info("Done.")
        elif self.aborted:
            logger.error("Aborted due to warnings.")
        else:
            logger.warning("Done, but with warnings.")

    def failed_names(self) -> list[str]:
        names: list[str] = []
        for context, error in self.failures:
            if context.invocation_name is not None:
                names.append(context.invocation_name)
            elif isinstance(error, ResolutionFailure):
                names.append(error.name)
        return names


async def run_tasks(manager: TaskManager, names: Iterable[str] | None = None, *, settings=None) -> RunReport:
    """
    Queue `names` (or settings.default_task when empty), drain the queue and
    return what succeeded and what failed.
    """
    settings = settings or get_settings()
    names = list(names or [])
    if not names:
        logger.debug("No tasks specified, running default tasks.")
        names = [settings.default_task]
    logger.debug("Running tasks: %s", ", ".join(names))

    policy = FailurePolicy(manager.scheduler, force=settings.force)
    manager.set_options(on_error=policy.on_error, on_done=policy.on_done)

    for name in names:
        if policy.aborted:
            break
        manager.run(name)

    await manager.drain(defer_completion=settings.defer_completion)

    failed = policy.failed_names()
    succeeded = [
        name for name, ok in manager.scheduler.success.items() if ok and name not in failed
    ]
    return RunReport(succeeded=succeeded, failed=failed, aborted=policy.aborted)

# src/taskforge/tasks/task_manager.py

from __future__ import annotations

"""
User-facing task API.

TaskManager holds a Scheduler (it does not subclass it) and adds:
- logging headers and config access around every task body,
- multi-tasks (per-target expansion + file-set normalization),
- init tasks, registration metadata, forgiving rename.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from ..core.errors import TaskNotFound
from ..core.ports import ConfigProvider, FileExpander
from .file_expander import GlobFileExpander
from .file_sets import FileSetNormalizer
from .multi_target import WILDCARD, MultiTargetExpander
from .task_config import TaskConfig
from .task_models import RunContext, TaskBody, TaskDefinition
from .task_registry import TaskRegistry
from .task_scheduler import Scheduler

logger = logging.getLogger(__name__)


class TaskManager:
    def __init__(
            self,
            scheduler: Scheduler | None = None,
            *,
            config: ConfigProvider | None = None,
            expander: FileExpander | None = None,
            verbose: bool = False,
    ) -> None:
        self.scheduler = scheduler or Scheduler()
        self.config = config if config is not None else TaskConfig()
        self.expander = expander if expander is not None else GlobFileExpander()
        self.normalizer = FileSetNormalizer(self.config, self.expander, verbose=verbose)
        self.multi = MultiTargetExpander(self.scheduler, self.config, self.normalizer)
        self._meta: dict[str, Any] = {}

    @property
    def registry(self) -> TaskRegistry:
        return self.scheduler.registry

    # ---- Registration ----

    def register_task(
            self,
            name: str,
            body: TaskBody | str | Sequence[str],
            info: str | None = None,
    ) -> TaskDefinition:
        task = self.registry.register(name, body, info, metadata=self._meta)
        task.body = self._decorate(task, task.body)
        return task

    def register_multi_task(self, name: str, body: TaskBody, info: str | None = None) -> TaskDefinition:
        task = self.register_task(name, self.multi.wrap(body), info or "Custom multi task.")
        task.is_multi = True
        return task

    def register_init_task(
            self,
            name: str,
            body: TaskBody | str | Sequence[str],
            info: str | None = None,
    ) -> TaskDefinition:
        """Register a task that runs without any project configuration."""
        task = self.register_task(name, body, info)
        task.is_init = True
        return task

    def rename_task(self, old: str, new: str) -> bool:
        try:
            self.registry.rename(old, new)
        except TaskNotFound as exc:
            logger.error("%s", exc)
            return False
        return True

    @contextmanager
    def loading(self, **meta: Any) -> Iterator[TaskManager]:
        """Attach metadata (e.g. source="tasks/build.py") to tasks registered in this block."""
        saved = self._meta
        self._meta = {**saved, **meta}
        try:
            yield self
        finally:
            self._meta = saved

    def _decorate(self, task: TaskDefinition, body: TaskBody) -> TaskBody:
        def run_task(ctx: RunContext, *args: str) -> Any:
            ctx.config = self.config
            # Alias and "all targets" runs only queue other tasks; keep them out of the normal log.
            quiet = task.is_alias or (task.is_multi and (not args or args[0] == WILDCARD))
            suffix = f" ({ctx.task_name})" if ctx.task_name != ctx.invocation_name else ""
            logger.log(
                logging.DEBUG if quiet else logging.INFO,
                'Running "%s"%s task',
                ctx.invocation_name,
                suffix,
            )
            if "source" in task.metadata:
                logger.debug("Task source: %s", task.metadata["source"])
            return body(ctx, *args)

        return run_task

    # ---- Lookups ----

    def exists(self, name: str) -> bool:
        return self.registry.exists(name)

    def is_alias(self, name: str) -> bool:
        return self.registry.is_alias(name)

    def all_init(self, names: Iterable[str]) -> bool:
        """True if there is at least one name and every name resolves to an init task."""
        names = list(names)
        if not names:
            return False
        for name in names:
            inv = self.registry.resolve(name)
            if inv is None or not inv.task.is_init:
                return False
        return True

    # ---- Scheduler pass-through ----

    def run(self, *names: str | Sequence[str]) -> TaskManager:
        self.scheduler.run(*names)
        return self

    def mark(self) -> TaskManager:
        self.scheduler.mark()
        return self

    def clear_queue(self, *, until_marker: bool = False) -> TaskManager:
        self.scheduler.clear_queue(until_marker=until_marker)
        return self

    def requires(self, *names: str | Sequence[str]) -> None:
        self.scheduler.requires(*names)

    def set_options(self, **overrides: Any) -> None:
        self.scheduler.set_options(**overrides)

    def start(self, *, defer_completion: bool = False, on_done=None) -> bool:
        return self.scheduler.start(defer_completion=defer_completion, on_done=on_done)

    async def drain(self, *, defer_completion: bool = False) -> None:
        await self.scheduler.drain(defer_completion=defer_completion)

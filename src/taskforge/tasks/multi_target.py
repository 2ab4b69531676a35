# src/taskforge/tasks/multi_target.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from ..core.errors import InvalidTargetRequested
from ..core.ports import ConfigProvider
from .file_sets import OPTIONS_KEY, FileSetNormalizer
from .task_models import RunContext, TargetContext, TaskBody

if TYPE_CHECKING:
    from .task_scheduler import Scheduler

logger = logging.getLogger(__name__)

WILDCARD = "*"
PRIVATE_PREFIX = "_"


def is_valid_target(target: str) -> bool:
    """'options' holds shared settings and '_'-prefixed targets are private."""
    return target != OPTIONS_KEY and not target.startswith(PRIVATE_PREFIX)


def _escape_part(part: str) -> str:
    return part.replace("\\", "\\\\").replace(":", "\\:")


def join_invocation(*parts: str) -> str:
    """Inverse of split_colon_args()."""
    return ":".join(_escape_part(p) for p in parts)


class MultiTargetExpander:
    """Gives a task body per-target semantics (task:target:args...)."""

    def __init__(
            self,
            scheduler: Scheduler,
            config: ConfigProvider,
            normalizer: FileSetNormalizer,
    ) -> None:
        self._scheduler = scheduler
        self._config = config
        self._normalizer = normalizer

    def targets(self, task_name: str) -> list[str]:
        names = self._config.get_target_names(task_name) or []
        return [name for name in names if is_valid_target(name)]

    def run_all_targets(self, task_name: str, args: Iterable[str] = ()) -> bool:
        """Queue task:target:args for every valid target. False if there are none."""
        targets = self.targets(task_name)
        if not targets:
            logger.error('No "%s" targets found.', task_name)
            return False
        args = list(args)
        self._scheduler.run([join_invocation(task_name, target, *args) for target in targets])
        return True

    def wrap(self, body: TaskBody) -> TaskBody:
        def run_multi(ctx: RunContext, target: str | None = None, *args: str) -> Any:
            return self.dispatch(ctx, body, target, *args)

        return run_multi

    def dispatch(self, ctx: RunContext, body: TaskBody, target: str | None, *args: str) -> Any:
        name = ctx.task_name
        if not target or target == WILDCARD:
            return self.run_all_targets(name, args)
        if not is_valid_target(target):
            raise InvalidTargetRequested(target)

        self._config.requires([name, target])
        data = self._config.get_target_config(name, target)
        files = self._normalizer.normalize(data, target)
        target_ctx = TargetContext.for_target(ctx, target=target, args=args, data=data, files=files)
        return body(target_ctx, *args)

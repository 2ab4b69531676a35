# src/taskforge/tasks/task_models.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from functools import cached_property
from typing import TYPE_CHECKING, Any

from ..core.errors import SchedulerError
from ..logging_setup import error_counter

if TYPE_CHECKING:
    from ..core.ports import ConfigProvider
    from .task_scheduler import Scheduler

logger = logging.getLogger(__name__)

TaskBody = Callable[..., Any]


@dataclass(slots=True)
class TaskDefinition:
    name: str
    info: str
    body: TaskBody
    is_alias: bool = False
    is_multi: bool = False
    is_init: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


class QueueSentinel(StrEnum):
    """
    Non-invocation queue entries.

    - PLACEHOLDER: insertion point for run() calls made by the task that is running now
    - MARKER: boundary for clear_queue(until_marker=True)
    """

    PLACEHOLDER = "placeholder"
    MARKER = "marker"


@dataclass(slots=True, frozen=True)
class Invocation:
    """One resolved request: run `task` with positional `args`."""

    raw_name: str
    task: TaskDefinition
    args: tuple[str, ...] = ()

    @property
    def task_name(self) -> str:
        return self.task.name

    @property
    def flags(self) -> dict[str, bool]:
        return dict.fromkeys(self.args, True)


QueueEntry = Invocation | QueueSentinel


class CompletionHandle:
    """
    One-shot continuation returned by RunContext.request_async().

    Call it with the task result: False -> failure, an exception -> failure
    carrying that exception, anything else (or nothing) -> success.
    """

    def __init__(self, on_complete: Callable[[Any], None]) -> None:
        self._on_complete = on_complete
        self._settled = False

    @property
    def settled(self) -> bool:
        return self._settled

    def __call__(self, result: Any = None) -> None:
        if self._settled:
            logger.warning("Completion handle invoked more than once; ignoring result=%r", result)
            return
        self._settled = True
        self._on_complete(result)

    def discard(self) -> None:
        """Mark as settled without resuming (the task already completed another way)."""
        self._settled = True


@dataclass(slots=True)
class AsyncSlot:
    factory: Callable[[], CompletionHandle] | None = None
    handle: CompletionHandle | None = None


@dataclass
class RunContext:
    """What a task body receives as its first argument."""

    invocation_name: str
    task_name: str
    args: list[str] = field(default_factory=list)
    flags: dict[str, bool] = field(default_factory=dict)
    scheduler: Scheduler | None = field(default=None, repr=False, compare=False)
    config: ConfigProvider | None = field(default=None, repr=False, compare=False)
    async_slot: AsyncSlot = field(default_factory=AsyncSlot, repr=False, compare=False)
    errors_at_start: int = field(
        default_factory=lambda: error_counter().count, repr=False, compare=False
    )

    @property
    def async_handle(self) -> CompletionHandle | None:
        return self.async_slot.handle

    @property
    def error_count(self) -> int:
        """ERROR records logged under "taskforge" since this context was created."""
        return error_counter().count - self.errors_at_start

    @property
    def log(self) -> logging.Logger:
        """Logger for task bodies; its ERROR records count toward error_count."""
        return logging.getLogger(f"taskforge.task.{self.task_name}")

    def request_async(self) -> CompletionHandle:
        """
        Defer completion past the body's return.

        The scheduler will not move on until the returned handle is called.
        """
        if self.async_slot.handle is None:
            if self.async_slot.factory is None:
                raise SchedulerError("This context does not support asynchronous completion.")
            self.async_slot.handle = self.async_slot.factory()
        return self.async_slot.handle

    def requires(self, *names: str) -> None:
        if self.scheduler is None:
            raise SchedulerError("requires() is only available inside a running task.")
        self.scheduler.requires(*names)

    def requires_config(self, *paths: str | Iterable[str]) -> None:
        if self.config is None:
            raise SchedulerError("No configuration provider attached to this context.")
        self.config.requires(*paths)

    def options(self, *defaults: Mapping[str, Any]) -> dict[str, Any]:
        """Merge defaults, then the task-level "options" config."""
        merged: dict[str, Any] = {}
        for d in defaults:
            merged.update(d)
        merged.update(self._task_options())
        return merged

    def _task_options(self) -> Mapping[str, Any]:
        if self.config is None:
            return {}
        opts = self.config.get_target_config(self.task_name, "options")
        return opts if isinstance(opts, Mapping) else {}


@dataclass
class TargetContext(RunContext):
    """RunContext for one concrete target of a multi-task."""

    target: str = ""
    data: Any = None
    files: list[FileGroup] = field(default_factory=list)

    @classmethod
    def for_target(
            cls,
            ctx: RunContext,
            *,
            target: str,
            args: Iterable[str],
            data: Any,
            files: list[FileGroup],
    ) -> TargetContext:
        args = list(args)
        return cls(
            invocation_name=ctx.invocation_name,
            task_name=ctx.task_name,
            args=args,
            flags=dict.fromkeys(args, True),
            scheduler=ctx.scheduler,
            config=ctx.config,
            async_slot=ctx.async_slot,
            errors_at_start=ctx.errors_at_start,
            target=target,
            data=data,
            files=files,
        )

    @property
    def files_src(self) -> list[str]:
        """Every group's src, flattened, without duplicates (first occurrence wins)."""
        seen: dict[str, None] = {}
        for group in self.files:
            if group.has_src:
                seen.update(dict.fromkeys(group.src))
        return list(seen)

    def options(self, *defaults: Mapping[str, Any]) -> dict[str, Any]:
        merged = super().options(*defaults)
        if isinstance(self.data, Mapping) and isinstance(self.data.get("options"), Mapping):
            merged.update(self.data["options"])
        return merged


class FileGroup:
    """
    One canonical src/dest record.

    `src` is produced by a loader on first access and memoized afterwards.
    `orig` is a snapshot of the record before normalization.
    `extras` holds every other property of the record (filters, flags, ...).
    """

    def __init__(
            self,
            *,
            src_loader: Callable[[], Iterable[str]] | None = None,
            dest: str | None = None,
            has_dest: bool = False,
            orig: Mapping[str, Any] | None = None,
            extras: Mapping[str, Any] | None = None,
    ) -> None:
        self._src_loader = src_loader
        self.dest = dest
        self.has_dest = has_dest or dest is not None
        self.orig: dict[str, Any] = {
            k: list(v) if isinstance(v, list) else v for k, v in (orig or {}).items()
        }
        self.extras: dict[str, Any] = dict(extras or {})

    @property
    def has_src(self) -> bool:
        return self._src_loader is not None

    @cached_property
    def src(self) -> list[str]:
        if self._src_loader is None:
            return []
        return list(self._src_loader())

    def to_dict(self) -> dict[str, Any]:
        out = dict(self.extras)
        if self.has_src:
            out["src"] = self.src
        if self.has_dest:
            out["dest"] = self.dest
        return out

    def __repr__(self) -> str:
        src = self.__dict__.get("src", "<lazy>") if self.has_src else None
        return f"FileGroup(src={src!r}, dest={self.dest!r})"

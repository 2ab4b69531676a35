# src/taskforge/tasks/task_registry.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from ..core.errors import TaskNotFound
from .task_models import Invocation, TaskBody, TaskDefinition

logger = logging.getLogger(__name__)

# Unicode noncharacters; never part of a real task name.
_ESCAPED_BACKSLASH = "\uffff"
_ESCAPED_COLON = "\ufffe"

Enqueue = Callable[..., Any]


def split_colon_args(text: str | None) -> list[str]:
    """
    Split "a:b:c" into parts.

    A backslash-colon is a literal colon (no split); a double backslash is a
    literal backslash (so "a\\\\:b" still splits after the backslash).
    """
    if not text:
        return []
    text = text.replace("\\\\", _ESCAPED_BACKSLASH).replace("\\:", _ESCAPED_COLON)
    return [
        part.replace(_ESCAPED_COLON, ":").replace(_ESCAPED_BACKSLASH, "\\")
        for part in text.split(":")
    ]


def as_name_list(names: str | Sequence[str]) -> list[str]:
    """Accept "foo" or ["foo", "bar"]."""
    if isinstance(names, str):
        return [names]
    return list(names)


class TaskRegistry:
    """
    Named task definitions.

    Alias tasks (body given as a name or list of names) need something to push
    their sub-tasks with, so the registry is built around an `enqueue` callable
    (normally Scheduler.run).
    """

    def __init__(self, enqueue: Enqueue) -> None:
        self._enqueue = enqueue
        self._tasks: dict[str, TaskDefinition] = {}

    def register(
        self,
        name: str,
        body: TaskBody | str | Sequence[str],
        info: str | None = None,
        *,
        metadata: dict[str, Any] | None = None,
    ) -> TaskDefinition:
        if callable(info):
            raise TypeError(
                f"register({name!r}, body, info): info must be a string; "
                "the task body goes second"
            )
        if callable(body):
            task = TaskDefinition(name=name, info=info or "Custom task.", body=body)
        else:
            targets = as_name_list(body)
            if not info:
                plural = "" if len(targets) == 1 else "s"
                info = 'Alias for "' + '", "'.join(targets) + f'" task{plural}.'
            task = TaskDefinition(
                name=name,
                info=info,
                body=self._alias_body(targets),
                is_alias=True,
            )
        task.metadata = dict(metadata or {})

        if name in self._tasks:
            logger.debug("Overwriting task %r", name)
        self._tasks[name] = task
        return task

    def _alias_body(self, targets: list[str]) -> TaskBody:
        enqueue = self._enqueue

        def run_alias(ctx, *args):
            # Sub-tasks are queued, not executed inline.
            enqueue(*targets)

        return run_alias

    def rename(self, old: str, new: str) -> TaskDefinition:
        task = self._tasks.get(old)
        if task is None:
            raise TaskNotFound(old, f'Cannot rename missing "{old}" task.')
        del self._tasks[old]
        task.name = new
        self._tasks[new] = task
        return task

    def get(self, name: str) -> TaskDefinition | None:
        return self._tasks.get(name)

    def exists(self, name: str) -> bool:
        return name in self._tasks

    def is_alias(self, name: str) -> bool:
        task = self._tasks.get(name)
        if task is None:
            raise TaskNotFound(name)
        return task.is_alias

    def names(self) -> list[str]:
        return sorted(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def resolve(self, name: str) -> Invocation | None:
        """
        Map an invocation string to (task, args) by the longest registered prefix.

        "foo:bar:baz" -> task "foo:bar:baz" if registered, else "foo:bar" with
        args ["baz"], else "foo" with args ["bar", "baz"]. Returns None if no
        prefix is registered; reporting that is up to the caller.
        """
        parts = split_colon_args(name)
        for i in range(len(parts), 0, -1):
            task = self._tasks.get(":".join(parts[:i]))
            if task is not None:
                return Invocation(raw_name=name, task=task, args=tuple(parts[i:]))
        return None

    def resolve_all(self, names: Iterable[str]) -> tuple[list[Invocation], list[str]]:
        """Resolve every name; returns (resolved, unresolved names)."""
        resolved: list[Invocation] = []
        missing: list[str] = []
        for name in names:
            inv = self.resolve(name)
            if inv is None:
                missing.append(name)
            else:
                resolved.append(inv)
        return resolved, missing

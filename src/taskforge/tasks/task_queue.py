# src/taskforge/tasks/task_queue.py

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .task_models import Invocation, QueueEntry, QueueSentinel


class TaskQueue:
    """
    Pending invocations plus PLACEHOLDER/MARKER sentinels.

    push() inserts right before the first placeholder when there is one (the
    running task's nested run() calls go next), otherwise at the tail.
    """

    def __init__(self) -> None:
        self._entries: list[QueueEntry] = []

    def push(self, entries: Iterable[QueueEntry]) -> None:
        entries = list(entries)
        try:
            index = self._entries.index(QueueSentinel.PLACEHOLDER)
        except ValueError:
            self._entries.extend(entries)
        else:
            self._entries[index:index] = entries

    def mark(self) -> None:
        self.push([QueueSentinel.MARKER])

    def push_placeholder(self) -> None:
        """Put a placeholder at the head, ahead of everything."""
        self._entries.insert(0, QueueSentinel.PLACEHOLDER)

    def pop_invocation(self) -> Invocation | None:
        """Pop from the head, discarding sentinels; None when nothing is left."""
        while self._entries:
            entry = self._entries.pop(0)
            if isinstance(entry, Invocation):
                return entry
        return None

    def clear(self, *, until_marker: bool = False) -> None:
        if not until_marker:
            self._entries.clear()
            return
        try:
            index = self._entries.index(QueueSentinel.MARKER)
        except ValueError:
            # No marker: nothing to clear up to.
            return
        del self._entries[: index + 1]

    def invocations(self) -> list[Invocation]:
        return [e for e in self._entries if isinstance(e, Invocation)]

    def __iter__(self) -> Iterator[QueueEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

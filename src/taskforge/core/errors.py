# src/taskforge/core/errors.py

from __future__ import annotations

"""
Exception hierarchy.

Everything raised by taskforge on purpose derives from TaskforgeError, so callers
can catch the whole family with one clause. Exceptions raised by task bodies are
not wrapped: the scheduler records them and hands them to the error policy as-is.
"""


class TaskforgeError(Exception):
    """Base class for all taskforge errors."""


class TaskNotFound(TaskforgeError, KeyError):
    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f'Task "{name}" not found.')

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class ResolutionFailure(TaskforgeError):
    """No registered task matches any colon-prefix of an invocation string."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Task "{name}" not found.')


class InvalidTargetRequested(TaskforgeError):
    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f'Invalid target "{target}" specified.')


class RequirementUnmet(TaskforgeError):
    """A required invocation never ran, or ran and failed."""

    def __init__(self, name: str, *, failed: bool) -> None:
        self.name = name
        self.failed = failed
        reason = "failed" if failed else "must be run first"
        super().__init__(f'Required task "{name}" {reason}.')


class ConfigMissing(TaskforgeError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'Required config property "{path}" missing.')


class TaskError(TaskforgeError):
    """Base class for task-level failures produced by the scheduler itself."""


class GenericTaskFailure(TaskError):
    """A task reported failure by returning (or completing with) exactly False."""

    def __init__(self, invocation_name: str) -> None:
        self.invocation_name = invocation_name
        super().__init__(f'Task "{invocation_name}" failed.')


class SchedulerError(TaskforgeError):
    """Scheduler misuse, e.g. asynchronous completion without an event loop."""

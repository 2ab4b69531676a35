"""taskforge: named tasks, a nested-insertion queue and a one-at-a-time scheduler."""

from .core.errors import (
    ConfigMissing,
    GenericTaskFailure,
    InvalidTargetRequested,
    RequirementUnmet,
    ResolutionFailure,
    SchedulerError,
    TaskError,
    TaskforgeError,
    TaskNotFound,
)
from .tasks.task_manager import TaskManager
from .tasks.task_models import CompletionHandle, FileGroup, RunContext, TargetContext
from .tasks.task_scheduler import ErrorContext, Scheduler

__all__ = [
    "CompletionHandle",
    "ConfigMissing",
    "ErrorContext",
    "FileGroup",
    "GenericTaskFailure",
    "InvalidTargetRequested",
    "RequirementUnmet",
    "ResolutionFailure",
    "RunContext",
    "Scheduler",
    "SchedulerError",
    "TargetContext",
    "TaskError",
    "TaskManager",
    "TaskNotFound",
    "TaskforgeError",
]

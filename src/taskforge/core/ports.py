# src/taskforge/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task engine.

The engine depends on Protocols instead of concrete implementations.
This keeps configuration/filesystem providers swappable and makes testing easier.
Default implementations live in tasks/task_config.py and tasks/file_expander.py.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol


class ConfigProvider(Protocol):
    """Per-task configuration (task name -> target name -> value)."""

    def get_target_names(self, task_name: str) -> Iterable[str] | None: ...

    def get_target_config(self, task_name: str, target: str) -> Any: ...

    def resolve_template(self, value: Any) -> Any: ...

    # Used by RunContext.requires_config()
    def requires(self, *paths: str | Iterable[str]) -> None: ...


class FileExpander(Protocol):
    """
    Filesystem/pattern provider.

    expand_mapping returns records shaped like {"src": [...], "dest": "..."}.
    """

    def expand(self, patterns: Iterable[str], options: Mapping[str, Any]) -> list[str]: ...

    def expand_mapping(
            self,
            patterns: Iterable[str],
            dest: str | None,
            options: Mapping[str, Any],
    ) -> list[dict[str, Any]]: ...


class ErrorHook(Protocol):
    """Called for each failed invocation (and for rejected run() batches)."""

    def __call__(self, context: Any, error: BaseException) -> None: ...


class DoneHook(Protocol):
    """Called once, after the queue has been fully drained."""

    def __call__(self) -> None: ...

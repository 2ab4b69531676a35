# src/taskforge/bootstrap.py

"""
Composition root: settings -> providers -> TaskManager.

Keeping everything injectable makes the engine easy to test and avoids hidden
global state; each call returns a brand new, independent manager.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .config import get_settings
from .core.ports import ConfigProvider, FileExpander
from .tasks.task_config import TaskConfig
from .tasks.task_manager import TaskManager

logger = logging.getLogger(__name__)


def create_manager(
    *,
    settings=None,
    config: ConfigProvider | Mapping[str, Any] | None = None,
    expander: FileExpander | None = None,
) -> TaskManager:
    """
    Build a TaskManager.

    `config` may be a ready provider or a plain mapping (wrapped in TaskConfig).
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if config is None or isinstance(config, Mapping):
        config = TaskConfig(config)

    manager = TaskManager(
        config=config,
        expander=expander,
        verbose=bool(getattr(settings, "verbose", False)),
    )
    logger.debug("Created task manager for %s", getattr(settings, "app_name", "taskforge"))
    return manager

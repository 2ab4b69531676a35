# src/taskforge/tasks/task_config.py

from __future__ import annotations

"""
In-memory task configuration.

Layout: {task_name: {target_name: value, "options": {...}}, ...}
Paths are dotted strings ("concat.dist.src") or key sequences (["concat", "dist"]).
Strings may reference other values with ${dotted.path}; get() resolves them.
"""

import copy
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from string import Template
from typing import Any

from ..core.errors import ConfigMissing

logger = logging.getLogger(__name__)

_MAX_TEMPLATE_DEPTH = 16


class _PathTemplate(Template):
    braceidpattern = r"[_a-zA-Z][_a-zA-Z0-9.\-]*"


def _split_path(path: str | Iterable[str]) -> list[str]:
    if isinstance(path, str):
        return [p for p in path.split(".") if p]
    return [str(p) for p in path]


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _Lookup(Mapping[str, Any]):
    """Adapter so Template.safe_substitute can look values up by dotted path."""

    def __init__(self, config: TaskConfig, depth: int) -> None:
        self._config = config
        self._depth = depth

    def __getitem__(self, key: str) -> Any:
        value = self._config.get_raw(key)
        if value is None:
            raise KeyError(key)
        return self._config._resolve(value, self._depth + 1)

    def __iter__(self) -> Iterator[str]:
        return iter(())

    def __len__(self) -> int:
        return 0


class TaskConfig:
    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(data or {}))

    # ---- Raw access ----

    def init(self, data: Mapping[str, Any]) -> None:
        """Replace the whole configuration."""
        self._data = copy.deepcopy(dict(data))

    def merge(self, data: Mapping[str, Any]) -> None:
        self._data = _deep_merge(self._data, data)

    def get_raw(self, path: str | Sequence[str] | None = None) -> Any:
        node: Any = self._data
        if path is None:
            return node
        for key in _split_path(path):
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
            if node is None:
                return None
        return node

    def set(self, path: str | Sequence[str], value: Any) -> None:
        keys = _split_path(path)
        if not keys:
            raise ValueError("Empty config path")
        cursor = self._data
        for key in keys[:-1]:
            nxt = cursor.get(key)
            if not isinstance(nxt, dict):
                nxt = {}
                cursor[key] = nxt
            cursor = nxt
        cursor[keys[-1]] = value

    def get(self, path: str | Sequence[str] | None = None) -> Any:
        return self.resolve_template(self.get_raw(path))

    def requires(self, *paths: str | Sequence[str]) -> None:
        for path in paths:
            if self.get_raw(path) is None:
                raise ConfigMissing(".".join(_split_path(path)))

    # ---- ConfigProvider ----

    def get_target_names(self, task_name: str) -> list[str] | None:
        node = self.get_raw([task_name])
        if not isinstance(node, Mapping):
            return None
        return list(node.keys())

    def get_target_config(self, task_name: str, target: str) -> Any:
        return self.get([task_name, target])

    def resolve_template(self, value: Any) -> Any:
        return self._resolve(value, 0)

    def _resolve(self, value: Any, depth: int) -> Any:
        if depth > _MAX_TEMPLATE_DEPTH:
            logger.warning("Template nesting too deep; leaving value unresolved: %r", value)
            return value
        if isinstance(value, str):
            return self._resolve_string(value, depth)
        if isinstance(value, Mapping):
            return {k: self._resolve(v, depth) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve(v, depth) for v in value]
        return value

    def _resolve_string(self, text: str, depth: int) -> Any:
        if "$" not in text:
            return text
        template = _PathTemplate(text)
        # A string that is exactly one reference keeps the referenced value's type.
        match = template.pattern.fullmatch(text)
        if match is not None and match.group("braced"):
            raw = self.get_raw(match.group("braced"))
            if raw is not None:
                return self._resolve(raw, depth + 1)
        return template.safe_substitute(_Lookup(self, depth))

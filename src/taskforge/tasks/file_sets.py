# src/taskforge/tasks/file_sets.py

from __future__ import annotations

"""
File-set normalization for multi-task targets.

Accepted target shapes:
- "a.js" / ["a.js", "b.js"]                  -> src=value, dest=<target name>
- {"src": ..., "dest": ..., ...}             -> one group (compact format)
- {"files": {"out.js": ["a.js", "b.js"]}}    -> one group per dest key
- {"files": [{"src": ..., "dest": ...}, {"out.js": "a.js"}]}
                                             -> one group per element / key

Groups with expand=True are expanded eagerly into one group per src/dest pair.
Other groups expand their src patterns lazily, on first access.
Every dest goes through template resolution exactly once, when its group is built.
"""

import logging
from collections.abc import Iterable, Mapping
from functools import partial
from typing import Any

from ..core.ports import ConfigProvider, FileExpander
from .task_models import FileGroup

logger = logging.getLogger(__name__)

EXPANSION_KEYS = frozenset({"expand", "cwd", "flatten", "rename", "ext"})
OPTIONS_KEY = "options"


def flatten(value: Any) -> list[Any]:
    """Nested lists/tuples -> flat list. None -> []. Scalars -> [scalar]."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        return [value]
    out: list[Any] = []
    for item in value:
        out.extend(flatten(item))
    return out


class FileSetNormalizer:
    def __init__(
            self,
            config: ConfigProvider,
            expander: FileExpander,
            *,
            verbose: bool = False,
    ) -> None:
        self._config = config
        self._expander = expander
        self._verbose = verbose

    def normalize(self, data: Any, target: str) -> list[FileGroup]:
        records = self._collect(data, target)
        if not records:
            logger.debug("Files: [no files]")
            return []

        groups: list[FileGroup] = []
        for record in records:
            if "src" in record:
                record["src"] = flatten(record["src"])
            groups.extend(self._build(record))

        if self._verbose:
            self._log_groups(groups)
        return groups

    # ---- Shapes ----

    def _collect(self, data: Any, target: str) -> list[dict[str, Any]]:
        if not isinstance(data, Mapping):
            return [{"src": data, "dest": target}]

        if "src" in data or "dest" in data:
            return [{k: v for k, v in data.items() if k != OPTIONS_KEY}]

        files = data.get("files")
        if isinstance(files, Mapping):
            return self._from_mapping(files)

        if isinstance(files, (list, tuple)):
            records: list[dict[str, Any]] = []
            for item in flatten(files):
                if not isinstance(item, Mapping):
                    logger.warning("Ignoring files entry %r (expected a mapping)", item)
                    continue
                if "src" in item or "dest" in item:
                    records.append(dict(item))
                else:
                    records.extend(self._from_mapping(item))
            return records

        return []

    def _from_mapping(self, files: Mapping[str, Any]) -> list[dict[str, Any]]:
        return [
            {"src": src, "dest": dest}
            for dest, src in files.items()
        ]

    # ---- Groups ----

    def _build(self, record: dict[str, Any]) -> list[FileGroup]:
        expand_options = {k: v for k, v in record.items() if k not in ("src", "dest")}

        if record.get("expand"):
            extras = {k: v for k, v in expand_options.items() if k not in EXPANSION_KEYS}
            pairs = self._expander.expand_mapping(
                record.get("src", []), record.get("dest"), expand_options
            )
            return [
                FileGroup(
                    src_loader=partial(flatten, self._config.resolve_template(pair["src"])),
                    dest=self._config.resolve_template(pair["dest"]),
                    has_dest=True,
                    orig=record,
                    extras=extras,
                )
                for pair in pairs
            ]

        loader = None
        if "src" in record:
            loader = partial(self._expand_src, record["src"], expand_options)
        dest = self._config.resolve_template(record["dest"]) if "dest" in record else None
        return [
            FileGroup(
                src_loader=loader,
                dest=dest,
                has_dest="dest" in record,
                orig=record,
                extras=expand_options,
            )
        ]

    def _expand_src(self, patterns: Iterable[str], options: Mapping[str, Any]) -> list[str]:
        logger.debug("Expanding src patterns %s", list(patterns))
        return self._expander.expand(patterns, options)

    def _log_groups(self, groups: list[FileGroup]) -> None:
        for group in groups:
            parts = []
            if group.has_src:
                parts.append(", ".join(group.src) if group.src else "[no src]")
            if group.has_dest:
                parts.append(f"-> {group.dest}" if group.dest else "-> [no dest]")
            if parts:
                logger.info("Files: %s", " ".join(parts))

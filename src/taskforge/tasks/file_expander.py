# src/taskforge/tasks/file_expander.py

from __future__ import annotations

import glob
import logging
import posixpath
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_FILTERS: dict[str, Callable[[Path], bool]] = {
    "is_file": Path.is_file,
    "is_dir": Path.is_dir,
}


def _replace_ext(path: str, ext: str, ext_dot: str) -> str:
    dirname, basename = posixpath.split(path)
    if ext_dot == "last":
        stem, dot, _ = basename.rpartition(".")
        stem = stem if dot else basename
    else:
        stem = basename.split(".", 1)[0] or basename
    return posixpath.join(dirname, stem + ext)


class GlobFileExpander:
    """
    Default filesystem provider (stdlib glob).

    Patterns are relative to options["cwd"] (default: the process cwd); results are
    relative to it as well, in pattern order, without duplicates. A pattern
    starting with "!" removes earlier matches.
    """

    def expand(self, patterns: Iterable[str], options: Mapping[str, Any] | None = None) -> list[str]:
        options = options or {}
        cwd = options.get("cwd") or "."
        matches: dict[str, None] = {}

        for pattern in patterns:
            if not pattern:
                continue
            exclude = pattern.startswith("!")
            raw = pattern[1:] if exclude else pattern
            found = sorted(glob.glob(raw, root_dir=cwd, recursive=True))
            if exclude:
                for path in found:
                    matches.pop(path, None)
                continue
            if not found and options.get("nonull"):
                found = [raw]
            matches.update(dict.fromkeys(Path(p).as_posix() for p in found))

        result = list(matches)
        predicate = options.get("filter")
        if predicate:
            check = _FILTERS.get(predicate) if isinstance(predicate, str) else predicate
            if check is None:
                raise ValueError(f"Unknown file filter: {predicate!r}")
            result = [p for p in result if check(Path(cwd) / p)]
        return result

    def expand_mapping(
            self,
            patterns: Iterable[str],
            dest: str | None,
            options: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        One {"src": [...], "dest": "..."} record per destination.

        dest is dest_base + source path (or its basename with flatten=True), with
        the extension swapped when ext is set; rename(dest_base, dest_path)
        can rewrite the result. Sources that map to the same dest are grouped.
        """
        options = options or {}
        cwd = options.get("cwd")
        ext = options.get("ext")
        ext_dot = options.get("ext_dot", "first")
        rename = options.get("rename")

        by_dest: dict[str, dict[str, Any]] = {}
        for src in self.expand(patterns, options):
            dest_path = posixpath.basename(src) if options.get("flatten") else src
            if ext:
                dest_path = _replace_ext(dest_path, ext, ext_dot)
            if rename is not None:
                final = rename(dest or "", dest_path)
            else:
                final = posixpath.join(dest or "", dest_path)

            full_src = posixpath.join(Path(cwd).as_posix(), src) if cwd else src
            record = by_dest.get(final)
            if record is None:
                by_dest[final] = {"src": [full_src], "dest": final}
            else:
                record["src"].append(full_src)

        logger.debug("Expanded %d mapping(s) for dest base %r", len(by_dest), dest)
        return list(by_dest.values())

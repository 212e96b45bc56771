"""Aggregated statistics over a flat node list."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .node import Node

NO_EXTENSION = "(no extension)"


@dataclass(slots=True)
class ExtensionStat:
    ext: str
    count: int = 0
    size: int = 0


@dataclass(slots=True)
class TreeSummary:
    """File/folder counts and sizes, broken down by file extension."""

    file_count: int = 0
    folder_count: int = 0
    total_size: int = 0
    extensions: list[ExtensionStat] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_count": self.file_count,
            "folder_count": self.folder_count,
            "total_size": self.total_size,
            "extensions": [
                {"ext": s.ext, "count": s.count, "size": s.size} for s in self.extensions
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TreeSummary:
        return cls(
            file_count=int(data.get("file_count", 0)),
            folder_count=int(data.get("folder_count", 0)),
            total_size=int(data.get("total_size", 0)),
            extensions=[
                ExtensionStat(ext=e["ext"], count=int(e["count"]), size=int(e["size"]))
                for e in data.get("extensions", [])
            ],
        )


def file_extension(name: str) -> str:
    ext = os.path.splitext(name)[1].lstrip(".").lower()
    return ext or NO_EXTENSION


def summarize(nodes: Iterable[Node], sort: Optional[str] = None) -> TreeSummary:
    """
    Summarize a flat node list.

    Args:
        sort: "count" or "size" orders extensions by that value (descending);
            anything else orders by extension name.
    """
    stats: dict[str, ExtensionStat] = {}
    summary = TreeSummary()

    for node in nodes:
        if node.is_folder:
            summary.folder_count += 1
            continue
        size = node.size or 0
        summary.file_count += 1
        summary.total_size += size

        ext = file_extension(node.name)
        stat = stats.setdefault(ext, ExtensionStat(ext=ext))
        stat.count += 1
        stat.size += size

    if sort == "count":
        key = lambda s: (-s.count, s.ext)  # noqa: E731
    elif sort == "size":
        key = lambda s: (-s.size, s.ext)  # noqa: E731
    else:
        key = lambda s: s.ext  # noqa: E731
    summary.extensions = sorted(stats.values(), key=key)
    return summary

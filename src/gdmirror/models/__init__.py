"""Public model exports for gdmirror."""

from __future__ import annotations

from .node import Node
from .records import CopyTask, FolderRecord, TaskStatus
from .summary import ExtensionStat, TreeSummary, summarize

__all__ = [
    "Node",
    "FolderRecord",
    "CopyTask",
    "TaskStatus",
    "ExtensionStat",
    "TreeSummary",
    "summarize",
]

"""Persisted records: folder checkpoints and copy tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .node import Node


class TaskStatus(str, Enum):
    """Lifecycle states of a CopyTask."""

    COPYING = "copying"
    INTERRUPTED = "interrupted"
    ERROR = "error"
    FINISHED = "finished"


@dataclass(slots=True)
class FolderRecord:
    """
    Checkpoint of one folder's complete listing.

    A non-null summary means the folder and its whole subtree were read
    completely at updated_at.
    """

    folder_id: str
    children: list[Node]
    subfolder_ids: list[str]
    created_at: datetime
    updated_at: datetime
    summary: Optional[dict[str, Any]] = None


@dataclass(slots=True)
class CopyTask:
    """Persisted state of one source -> target replication."""

    id: int
    source_id: str
    target_id: str
    status: TaskStatus
    ctime: datetime
    ftime: Optional[datetime] = None
    mapping: list[tuple[str, str]] = field(default_factory=list)

    @property
    def root_id(self) -> Optional[str]:
        """Destination root: the first mapping entry."""
        if not self.mapping:
            return None
        return self.mapping[0][1]

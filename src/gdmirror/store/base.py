"""Persistence interfaces consumed by the crawler and the copy orchestrator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from gdmirror.models import CopyTask, FolderRecord, Node, TaskStatus


class CheckpointStore(ABC):
    """
    Durable per-folder listing cache.

    Only complete listings are ever written; a missing record means the folder
    must be listed again.
    """

    @abstractmethod
    def get(self, folder_id: str) -> Optional[FolderRecord]: ...

    @abstractmethod
    def upsert(self, folder_id: str, children: list[Node], subfolder_ids: list[str]) -> None:
        """
        Store a complete listing; get() returns children with parent_id == folder_id.

        Replacing a listing drops the stored subtree summary.
        """

    @abstractmethod
    def set_summary(self, folder_id: str, summary: dict[str, Any], timestamp: datetime) -> None:
        """Mark folder_id's subtree as completely read. No-op if no record exists."""

    @abstractmethod
    def clear_summary(self, folder_id: str) -> None: ...


class TaskStore(ABC):
    """
    Durable record of copy tasks, their id mappings and completed files.

    append_mapping and append_completed are idempotent: re-appending an entry
    that is already present changes nothing.
    """

    @abstractmethod
    def create_task(self, source_id: str, target_id: str) -> int:
        """Create a task in status `copying` and return its id."""

    @abstractmethod
    def get_task(self, source_id: str, target_id: str) -> Optional[CopyTask]: ...

    @abstractmethod
    def set_status(
        self,
        task_id: int,
        status: TaskStatus,
        *,
        finished_at: Optional[datetime] = None,
    ) -> None: ...

    @abstractmethod
    def append_mapping(self, task_id: int, source_id: str, dest_id: str) -> None: ...

    @abstractmethod
    def list_mapping(self, task_id: int) -> list[tuple[str, str]]:
        """Return (source_id, dest_id) pairs in the order they were appended."""

    @abstractmethod
    def append_completed(self, task_id: int, source_file_id: str) -> None: ...

    @abstractmethod
    def list_completed(self, task_id: int) -> list[str]: ...

    @abstractmethod
    def reset(self, task_id: int) -> None:
        """Forget the task's mapping and completed-file log."""

    @abstractmethod
    def interrupt_running(self) -> int:
        """Flip every `copying` task to `interrupted`; return how many changed."""

    @abstractmethod
    def purge(self, task_id: int) -> None:
        """Delete a task with its mapping and completed-file log."""


class HashIndex(ABC):
    """Content hash -> ids of objects known to hold that content."""

    @abstractmethod
    def add(self, object_id: str, md5: str) -> bool:
        """Record object_id; return False if it was already indexed."""

    @abstractmethod
    def lookup(self, md5: str) -> Optional[str]:
        """Return one (randomly chosen) object id with this hash, or None."""

"""In-memory store implementations (tests, one-shot runs)."""

from __future__ import annotations

import random
from datetime import datetime
from typing import Any, Optional

from gdmirror.models import CopyTask, FolderRecord, Node, TaskStatus
from gdmirror.util.time import now_utc

from .base import CheckpointStore, HashIndex, TaskStore


class MemoryCheckpointStore(CheckpointStore):
    def __init__(self) -> None:
        self._records: dict[str, FolderRecord] = {}

    def get(self, folder_id: str) -> Optional[FolderRecord]:
        record = self._records.get(folder_id)
        if record is None:
            return None
        return FolderRecord(
            folder_id=record.folder_id,
            children=list(record.children),
            subfolder_ids=list(record.subfolder_ids),
            created_at=record.created_at,
            updated_at=record.updated_at,
            summary=dict(record.summary) if record.summary is not None else None,
        )

    def upsert(self, folder_id: str, children: list[Node], subfolder_ids: list[str]) -> None:
        now = now_utc()
        stored = [child.with_parent(folder_id) for child in children]
        existing = self._records.get(folder_id)
        if existing is None:
            self._records[folder_id] = FolderRecord(
                folder_id=folder_id,
                children=stored,
                subfolder_ids=list(subfolder_ids),
                created_at=now,
                updated_at=now,
            )
            return
        existing.children = stored
        existing.subfolder_ids = list(subfolder_ids)
        existing.summary = None
        existing.updated_at = now

    def set_summary(self, folder_id: str, summary: dict[str, Any], timestamp: datetime) -> None:
        record = self._records.get(folder_id)
        if record is None:
            return
        record.summary = dict(summary)
        record.updated_at = timestamp

    def clear_summary(self, folder_id: str) -> None:
        record = self._records.get(folder_id)
        if record is not None:
            record.summary = None


class MemoryTaskStore(TaskStore):
    def __init__(self) -> None:
        self._tasks: dict[int, CopyTask] = {}
        self._completed: dict[int, dict[str, None]] = {}
        self._next_id = 1

    def create_task(self, source_id: str, target_id: str) -> int:
        task_id = self._next_id
        self._next_id += 1
        self._tasks[task_id] = CopyTask(
            id=task_id,
            source_id=source_id,
            target_id=target_id,
            status=TaskStatus.COPYING,
            ctime=now_utc(),
        )
        self._completed[task_id] = {}
        return task_id

    def get_task(self, source_id: str, target_id: str) -> Optional[CopyTask]:
        for task in self._tasks.values():
            if task.source_id == source_id and task.target_id == target_id:
                return CopyTask(
                    id=task.id,
                    source_id=task.source_id,
                    target_id=task.target_id,
                    status=task.status,
                    ctime=task.ctime,
                    ftime=task.ftime,
                    mapping=list(task.mapping),
                )
        return None

    def set_status(
        self,
        task_id: int,
        status: TaskStatus,
        *,
        finished_at: Optional[datetime] = None,
    ) -> None:
        task = self._tasks[task_id]
        task.status = status
        if finished_at is not None:
            task.ftime = finished_at

    def append_mapping(self, task_id: int, source_id: str, dest_id: str) -> None:
        task = self._tasks[task_id]
        if any(src == source_id for src, _ in task.mapping):
            return
        task.mapping.append((source_id, dest_id))

    def list_mapping(self, task_id: int) -> list[tuple[str, str]]:
        return list(self._tasks[task_id].mapping)

    def append_completed(self, task_id: int, source_file_id: str) -> None:
        self._completed.setdefault(task_id, {})[source_file_id] = None

    def list_completed(self, task_id: int) -> list[str]:
        return list(self._completed.get(task_id, {}))

    def reset(self, task_id: int) -> None:
        self._tasks[task_id].mapping = []
        self._completed[task_id] = {}

    def interrupt_running(self) -> int:
        changed = 0
        for task in self._tasks.values():
            if task.status is TaskStatus.COPYING:
                task.status = TaskStatus.INTERRUPTED
                changed += 1
        return changed

    def purge(self, task_id: int) -> None:
        self._tasks.pop(task_id, None)
        self._completed.pop(task_id, None)


class MemoryHashIndex(HashIndex):
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._by_md5: dict[str, list[str]] = {}
        self._known: set[str] = set()
        self._rng = rng or random.Random()

    def add(self, object_id: str, md5: str) -> bool:
        if object_id in self._known:
            return False
        self._known.add(object_id)
        self._by_md5.setdefault(md5, []).append(object_id)
        return True

    def lookup(self, md5: str) -> Optional[str]:
        ids = self._by_md5.get(md5)
        if not ids:
            return None
        return self._rng.choice(ids)

"""SQLite-backed checkpoint, task and hash stores."""

from __future__ import annotations

import json
import random
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

from gdmirror.models import CopyTask, FolderRecord, Node, TaskStatus
from gdmirror.util.time import now_utc, parse_rfc3339, to_rfc3339

from .base import CheckpointStore, HashIndex, TaskStore

SCHEMA_SQL = """
-- One row per completely listed folder
CREATE TABLE IF NOT EXISTS folder (
    fid TEXT PRIMARY KEY,
    children TEXT NOT NULL,
    subfolders TEXT NOT NULL,
    summary TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS task (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source TEXT NOT NULL,
    target TEXT NOT NULL,
    status TEXT NOT NULL,
    ctime TEXT NOT NULL,
    ftime TEXT,
    UNIQUE (source, target)
);

-- Ordered source -> destination id mapping of a task
CREATE TABLE IF NOT EXISTS task_mapping (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL,
    source_id TEXT NOT NULL,
    dest_id TEXT NOT NULL,
    UNIQUE (task_id, source_id)
);

CREATE TABLE IF NOT EXISTS copied (
    task_id INTEGER NOT NULL,
    file_id TEXT NOT NULL,
    PRIMARY KEY (task_id, file_id)
);

CREATE TABLE IF NOT EXISTS hash (
    gid TEXT PRIMARY KEY,
    md5 TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_task_status ON task(status);
CREATE INDEX IF NOT EXISTS idx_hash_md5 ON hash(md5);
"""


class SqliteStore(CheckpointStore, TaskStore, HashIndex):
    """
    All gdmirror persistence in one SQLite file.

    Every write runs in its own transaction, so a crash can only lose the
    write that was in progress, never entries committed before it.
    """

    def __init__(self, db_path: str | Path, *, rng: Optional[random.Random] = None) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._rng = rng or random.Random()
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ----------------------------
    # CheckpointStore
    # ----------------------------
    def get(self, folder_id: str) -> Optional[FolderRecord]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM folder WHERE fid = ?", (folder_id,)).fetchone()
        if row is None:
            return None
        return FolderRecord(
            folder_id=folder_id,
            children=[Node.from_dict(d, parent_id=folder_id) for d in json.loads(row["children"])],
            subfolder_ids=json.loads(row["subfolders"]),
            created_at=parse_rfc3339(row["created_at"]),
            updated_at=parse_rfc3339(row["updated_at"]),
            summary=json.loads(row["summary"]) if row["summary"] else None,
        )

    def upsert(self, folder_id: str, children: list[Node], subfolder_ids: list[str]) -> None:
        now = to_rfc3339(now_utc())
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO folder (fid, children, subfolders, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(fid) DO UPDATE SET
                    children = excluded.children,
                    subfolders = excluded.subfolders,
                    summary = NULL,
                    updated_at = excluded.updated_at
                """,
                (
                    folder_id,
                    json.dumps([child.to_dict() for child in children]),
                    json.dumps(list(subfolder_ids)),
                    now,
                    now,
                ),
            )

    def set_summary(self, folder_id: str, summary: dict[str, Any], timestamp: datetime) -> None:
        with self.connect() as conn:
            conn.execute(
                "UPDATE folder SET summary = ?, updated_at = ? WHERE fid = ?",
                (json.dumps(summary), to_rfc3339(timestamp), folder_id),
            )

    def clear_summary(self, folder_id: str) -> None:
        with self.connect() as conn:
            conn.execute("UPDATE folder SET summary = NULL WHERE fid = ?", (folder_id,))

    # ----------------------------
    # TaskStore
    # ----------------------------
    def create_task(self, source_id: str, target_id: str) -> int:
        with self.connect() as conn:
            cur = conn.execute(
                "INSERT INTO task (source, target, status, ctime) VALUES (?, ?, ?, ?)",
                (source_id, target_id, TaskStatus.COPYING.value, to_rfc3339(now_utc())),
            )
            return int(cur.lastrowid)

    def get_task(self, source_id: str, target_id: str) -> Optional[CopyTask]:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT * FROM task WHERE source = ? AND target = ?",
                (source_id, target_id),
            ).fetchone()
            if row is None:
                return None
            mapping = _fetch_mapping(conn, row["id"])
        return CopyTask(
            id=row["id"],
            source_id=row["source"],
            target_id=row["target"],
            status=TaskStatus(row["status"]),
            ctime=parse_rfc3339(row["ctime"]),
            ftime=parse_rfc3339(row["ftime"]) if row["ftime"] else None,
            mapping=mapping,
        )

    def set_status(
        self,
        task_id: int,
        status: TaskStatus,
        *,
        finished_at: Optional[datetime] = None,
    ) -> None:
        with self.connect() as conn:
            if finished_at is None:
                conn.execute("UPDATE task SET status = ? WHERE id = ?", (status.value, task_id))
            else:
                conn.execute(
                    "UPDATE task SET status = ?, ftime = ? WHERE id = ?",
                    (status.value, to_rfc3339(finished_at), task_id),
                )

    def append_mapping(self, task_id: int, source_id: str, dest_id: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO task_mapping (task_id, source_id, dest_id) VALUES (?, ?, ?)",
                (task_id, source_id, dest_id),
            )

    def list_mapping(self, task_id: int) -> list[tuple[str, str]]:
        with self.connect() as conn:
            return _fetch_mapping(conn, task_id)

    def append_completed(self, task_id: int, source_file_id: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO copied (task_id, file_id) VALUES (?, ?)",
                (task_id, source_file_id),
            )

    def list_completed(self, task_id: int) -> list[str]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT file_id FROM copied WHERE task_id = ?", (task_id,)
            ).fetchall()
        return [row["file_id"] for row in rows]

    def reset(self, task_id: int) -> None:
        with self.connect() as conn:
            conn.execute("DELETE FROM task_mapping WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM copied WHERE task_id = ?", (task_id,))

    def interrupt_running(self) -> int:
        with self.connect() as conn:
            cur = conn.execute(
                "UPDATE task SET status = ? WHERE status = ?",
                (TaskStatus.INTERRUPTED.value, TaskStatus.COPYING.value),
            )
            return cur.rowcount

    def purge(self, task_id: int) -> None:
        with self.connect() as conn:
            conn.execute("DELETE FROM task_mapping WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM copied WHERE task_id = ?", (task_id,))
            conn.execute("DELETE FROM task WHERE id = ?", (task_id,))

    # ----------------------------
    # HashIndex
    # ----------------------------
    def add(self, object_id: str, md5: str) -> bool:
        with self.connect() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO hash (gid, md5) VALUES (?, ?)", (object_id, md5)
            )
            return cur.rowcount > 0

    def lookup(self, md5: str) -> Optional[str]:
        with self.connect() as conn:
            rows = conn.execute("SELECT gid FROM hash WHERE md5 = ?", (md5,)).fetchall()
        if not rows:
            return None
        return self._rng.choice(rows)["gid"]


def _fetch_mapping(conn: sqlite3.Connection, task_id: int) -> list[tuple[str, str]]:
    rows = conn.execute(
        "SELECT source_id, dest_id FROM task_mapping WHERE task_id = ? ORDER BY seq",
        (task_id,),
    ).fetchall()
    return [(row["source_id"], row["dest_id"]) for row in rows]

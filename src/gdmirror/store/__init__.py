"""Persistence interfaces and implementations for gdmirror."""

from __future__ import annotations

from .base import CheckpointStore, HashIndex, TaskStore
from .memory import MemoryCheckpointStore, MemoryHashIndex, MemoryTaskStore
from .shutdown import install_shutdown_hook
from .sqlite import SqliteStore

__all__ = [
    "CheckpointStore",
    "TaskStore",
    "HashIndex",
    "MemoryCheckpointStore",
    "MemoryTaskStore",
    "MemoryHashIndex",
    "SqliteStore",
    "install_shutdown_hook",
]

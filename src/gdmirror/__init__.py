"""gdmirror public API."""

from __future__ import annotations

from gdmirror.auth import (
    CredentialPool,
    GoogleIdentity,
    Identity,
    IdentityCatalog,
    PrimaryAuthInfo,
    ServiceAccountDirectory,
    StaticCatalog,
)
from gdmirror.config import MirrorConfig
from gdmirror.copier import CopyOrchestrator, CopyResult, ResumeChoice
from gdmirror.crawler import CrawlProgress, CrawlResult, TreeCrawler, load_cached_tree
from gdmirror.dedupe import DedupeResult, find_duplicates
from gdmirror.errors import (
    ApiError,
    AuthError,
    CapacityExceededError,
    ConflictError,
    CredentialsExhaustedError,
    GDMirrorError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    RetryExhaustedError,
    TaskRunningError,
    map_http_error,
)
from gdmirror.manager import CountResult, DriveMirror
from gdmirror.models import CopyTask, FolderRecord, Node, TaskStatus, TreeSummary, summarize
from gdmirror.store import (
    CheckpointStore,
    HashIndex,
    MemoryCheckpointStore,
    MemoryHashIndex,
    MemoryTaskStore,
    SqliteStore,
    TaskStore,
    install_shutdown_hook,
)
from gdmirror.util import is_valid_id, parse_size

__all__ = [
    # High-level
    "DriveMirror",
    "MirrorConfig",
    "CountResult",
    # Engines
    "TreeCrawler",
    "CrawlProgress",
    "CrawlResult",
    "load_cached_tree",
    "CopyOrchestrator",
    "CopyResult",
    "ResumeChoice",
    "DedupeResult",
    "find_duplicates",
    # Auth
    "PrimaryAuthInfo",
    "Identity",
    "GoogleIdentity",
    "IdentityCatalog",
    "StaticCatalog",
    "ServiceAccountDirectory",
    "CredentialPool",
    # Models
    "Node",
    "FolderRecord",
    "CopyTask",
    "TaskStatus",
    "TreeSummary",
    "summarize",
    # Stores
    "CheckpointStore",
    "TaskStore",
    "HashIndex",
    "MemoryCheckpointStore",
    "MemoryTaskStore",
    "MemoryHashIndex",
    "SqliteStore",
    "install_shutdown_hook",
    # Helpers
    "is_valid_id",
    "parse_size",
    # Errors
    "GDMirrorError",
    "InvalidStateError",
    "AuthError",
    "CredentialsExhaustedError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "TaskRunningError",
    "RateLimitError",
    "QuotaExceededError",
    "CapacityExceededError",
    "NetworkError",
    "ApiError",
    "RetryExhaustedError",
    "HttpErrorInfo",
    "map_http_error",
]

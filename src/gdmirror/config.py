"""Runtime configuration for gdmirror."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True, frozen=True)
class MirrorConfig:
    """
    Tunables for one DriveMirror.

    Defaults match the limits Drive tolerates for a single primary account
    with a directory of service accounts.
    """

    parallel_limit: int = 20
    retry_limit: int = 7
    timeout_base: float = 7.0
    timeout_max: float = 60.0
    page_size: int = 1000
    backoff: float = 0.0

    sa_dir: str = "sa"
    sa_batch_size: int = 1000
    sa_reload_interval: float = 7200.0
    service_margin: float = 300.0

    db_path: str = "gdmirror.db"
    default_target: Optional[str] = None
    supports_all_drives: bool = True

    progress_interval: float = 1.0
    verbose: bool = False
    server_mode: bool = False

    def __post_init__(self) -> None:
        if self.parallel_limit < 1:
            raise ValueError("parallel_limit must be at least 1")
        if not 1 <= self.page_size <= 1000:
            raise ValueError("page_size must be between 1 and 1000")
        if self.sa_batch_size < 1:
            raise ValueError("sa_batch_size must be at least 1")

    @classmethod
    def from_env(cls) -> MirrorConfig:
        """Build a config from GDMIRROR_* environment variables."""
        return cls(
            parallel_limit=int(os.getenv("GDMIRROR_PARALLEL_LIMIT", "20")),
            retry_limit=int(os.getenv("GDMIRROR_RETRY_LIMIT", "7")),
            timeout_base=float(os.getenv("GDMIRROR_TIMEOUT_BASE", "7")),
            timeout_max=float(os.getenv("GDMIRROR_TIMEOUT_MAX", "60")),
            page_size=int(os.getenv("GDMIRROR_PAGE_SIZE", "1000")),
            backoff=float(os.getenv("GDMIRROR_BACKOFF", "0")),
            sa_dir=os.getenv("GDMIRROR_SA_DIR", "sa"),
            sa_batch_size=int(os.getenv("GDMIRROR_SA_BATCH_SIZE", "1000")),
            sa_reload_interval=float(os.getenv("GDMIRROR_SA_RELOAD_INTERVAL", "7200")),
            service_margin=float(os.getenv("GDMIRROR_SERVICE_MARGIN", "300")),
            db_path=os.getenv("GDMIRROR_DB_PATH", "gdmirror.db"),
            default_target=os.getenv("GDMIRROR_DEFAULT_TARGET") or None,
            supports_all_drives=_env_bool("GDMIRROR_SUPPORTS_ALL_DRIVES", True),
            progress_interval=float(os.getenv("GDMIRROR_PROGRESS_INTERVAL", "1")),
            verbose=_env_bool("GDMIRROR_VERBOSE", False),
            server_mode=_env_bool("GDMIRROR_SERVER_MODE", False),
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

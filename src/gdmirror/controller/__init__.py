"""Internal controller exports for gdmirror."""

from __future__ import annotations

from .drive_controller import DriveController, FolderListing
from .executor import RequestExecutor, RetryPolicy, authorized_http

__all__ = [
    "DriveController",
    "FolderListing",
    "RequestExecutor",
    "RetryPolicy",
    "authorized_http",
]

"""Public error exports for gdmirror."""

from __future__ import annotations

from .exceptions import (
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

__all__ = [
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

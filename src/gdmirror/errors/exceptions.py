"""Exception hierarchy and HTTP error mapping for gdmirror."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class GDMirrorError(Exception):
    """
    Base exception for gdmirror.

    Attributes:
        details: Optional structured information (e.g., HTTP status, reason).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidStateError(GDMirrorError):
    """Raised when an operation is requested in a state that does not allow it."""


class AuthError(GDMirrorError):
    """Raised when a bearer token cannot be obtained or is rejected (HTTP 401)."""


class CredentialsExhaustedError(AuthError):
    """Raised when no service identity in the catalog can mint a token."""


class PermissionError(GDMirrorError):
    """Raised when access is denied (HTTP 403 non-quota)."""


class InvalidArgumentError(GDMirrorError):
    """Raised when request arguments are invalid (HTTP 400, etc.)."""


class NotFoundError(GDMirrorError):
    """Raised when a Drive resource is not found or not accessible (HTTP 404)."""


class ConflictError(GDMirrorError):
    """Raised when a conflict occurs (HTTP 409/412)."""


class TaskRunningError(ConflictError):
    """Raised when a copy task for the same source/target pair is still copying."""


class RateLimitError(GDMirrorError):
    """Raised when rate-limited (HTTP 429 or a rate-limit reason)."""


class QuotaExceededError(GDMirrorError):
    """Raised when quota is exceeded (HTTP 403 with quota-related reason)."""


class CapacityExceededError(GDMirrorError):
    """Raised when the destination drive reached its object-count limit."""


class NetworkError(GDMirrorError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(GDMirrorError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


class RetryExhaustedError(GDMirrorError):
    """Raised when a mutating request failed on every attempt."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to gdmirror exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


_QUOTA_REASON_KEYWORDS: tuple[str, ...] = (
    "quota",
    "dailyLimitExceeded",
    "usageLimits",
)

_RATE_LIMIT_KEYWORDS: tuple[str, ...] = (
    "rateLimitExceeded",
    "userRateLimitExceeded",
    "rate limit",
)

_CAPACITY_KEYWORDS: tuple[str, ...] = (
    "file limit",
    "teamDriveFileLimitExceeded",
    "numChildrenInNonRootLimitExceeded",
)


def _matches(text: str | None, keywords: tuple[str, ...]) -> bool:
    if not text:
        return False
    return any(key.lower() in text.lower() for key in keywords)


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> GDMirrorError:
    """
    Map an HTTP error to a gdmirror exception.

    Policy:
        - "file limit" in reason or message -> CapacityExceededError (any status)
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> RateLimitError / QuotaExceededError if the reason says so,
          PermissionError otherwise
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if _matches(info.reason, _CAPACITY_KEYWORDS) or _matches(info.message, _CAPACITY_KEYWORDS):
        return CapacityExceededError(message, details=details, cause=cause)

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        if _matches(info.reason, _RATE_LIMIT_KEYWORDS) or _matches(
            info.message, _RATE_LIMIT_KEYWORDS
        ):
            return RateLimitError(message, details=details, cause=cause)
        if _matches(info.reason, _QUOTA_REASON_KEYWORDS):
            return QuotaExceededError(message, details=details, cause=cause)
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)

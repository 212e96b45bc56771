"""Retrying execution of single Drive API requests with rotating bearer tokens."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from gdmirror.auth import CredentialPool, Lease
from gdmirror.errors import (
    ApiError,
    AuthError,
    CapacityExceededError,
    GDMirrorError,
    HttpErrorInfo,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    RetryExhaustedError,
    map_http_error,
)

logger = logging.getLogger(__name__)

# (access_token, timeout_seconds) -> object accepted by HttpRequest.execute(http=...)
HttpFactory = Callable[[str, float], Any]


@dataclass(frozen=True)
class RetryPolicy:
    retry_limit: int = 7
    timeout_base: float = 7.0
    timeout_max: float = 60.0
    # Sleep before attempt n+1 is backoff * 2**(n-1); 0 disables sleeping.
    backoff: float = 0.0

    def __post_init__(self) -> None:
        if self.retry_limit < 1:
            raise ValueError("retry_limit must be at least 1")
        if self.timeout_base <= 0 or self.timeout_max < self.timeout_base:
            raise ValueError("timeouts must satisfy 0 < timeout_base <= timeout_max")


def authorized_http(token: str, timeout: float) -> Any:
    """Build an httplib2 transport that sends `token` and never refreshes it."""
    import google_auth_httplib2
    import httplib2
    from google.oauth2.credentials import Credentials

    return google_auth_httplib2.AuthorizedHttp(
        Credentials(token=token),
        http=httplib2.Http(timeout=timeout),
        refresh_status_codes=(),
    )


class RequestExecutor:
    """
    Execute one logical Drive request with timeout growth and retries.

    Every attempt draws a fresh lease from the credential pool, so retries of a
    service-identity request usually run under a different identity.
    """

    def __init__(
        self,
        pool: CredentialPool,
        policy: Optional[RetryPolicy] = None,
        *,
        verbose: bool = False,
        http_factory: Optional[HttpFactory] = None,
    ) -> None:
        self._pool = pool
        self._policy = policy or RetryPolicy()
        self._verbose = verbose
        self._http_factory = http_factory or authorized_http

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def execute(
        self,
        build_request: Callable[[], Any],
        *,
        use_service_identity: bool,
        mutating: bool,
        quiet: bool = False,
    ) -> Optional[Any]:
        """
        Run the request built by `build_request` until it succeeds.

        Returns:
            The decoded response, or None when every attempt of a read-only
            request failed with a retryable error.

        Raises:
            QuotaExceededError: rate/quota limit hit by the primary account.
            CapacityExceededError: destination object-count limit reached.
            NotFoundError, PermissionError, ...: non-retryable API errors.
            CredentialsExhaustedError: no identity can mint a token.
            RetryExhaustedError: every attempt of a mutating request failed.
        """
        policy = self._policy
        loop = asyncio.get_running_loop()
        timeout = policy.timeout_base
        last_error: Optional[GDMirrorError] = None

        for attempt in range(1, policy.retry_limit + 1):
            lease = await self._pool.acquire(use_service_identity)
            request = build_request()
            http = self._http_factory(lease.token, timeout)
            try:
                return await loop.run_in_executor(
                    None,
                    functools.partial(request.execute, http=http),
                )
            except Exception as exc:
                mapped = _map_exception(exc)
                fatal = _fatal_error(mapped, lease)
                if fatal is not None:
                    self._log_failure(fatal, attempt, quiet=quiet)
                    raise fatal from exc
                last_error = mapped

            self._log_failure(last_error, attempt, quiet=quiet)
            timeout = min(timeout * 2, policy.timeout_max)
            if policy.backoff > 0 and attempt < policy.retry_limit:
                await asyncio.sleep(policy.backoff * 2 ** (attempt - 1))

        if mutating:
            raise RetryExhaustedError(
                f"Request failed after {policy.retry_limit} attempts: {last_error}",
                details={"attempts": policy.retry_limit},
                cause=last_error,
            )
        if not quiet:
            logger.warning("Giving up after %d attempts: %s", policy.retry_limit, last_error)
        return None

    def _log_failure(self, error: Optional[GDMirrorError], attempt: int, *, quiet: bool) -> None:
        if error is None:
            return
        expected = isinstance(error, (RateLimitError, QuotaExceededError)) or _is_timeout(error)
        if self._verbose:
            level = logging.WARNING
        elif quiet or expected:
            level = logging.DEBUG
        else:
            level = logging.WARNING
        logger.log(
            level,
            "Attempt %d failed (%s): %s %s",
            attempt,
            type(error).__name__,
            error,
            error.details or "",
        )


def _fatal_error(error: GDMirrorError, lease: Lease) -> Optional[GDMirrorError]:
    """Return the exception to raise for non-retryable errors, None to retry."""
    if isinstance(error, CapacityExceededError):
        return error
    if isinstance(error, (RateLimitError, QuotaExceededError)):
        if lease.is_service:
            return None
        if isinstance(error, QuotaExceededError):
            return error
        return QuotaExceededError(
            f"Primary account limit: {error}",
            details=error.details,
            cause=error.cause,
        )
    if isinstance(error, (NetworkError, AuthError)):
        return None
    if type(error) is ApiError:
        status_code = error.details.get("status_code")
        if not isinstance(status_code, int) or status_code == 0 or 500 <= status_code <= 599:
            return None
        return error
    return error


def _is_timeout(error: GDMirrorError) -> bool:
    return isinstance(error, NetworkError) and isinstance(error.cause, TimeoutError)


def _map_exception(exc: Exception) -> GDMirrorError:
    if isinstance(exc, GDMirrorError):
        return exc

    try:
        from googleapiclient.errors import HttpError
    except Exception:  # pragma: no cover
        HttpError = None  # type: ignore[assignment]

    if HttpError is not None and isinstance(exc, HttpError):
        info = _http_error_to_info(exc)
        return map_http_error(info, cause=exc)

    if isinstance(exc, (OSError, TimeoutError)):
        return NetworkError("Network error", cause=exc)

    try:
        import httplib2
    except Exception:  # pragma: no cover
        httplib2 = None  # type: ignore[assignment]

    if httplib2 is not None and isinstance(exc, httplib2.HttpLib2Error):
        return NetworkError("Network error", cause=exc)

    return ApiError("Drive API error", cause=exc)


def _http_error_to_info(exc: Any) -> HttpErrorInfo:
    status_code = getattr(getattr(exc, "resp", None), "status", None)
    reason = getattr(getattr(exc, "resp", None), "reason", None)

    message = None
    details: dict[str, Any] = {}

    content = getattr(exc, "content", None)
    if isinstance(content, (bytes, bytearray)):
        try:
            payload = json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            payload = None
        err = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(err, dict):
            message = err.get("message") or None
            errors = err.get("errors") or []
            if errors and isinstance(errors, list) and isinstance(errors[0], dict):
                details["domain"] = errors[0].get("domain")
                details["reason_detail"] = errors[0].get("reason")
                if isinstance(errors[0].get("reason"), str):
                    reason = errors[0]["reason"]

    if not isinstance(status_code, int):
        status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )

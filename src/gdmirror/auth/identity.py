"""Identities able to mint short-lived bearer tokens."""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from typing import Any, Sequence

from gdmirror.errors import AuthError
from gdmirror.util.time import as_utc, now_utc

from .auth_info import PrimaryAuthInfo

DEFAULT_SCOPES: tuple[str, ...] = ("https://www.googleapis.com/auth/drive",)

# Used when the token endpoint does not report an expiry.
_DEFAULT_LIFETIME = timedelta(hours=1)


class Identity:
    """
    A credential that can mint bearer tokens.

    fetch_token() is blocking; the credential pool runs it off the event loop.
    """

    name: str = ""

    def fetch_token(self) -> tuple[str, datetime]:
        """Return (access_token, tz-aware expiry). Raises AuthError."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class GoogleIdentity(Identity):
    """Identity backed by a google-auth credentials object."""

    def __init__(self, name: str, credentials: Any) -> None:
        self.name = name
        self._credentials = credentials

    @classmethod
    def from_service_account_file(
        cls,
        path: str,
        scopes: Sequence[str] = DEFAULT_SCOPES,
    ) -> GoogleIdentity:
        try:
            from google.oauth2 import service_account
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "Google auth libraries are not available",
                details={"hint": "Install google-auth"},
                cause=exc,
            ) from exc

        try:
            creds = service_account.Credentials.from_service_account_file(
                path,
                scopes=list(scopes),
            )
        except Exception as exc:
            raise AuthError(
                "Failed to load service account key",
                details={"path": path},
                cause=exc,
            ) from exc
        return cls(os.path.basename(path), creds)

    @classmethod
    def from_primary(
        cls,
        info: PrimaryAuthInfo,
        scopes: Sequence[str] = DEFAULT_SCOPES,
    ) -> GoogleIdentity:
        try:
            from google.oauth2.credentials import Credentials
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "Google auth libraries are not available",
                details={"hint": "Install google-auth"},
                cause=exc,
            ) from exc

        creds = Credentials(
            token=None,
            refresh_token=info.refresh_token,
            token_uri=info.token_uri,
            client_id=info.client_id,
            client_secret=info.client_secret,
            scopes=list(scopes),
        )
        return cls("primary", creds)

    def fetch_token(self) -> tuple[str, datetime]:
        try:
            from google.auth.transport.requests import Request
        except Exception as exc:  # pragma: no cover
            raise AuthError(
                "Google auth transport is not available",
                details={"hint": "Install google-auth and requests"},
                cause=exc,
            ) from exc

        try:
            self._credentials.refresh(Request())
        except Exception as exc:
            raise AuthError(
                "Failed to refresh credentials",
                details={"identity": self.name},
                cause=exc,
            ) from exc

        token = self._credentials.token
        if not isinstance(token, str) or not token:
            raise AuthError("Token endpoint returned no access token",
                            details={"identity": self.name})

        expiry = self._credentials.expiry
        if expiry is None:
            return token, now_utc() + _DEFAULT_LIFETIME
        return token, as_utc(expiry)

"""Primary-account authentication information (OAuth refresh token)."""

from __future__ import annotations

import json
from dataclasses import dataclass

from gdmirror.errors import AuthError

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(slots=True, frozen=True)
class PrimaryAuthInfo:
    """
    OAuth client + refresh token of the primary (personal) account.

    Only the refresh-token exchange is supported; obtaining the refresh token in
    the first place happens outside gdmirror.
    """

    client_id: str
    client_secret: str
    refresh_token: str
    token_uri: str = GOOGLE_TOKEN_URI

    def __post_init__(self) -> None:
        for key in ("client_id", "client_secret", "refresh_token", "token_uri"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"PrimaryAuthInfo.{key} must be a non-empty string")

    @classmethod
    def from_authorized_user_file(cls, path: str) -> PrimaryAuthInfo:
        """Load from an authorized-user JSON file (as written by google-auth)."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise AuthError(
                "Failed to load authorized user file",
                details={"path": path},
                cause=exc,
            ) from exc

        try:
            return cls(
                client_id=data.get("client_id", ""),
                client_secret=data.get("client_secret", ""),
                refresh_token=data.get("refresh_token", ""),
                token_uri=data.get("token_uri") or GOOGLE_TOKEN_URI,
            )
        except ValueError as exc:
            raise AuthError(str(exc), details={"path": path}, cause=exc) from exc

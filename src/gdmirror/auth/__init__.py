"""Public auth exports for gdmirror."""

from __future__ import annotations

from .auth_info import GOOGLE_TOKEN_URI, PrimaryAuthInfo
from .catalog import IdentityCatalog, ServiceAccountDirectory, StaticCatalog
from .identity import DEFAULT_SCOPES, GoogleIdentity, Identity
from .pool import CredentialPool, Lease

__all__ = [
    "GOOGLE_TOKEN_URI",
    "DEFAULT_SCOPES",
    "PrimaryAuthInfo",
    "Identity",
    "GoogleIdentity",
    "IdentityCatalog",
    "StaticCatalog",
    "ServiceAccountDirectory",
    "CredentialPool",
    "Lease",
]

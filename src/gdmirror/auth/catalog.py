"""Catalogs of service identities, consumed in fixed-size batches."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Sequence

from gdmirror.errors import AuthError

from .identity import DEFAULT_SCOPES, GoogleIdentity, Identity

logger = logging.getLogger(__name__)


class IdentityCatalog(ABC):
    """An ordered, finite list of service identities."""

    @abstractmethod
    def __len__(self) -> int: ...

    @abstractmethod
    def load_batch(self, start: int, size: int) -> list[Identity]:
        """Return identities [start, start + size). Empty when past the end."""


class StaticCatalog(IdentityCatalog):
    """Catalog over identities that already exist in memory."""

    def __init__(self, identities: Sequence[Identity]) -> None:
        self._identities = list(identities)

    def __len__(self) -> int:
        return len(self._identities)

    def load_batch(self, start: int, size: int) -> list[Identity]:
        return self._identities[start:start + size]


class ServiceAccountDirectory(IdentityCatalog):
    """
    Catalog over a directory of service-account JSON key files.

    Files are ordered by name; key files are only parsed when their batch is
    loaded.
    """

    def __init__(self, path: str, scopes: Sequence[str] = DEFAULT_SCOPES) -> None:
        self._path = path
        self._scopes = tuple(scopes)
        if os.path.isdir(path):
            self._files = sorted(f for f in os.listdir(path) if f.endswith(".json"))
        else:
            logger.warning("Service account directory not found: %s", path)
            self._files = []

    def __len__(self) -> int:
        return len(self._files)

    def load_batch(self, start: int, size: int) -> list[Identity]:
        identities: list[Identity] = []
        for filename in self._files[start:start + size]:
            try:
                identity = GoogleIdentity.from_service_account_file(
                    os.path.join(self._path, filename),
                    scopes=self._scopes,
                )
            except AuthError as exc:
                logger.warning("Skipping unreadable service account key %s: %s",
                               filename, exc)
                continue
            identities.append(identity)
        return identities

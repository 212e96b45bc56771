"""Rotating pool of bearer-token identities."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from gdmirror.errors import AuthError, CredentialsExhaustedError
from gdmirror.util.time import now_utc

from .catalog import IdentityCatalog, StaticCatalog
from .identity import Identity

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000
DEFAULT_SERVICE_MARGIN = 300.0
DEFAULT_RELOAD_INTERVAL = 2 * 3600.0


@dataclass(slots=True)
class _TokenSlot:
    identity: Identity
    token: Optional[str] = None
    # Already shortened by the safety margin.
    expires_at: Optional[datetime] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def usable(self, now: datetime) -> bool:
        return self.token is not None and self.expires_at is not None and now < self.expires_at


@dataclass(slots=True, frozen=True)
class Lease:
    """A bearer token and the identity it was minted for."""

    token: str
    identity: Identity
    is_service: bool


class CredentialPool:
    """
    Hands out bearer tokens for the primary account or for service identities.

    Service identities are loaded from the catalog in fixed-size batches. A
    token request picks a uniformly random live identity; an identity that
    fails to mint a token is evicted for the lifetime of the pool (until
    reload()). When the live set is empty the next unseen batch is loaded;
    when the catalog has no unseen identities left, CredentialsExhaustedError
    is raised.
    """

    def __init__(
        self,
        catalog: Optional[IdentityCatalog] = None,
        primary: Optional[Identity] = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        service_margin: float = DEFAULT_SERVICE_MARGIN,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._catalog = catalog if catalog is not None else StaticCatalog([])
        self._primary = _TokenSlot(primary) if primary is not None else None
        self._batch_size = batch_size
        self._service_margin = timedelta(seconds=service_margin)
        self._rng = rng or random.Random()
        self._clock = clock

        self._live: list[_TokenSlot] = []
        self._cursor = 0

    @property
    def live_count(self) -> int:
        """Number of service identities currently in the live set."""
        return len(self._live)

    @property
    def has_primary(self) -> bool:
        return self._primary is not None

    async def acquire(self, use_service_identity: bool) -> Lease:
        """
        Return a usable bearer token.

        Raises:
            AuthError: primary account missing or its refresh failed.
            CredentialsExhaustedError: no service identity can mint a token.
        """
        if not use_service_identity:
            return await self._acquire_primary()
        return await self._acquire_service()

    def evict(self, identity: Identity) -> None:
        """Drop an identity from the live set."""
        before = len(self._live)
        self._live = [slot for slot in self._live if slot.identity is not identity]
        if len(self._live) != before:
            logger.info(
                "Evicted service identity %s, %d left in current batch",
                identity.name,
                len(self._live),
            )

    def reload(self) -> None:
        """Discard every loaded identity and start again from the first batch."""
        self._live = []
        self._cursor = 0
        self._load_next_batch()

    def start_reload_timer(
        self,
        interval: float = DEFAULT_RELOAD_INTERVAL,
    ) -> asyncio.Task[None]:
        """Reload the pool every `interval` seconds (long-running server mode)."""
        return asyncio.get_running_loop().create_task(self._reload_forever(interval))

    # ----------------------------
    # Internals
    # ----------------------------
    async def _acquire_primary(self) -> Lease:
        if self._primary is None:
            raise AuthError("Primary account credentials are not configured")
        token = await self._ensure_token(self._primary, timedelta(0))
        return Lease(token=token, identity=self._primary.identity, is_service=False)

    async def _acquire_service(self) -> Lease:
        while True:
            if not self._live:
                self._load_next_batch()

            slot = self._rng.choice(self._live)
            try:
                token = await self._ensure_token(slot, self._service_margin)
            except AuthError as exc:
                logger.warning(
                    "Service identity %s failed to get access token: %s",
                    slot.identity.name,
                    exc,
                )
                self.evict(slot.identity)
                continue
            return Lease(token=token, identity=slot.identity, is_service=True)

    async def _ensure_token(self, slot: _TokenSlot, margin: timedelta) -> str:
        async with slot.lock:
            if slot.usable(self._clock()):
                return slot.token  # type: ignore[return-value]

            loop = asyncio.get_running_loop()
            try:
                token, expiry = await loop.run_in_executor(None, slot.identity.fetch_token)
            except AuthError:
                raise
            except Exception as exc:
                raise AuthError(
                    "Failed to mint access token",
                    details={"identity": slot.identity.name},
                    cause=exc,
                ) from exc

            slot.token = token
            slot.expires_at = expiry - margin
            return token

    def _load_next_batch(self) -> None:
        while self._cursor < len(self._catalog):
            start = self._cursor
            self._cursor += self._batch_size
            batch = self._catalog.load_batch(start, self._batch_size)
            if batch:
                self._live = [_TokenSlot(identity) for identity in batch]
                logger.info(
                    "Loaded %d service identities (catalog offset %d)",
                    len(batch),
                    start,
                )
                return
        raise CredentialsExhaustedError(
            "No service identity available",
            details={"catalog_size": len(self._catalog)},
        )

    async def _reload_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.reload()
            except CredentialsExhaustedError as exc:
                logger.error("Service identity reload failed: %s", exc)

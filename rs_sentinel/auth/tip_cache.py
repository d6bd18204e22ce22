"""Token introspection cache with TTL-based refresh and background sweep.

Each cached :class:`TipGrant` carries two independent instants:

* ``token_expiry`` - the token is invalid at the TIP after this point.
* ``cache_expiry`` - the local copy must be re-fetched after this point.

A hit inside both bounds is answered locally and slides ``cache_expiry``
forward by one TTL.  Updates go through :class:`AtomicStore`
compare-and-swap; a lost race is logged and handled as a cache miss.
Concurrent misses for the same token are not de-duplicated: each performs
its own remote call and the last writer wins.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from rs_sentinel.auth.models import TipGrant, TipRequest
from rs_sentinel.auth.store import AtomicStore
from rs_sentinel.auth.tip_client import TipClient
from rs_sentinel.constants import (
    OPEN_ENDPOINTS,
    PUBLIC_CONSUMER,
    PUBLIC_PROVIDER,
    PUBLIC_RESOURCE_PATTERN,
    PUBLIC_TOKEN,
)
from rs_sentinel.errors import TokenInvalidError

logger = logging.getLogger(__name__)

_DEFAULT_TTL: timedelta = timedelta(minutes=30)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_public_grant(open_endpoints: Iterable[str] = OPEN_ENDPOINTS) -> TipGrant:
    """Fixed grant answered for the public sentinel token."""
    return TipGrant(
        consumer=PUBLIC_CONSUMER,
        provider=PUBLIC_PROVIDER,
        requests=(TipRequest(id=PUBLIC_RESOURCE_PATTERN, apis=frozenset(open_endpoints)),),
    )


class TokenIntrospectionCache:
    """Caches TIP grants per token.

    Parameters
    ----------
    tip_client:
        Client used on cache misses.
    ttl:
        How long a fetched or refreshed grant may be answered locally.
    sweep_interval:
        Seconds between background sweeps.  Defaults to the TTL.
    public_token:
        Sentinel token answered with *public_grant* without a remote call.
    public_grant:
        Grant returned for *public_token*.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        tip_client: TipClient,
        *,
        ttl: timedelta = _DEFAULT_TTL,
        sweep_interval: Optional[float] = None,
        public_token: str = PUBLIC_TOKEN,
        public_grant: Optional[TipGrant] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._tip_client = tip_client
        self._ttl = ttl
        self._sweep_interval = (
            sweep_interval if sweep_interval is not None else ttl.total_seconds()
        )
        self._public_token = public_token
        self._public_grant = public_grant or build_public_grant()
        self._clock = clock
        self._store: AtomicStore[str, TipGrant] = AtomicStore()
        self._sweep_task: Optional[asyncio.Task[None]] = None

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the background sweep loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop(), name="tip-cache-sweep")
            logger.info(
                "TIP cache sweep started (interval=%.0fs, ttl=%.0fs).",
                self._sweep_interval,
                self._ttl.total_seconds(),
            )

    async def stop(self) -> None:
        """Cancel the sweep task and drop all cached grants."""
        if self._sweep_task is not None and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        count = len(self._store)
        self._store.clear()
        logger.info("TIP cache stopped. Cleared %d grant(s).", count)

    # ── Queries ──────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, token: object) -> bool:
        return token in self._store

    def peek(self, token: str) -> Optional[TipGrant]:
        """Return the cached grant for *token* without touching it."""
        return self._store.get(token)

    # ── Resolution ───────────────────────────────────────────────────

    async def resolve(self, token: str) -> TipGrant:
        """Return the grant for *token*.

        Raises :class:`TokenInvalidError` when the cached grant shows the
        token has expired, and :class:`RemoteServiceError` when the TIP
        call fails.
        """
        if token == self._public_token:
            return self._public_grant

        cached = self._store.get(token)
        if cached is not None:
            grant = self._from_cache(token, cached)
            if grant is not None:
                return grant

        return await self._fetch(token)

    def _from_cache(self, token: str, cached: TipGrant) -> Optional[TipGrant]:
        """Serve or retire a cached entry; ``None`` means go remote."""
        now = self._clock()

        if cached.is_expired(now):
            if self._store.compare_and_remove(token, cached):
                logger.debug("Cached token has expired; entry removed.")
                raise TokenInvalidError("Token has expired")
            logger.warning("TIP cache entry changed while retiring expired token; refetching.")
            return None

        if cached.is_cache_fresh(now):
            refreshed = cached.with_cache_expiry(now + self._ttl)
            if self._store.compare_and_swap(token, cached, refreshed):
                logger.debug("TIP cache hit (cache expiry extended to %s).", refreshed.cache_expiry)
                return refreshed
            logger.warning("TIP cache entry changed during refresh; refetching.")
            return None

        if not self._store.compare_and_remove(token, cached):
            logger.warning("TIP cache entry changed while evicting stale copy; refetching.")
        else:
            logger.debug("TIP cache entry stale; refetching.")
        return None

    async def _fetch(self, token: str) -> TipGrant:
        grant = await self._tip_client.introspect(token)
        cached = grant.with_cache_expiry(self._clock() + self._ttl)
        self._store.put(token, cached)
        logger.info("TIP grant cached for consumer %s.", cached.consumer)
        return cached

    # ── Sweep ────────────────────────────────────────────────────────

    def evict_expired(self) -> int:
        """Remove every grant whose token or cache expiry has elapsed.

        Each entry is handled independently; an error on one entry is
        logged and the sweep continues.  Returns the number removed.
        """
        now = self._clock()
        removed = 0
        for token, grant in self._store.items():
            try:
                if grant.is_expired(now) or not grant.is_cache_fresh(now):
                    if self._store.compare_and_remove(token, grant):
                        removed += 1
            except Exception:
                logger.exception("TIP cache sweep failed on an entry; continuing.")
        return removed

    async def _sweep_loop(self) -> None:
        """Periodically evict expired grants."""
        try:
            while True:
                await asyncio.sleep(self._sweep_interval)
                removed = self.evict_expired()
                if removed:
                    logger.info(
                        "TIP cache sweep: removed %d expired grant(s), %d remaining.",
                        removed,
                        len(self._store),
                    )
        except asyncio.CancelledError:
            logger.debug("TIP cache sweep loop cancelled.")

"""Data models for token introspection results.

A :class:`TipGrant` is the parsed, cacheable answer of the token
introspection provider (TIP).  Instances are frozen: the introspection
cache replaces whole entries and compares them by identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class TipRequest:
    """One resource-id pattern and the API endpoints it may be used with."""

    id: str
    apis: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TipRequest:
        """Parse a ``request[]`` entry.  Raises ``KeyError``/``TypeError`` when malformed."""
        if not isinstance(data, dict):
            raise TypeError(f"request entry must be an object, got {type(data).__name__}")
        resource_id = data["id"]
        if not isinstance(resource_id, str):
            raise TypeError(f"request id must be a string, got {type(resource_id).__name__}")
        apis = data.get("apis") or []
        return cls(id=resource_id, apis=frozenset(str(a) for a in apis))


@dataclass(frozen=True)
class TipGrant:
    """Validated introspection result for a single bearer token.

    Attributes
    ----------
    consumer, provider:
        Identity strings reported by the TIP.
    requests:
        Ordered resource grants; policy decisions use the first one.
    token_expiry:
        Instant after which the token is invalid at the TIP.
    cache_expiry:
        Instant after which the locally cached copy must be refreshed.
        ``None`` until the grant is stored in the cache.
    """

    consumer: str
    provider: str = ""
    requests: Tuple[TipRequest, ...] = ()
    token_expiry: datetime = field(default_factory=lambda: datetime.max.replace(tzinfo=timezone.utc))
    cache_expiry: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TipGrant:
        """Construct from a TIP JSON body.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` when the body
        does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise TypeError(f"introspection body must be an object, got {type(data).__name__}")
        consumer = data["consumer"]
        if not isinstance(consumer, str):
            raise TypeError(f"consumer must be a string, got {type(consumer).__name__}")
        raw_requests: List[Any] = data.get("request") or []
        if not isinstance(raw_requests, list):
            raise TypeError("'request' must be a list")
        return cls(
            consumer=consumer,
            provider=data.get("provider", ""),
            requests=tuple(TipRequest.from_dict(r) for r in raw_requests),
            token_expiry=parse_instant(data["expiry"]),
        )

    def with_cache_expiry(self, cache_expiry: datetime) -> TipGrant:
        """Return a copy of this grant cached until *cache_expiry*."""
        return replace(self, cache_expiry=cache_expiry)

    @property
    def primary(self) -> Optional[TipRequest]:
        """First request entry, or ``None`` for a grant with no requests."""
        return self.requests[0] if self.requests else None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.token_expiry

    def is_cache_fresh(self, now: datetime) -> bool:
        return self.cache_expiry is not None and now < self.cache_expiry


def parse_instant(value: Any) -> datetime:
    """Parse an ISO-8601 instant; a trailing ``Z`` and naive values mean UTC."""
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        instant = datetime.fromisoformat(text)
    else:
        raise TypeError(f"expiry must be an ISO-8601 string, got {type(value).__name__}")
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant

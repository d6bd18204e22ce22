"""Endpoint categories.

Every API endpoint handled by the resource server belongs to at most one
of four statically configured sets.  The category decides which policy
branch applies; an endpoint in none of them is denied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import FrozenSet, Iterable, Optional

from rs_sentinel.constants import (
    ADAPTER_ENDPOINTS,
    MANAGEMENT_ENDPOINTS,
    OPEN_ENDPOINTS,
    SUBSCRIPTION_ENDPOINTS,
)


class EndpointCategory(Enum):
    """Policy branch an endpoint is evaluated under."""

    OPEN = "open"
    ADAPTER = "adapter"
    SUBSCRIPTION = "subscription"
    MANAGEMENT = "management"


def _frozen(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(values)


@dataclass(frozen=True)
class EndpointSets:
    """The four disjoint endpoint sets.

    Raises :class:`ValueError` on construction if any endpoint appears in
    more than one set.
    """

    open: FrozenSet[str] = field(default_factory=lambda: _frozen(OPEN_ENDPOINTS))
    adapter: FrozenSet[str] = field(default_factory=lambda: _frozen(ADAPTER_ENDPOINTS))
    subscription: FrozenSet[str] = field(default_factory=lambda: _frozen(SUBSCRIPTION_ENDPOINTS))
    management: FrozenSet[str] = field(default_factory=lambda: _frozen(MANAGEMENT_ENDPOINTS))

    def __post_init__(self) -> None:
        for category in EndpointCategory:
            object.__setattr__(self, category.value, _frozen(self.members(category)))
        for first, second in combinations(EndpointCategory, 2):
            overlap = self.members(first) & self.members(second)
            if overlap:
                raise ValueError(
                    f"Endpoints {sorted(overlap)} are listed as both "
                    f"{first.value} and {second.value}"
                )

    def members(self, category: EndpointCategory) -> FrozenSet[str]:
        return getattr(self, category.value)

    def classify(self, endpoint: str) -> Optional[EndpointCategory]:
        """Category containing *endpoint*, or ``None`` if unclassified."""
        for category in EndpointCategory:
            if endpoint in self.members(category):
                return category
        return None

    def is_open(self, endpoint: str) -> bool:
        return endpoint in self.open

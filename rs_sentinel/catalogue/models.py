"""Classification results produced by the catalogue classifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional


@dataclass(frozen=True)
class Classification:
    """Resource id → ``True`` (OPEN) / ``False`` (SECURE).

    An id missing from the mapping has not been classified; that never
    implies OPEN or SECURE.  ``skipped`` marks requests to endpoints that
    are not catalogue-gated, where no lookup was performed.
    """

    open_by_id: Dict[str, bool] = field(default_factory=dict)
    skipped: bool = False

    def is_open(self, resource_id: str) -> Optional[bool]:
        """``True``/``False`` for a classified id, ``None`` otherwise."""
        return self.open_by_id.get(resource_id)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self.open_by_id

    def __iter__(self) -> Iterator[str]:
        return iter(self.open_by_id)

    def __len__(self) -> int:
        return len(self.open_by_id)


CLOSED_ENDPOINT = Classification(skipped=True)

"""Resource-id path helpers.

Ids look like ``<domain>/<provider-sha>/<resource-server>/<group>/<item>``.
"""

from __future__ import annotations

from typing import Optional

from rs_sentinel.constants import GROUP_ID_SEGMENTS, PROVIDER_ID_SEGMENTS
from rs_sentinel.errors import ContractViolationError


def group_id(resource_id: str) -> Optional[str]:
    """First four path segments of *resource_id*, or ``None`` if it is shorter."""
    parts = resource_id.split("/")
    if len(parts) < GROUP_ID_SEGMENTS:
        return None
    return "/".join(parts[:GROUP_ID_SEGMENTS])


def parent_id(resource_id: str) -> str:
    """*resource_id* with its last path segment removed."""
    head, sep, _ = resource_id.rpartition("/")
    if not sep:
        raise ContractViolationError(f"id has no path separator: {resource_id!r}")
    return head


def provider_id(resource_id: str) -> str:
    """First two path segments of *resource_id* (``<domain>/<provider-sha>``)."""
    parts = resource_id.split("/")
    if len(parts) < PROVIDER_ID_SEGMENTS:
        raise ContractViolationError(f"id has no provider segment: {resource_id!r}")
    return "/".join(parts[:PROVIDER_ID_SEGMENTS])

"""Audit event models for authorization decisions.

Each event records *what* was requested, *who* it was decided for,
*when*, the *outcome* and how long the decision took.  Bearer tokens are
never part of an event.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class AuditRequest(BaseModel):
    """The request being authorized."""

    endpoint: str
    method: str
    target_id: Optional[str] = None
    resource_ids: List[str] = Field(default_factory=list)


class AuditOutcome(BaseModel):
    """Decision and timing."""

    status: str = "allow"  # "allow" | "deny" | "error"
    consumer: Optional[str] = None
    provider: Optional[str] = None
    reason: Optional[str] = None
    error_type: Optional[str] = None
    latency_ms: float = 0.0


class AuditEvent(BaseModel):
    """A single structured authorization audit record."""

    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    event_type: str = "authorization"
    event_id: str = Field(default_factory=lambda: str(uuid4()))
    request: AuditRequest
    outcome: AuditOutcome = Field(default_factory=AuditOutcome)
    metadata: Dict[str, Any] = Field(default_factory=dict)

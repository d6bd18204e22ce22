"""Audit subsystem — structured records of authorization decisions.

Public API
----------
- :class:`AuditLogger` — JSON-line file writer with rotation
- :class:`AuditEvent` — Pydantic model for a single audit record
- :class:`AuditRequest` / :class:`AuditOutcome` — Sub-models
"""

from rs_sentinel.audit.logger import AuditLogger
from rs_sentinel.audit.models import AuditEvent, AuditOutcome, AuditRequest

__all__ = [
    "AuditEvent",
    "AuditLogger",
    "AuditOutcome",
    "AuditRequest",
]

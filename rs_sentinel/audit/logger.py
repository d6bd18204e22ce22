"""Authorization audit trail.

One JSON line per decision, written through a dedicated ``logging``
logger at the custom ``AUDIT`` level into a size-rotated file.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from rs_sentinel.audit.models import AuditEvent

logger = logging.getLogger(__name__)

AUDIT_LEVEL = 35
logging.addLevelName(AUDIT_LEVEL, "AUDIT")

_EVENTS_LOGGER = "rs_sentinel.audit.events"


class AuditLogger:
    """Appends :class:`AuditEvent` records to *path*.

    The parent directory is created on demand.  The file rolls over at
    *max_bytes* and keeps *backup_count* old copies.
    """

    def __init__(self, path: str, *, max_bytes: int, backup_count: int) -> None:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.path = path
        self._handler = RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        self._handler.setLevel(AUDIT_LEVEL)
        self._handler.setFormatter(logging.Formatter("%(message)s"))
        self._events = logging.getLogger(_EVENTS_LOGGER)
        self._events.setLevel(AUDIT_LEVEL)
        self._events.propagate = False
        self._events.addHandler(self._handler)
        logger.info("Audit trail at %s (rotates at %d bytes, %d kept)", path, max_bytes, backup_count)

    def emit(self, event: AuditEvent) -> None:
        """Append *event*; a write failure is logged and never fails the request."""
        try:
            self._events.log(AUDIT_LEVEL, event.model_dump_json())
        except (OSError, ValueError):
            logger.exception("Could not write audit event %s", event.event_id)

    def close(self) -> None:
        self._events.removeHandler(self._handler)
        self._handler.close()

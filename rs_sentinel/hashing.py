"""Identity hashing used to match subscription owners."""

from __future__ import annotations

import hashlib
from typing import Callable

IdentityHash = Callable[[str], str]


def sha1_identity(email: str) -> str:
    """Return the canonical hashed form of *email* (lowercase SHA-1 hex)."""
    return hashlib.sha1(email.encode("utf-8")).hexdigest()

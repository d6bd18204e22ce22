"""Token introspection: grant models, TIP client and the introspection cache."""

from rs_sentinel.auth.models import TipGrant, TipRequest
from rs_sentinel.auth.store import AtomicStore
from rs_sentinel.auth.tip_cache import TokenIntrospectionCache, build_public_grant
from rs_sentinel.auth.tip_client import TipClient

__all__ = [
    "AtomicStore",
    "TipClient",
    "TipGrant",
    "TipRequest",
    "TokenIntrospectionCache",
    "build_public_grant",
]

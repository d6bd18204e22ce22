"""Access control — endpoint classification, policy engine and orchestrator."""

from rs_sentinel.authz.endpoints import EndpointCategory, EndpointSets
from rs_sentinel.authz.engine import AccessPolicyEngine, is_entitled
from rs_sentinel.authz.models import AuthContext, Identity, UserRequest
from rs_sentinel.authz.orchestrator import AuthorizationOrchestrator

__all__ = [
    "AccessPolicyEngine",
    "AuthContext",
    "AuthorizationOrchestrator",
    "EndpointCategory",
    "EndpointSets",
    "Identity",
    "UserRequest",
    "is_entitled",
]

"""Access policy evaluation.

Given a resolved TIP grant and the catalogue classification, decides
whether a request may proceed and as which identity.  The branch is
picked by the category of the requested endpoint:

* **open** — OPEN resources are readable by any valid grant; SECURE
  resources need the grant's resource group to match the requested one.
* **adapter** — ingestion; the grant must name the endpoint and own the
  adapter being created or addressed.
* **subscription** — the grant must name the endpoint; creation checks
  the entity, updates and reads check the subscription owner.
* **management** — administrator identity plus the endpoint in the grant.

Usage::

    engine = AccessPolicyEngine(EndpointSets())
    identity = engine.decide(grant, classification, context, request)

Denials raise :class:`AccessDeniedError` (or :class:`ResourceNotFoundError`
for unclassified resources).  A grant or request missing a field that the
branch needs raises :class:`ContractViolationError`.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Callable, Dict, Optional

from rs_sentinel.auth.models import TipGrant, TipRequest
from rs_sentinel.authz.endpoints import EndpointCategory, EndpointSets
from rs_sentinel.authz.models import AuthContext, Identity, UserRequest
from rs_sentinel.catalogue.models import Classification
from rs_sentinel.constants import ADMIN_IDENTITY, ENDPOINT_WILDCARD, PUBLIC_CONSUMER
from rs_sentinel.errors import (
    AccessDeniedError,
    ContractViolationError,
    DenialReason,
    ResourceNotFoundError,
)
from rs_sentinel.hashing import IdentityHash, sha1_identity
from rs_sentinel.ids import parent_id, provider_id

logger = logging.getLogger(__name__)

_Branch = Callable[[TipGrant, Classification, AuthContext, UserRequest], Identity]


def is_entitled(grant: TipGrant, endpoints: AbstractSet[str]) -> bool:
    """``True`` if the grant's first request allows any of *endpoints*.

    The wildcard API ``/*`` allows every endpoint.
    """
    primary = grant.primary
    if primary is None:
        return False
    return ENDPOINT_WILDCARD in primary.apis or not primary.apis.isdisjoint(endpoints)


def _primary(grant: TipGrant) -> TipRequest:
    primary = grant.primary
    if primary is None:
        raise ContractViolationError("grant has no request entries")
    return primary


def _required(value: Optional[str], name: str) -> str:
    if not value:
        raise ContractViolationError(f"request is missing {name}")
    return value


class AccessPolicyEngine:
    """Evaluates endpoint-specific access rules.

    Parameters
    ----------
    endpoints:
        Endpoint classification sets.
    admin_identity:
        Provider id (``<domain>/<sha>``) allowed on management endpoints.
    identity_hash:
        Maps a consumer email to the hashed form embedded in subscription ids.
    public_consumer:
        Identity recorded on SECURE-resource denials.
    """

    def __init__(
        self,
        endpoints: EndpointSets,
        *,
        admin_identity: str = ADMIN_IDENTITY,
        identity_hash: IdentityHash = sha1_identity,
        public_consumer: str = PUBLIC_CONSUMER,
    ) -> None:
        self._endpoints = endpoints
        self._admin_identity = admin_identity
        self._identity_hash = identity_hash
        self._public_consumer = public_consumer
        self._branches: Dict[EndpointCategory, _Branch] = {
            EndpointCategory.OPEN: self._decide_open,
            EndpointCategory.ADAPTER: self._decide_adapter,
            EndpointCategory.SUBSCRIPTION: self._decide_subscription,
            EndpointCategory.MANAGEMENT: self._decide_management,
        }

    def decide(
        self,
        grant: TipGrant,
        classification: Classification,
        context: AuthContext,
        request: UserRequest,
    ) -> Identity:
        """Return the identity to proceed as, or raise a denial."""
        category = self._endpoints.classify(context.api_endpoint)
        if category is None:
            logger.debug("Endpoint %s is not classified; denying.", context.api_endpoint)
            raise AccessDeniedError(DenialReason.UNKNOWN_ENDPOINT)
        logger.debug(
            "Evaluating %s %s under %s policy for consumer %s",
            context.method,
            context.api_endpoint,
            category.value,
            grant.consumer,
        )
        return self._branches[category](grant, classification, context, request)

    # ── Branches ─────────────────────────────────────────────────────

    def _decide_open(
        self,
        grant: TipGrant,
        classification: Classification,
        context: AuthContext,
        request: UserRequest,
    ) -> Identity:
        allowed_group = parent_id(_primary(grant).id)
        if not request.resource_ids:
            raise ContractViolationError("request is missing resource ids")
        requested_id = request.resource_ids[0]
        requested_group = parent_id(requested_id)

        is_open = classification.is_open(requested_id)
        if is_open is None:
            logger.debug("No catalogue classification for %s.", requested_id)
            raise ResourceNotFoundError(requested_id)
        if is_open:
            logger.debug("Catalogue item %s is OPEN.", requested_id)
            return Identity(consumer=grant.consumer)
        if requested_group.lower() == allowed_group.lower():
            logger.debug("Catalogue item %s is SECURE and consumer has access.", requested_id)
            return Identity(consumer=grant.consumer)
        logger.debug("Catalogue item %s is SECURE and consumer has no access.", requested_id)
        raise AccessDeniedError(DenialReason.RESOURCE_GROUP_MISMATCH, identity=self._public_consumer)

    def _decide_adapter(
        self,
        grant: TipGrant,
        classification: Classification,
        context: AuthContext,
        request: UserRequest,
    ) -> Identity:
        primary = self._entitled_primary(grant, context)
        adapter_id = parent_id(primary.id)
        provider = provider_id(primary.id)

        if context.method.upper() == "POST":
            server = _required(request.resource_server, "resourceServer")
            group = _required(request.resource_group, "resourceGroup")
            if f"{server}/{group}" in primary.id:
                logger.info("Access to %s granted for adapter %s.", context.api_endpoint, adapter_id)
                return Identity(consumer=grant.consumer, provider=provider)
        else:
            target = _required(context.subscription_or_adapter_id, "adapter id")
            if adapter_id in target:
                logger.info("Access to %s granted for adapter %s.", context.api_endpoint, target)
                return Identity(consumer=grant.consumer)

        logger.debug("Grant allows %s but not adapter %s.", context.api_endpoint, adapter_id)
        raise AccessDeniedError(DenialReason.ADAPTER_MISMATCH, identity=grant.consumer)

    def _decide_subscription(
        self,
        grant: TipGrant,
        classification: Classification,
        context: AuthContext,
        request: UserRequest,
    ) -> Identity:
        primary = self._entitled_primary(grant, context)
        method = context.method.upper()

        if method != "POST":
            target = _required(context.subscription_or_adapter_id, "subscription id")
            if self._identity_hash(grant.consumer) not in target:
                logger.debug("Subscription %s is not owned by %s.", target, grant.consumer)
                raise AccessDeniedError(
                    DenialReason.SUBSCRIPTION_OWNER_MISMATCH, identity=grant.consumer
                )
            if method not in ("PUT", "PATCH"):
                return Identity(consumer=grant.consumer)

        if not request.entity_ids:
            raise ContractViolationError("request is missing entities")
        entity_id = request.entity_ids[0]
        if parent_id(entity_id) not in primary.id:
            logger.debug("Grant allows %s but not entity %s.", context.api_endpoint, entity_id)
            raise AccessDeniedError(DenialReason.ENTITY_MISMATCH, identity=grant.consumer)
        return Identity(consumer=grant.consumer)

    def _decide_management(
        self,
        grant: TipGrant,
        classification: Classification,
        context: AuthContext,
        request: UserRequest,
    ) -> Identity:
        primary = _primary(grant)
        if provider_id(primary.id).lower() != self._admin_identity.lower():
            logger.debug("Consumer %s is not an administrator.", grant.consumer)
            raise AccessDeniedError(DenialReason.NOT_ADMINISTRATOR, identity=grant.consumer)
        if not is_entitled(grant, {context.api_endpoint}):
            raise AccessDeniedError(DenialReason.API_NOT_PERMITTED, identity=grant.consumer)
        logger.debug("Administrator %s has access to %s.", grant.consumer, context.api_endpoint)
        return Identity(consumer=grant.consumer)

    # ── Helpers ──────────────────────────────────────────────────────

    def _entitled_primary(self, grant: TipGrant, context: AuthContext) -> TipRequest:
        primary = _primary(grant)
        if not is_entitled(grant, {context.api_endpoint}):
            logger.debug("Grant does not allow %s.", context.api_endpoint)
            raise AccessDeniedError(DenialReason.API_NOT_PERMITTED, identity=grant.consumer)
        return primary

"""Authorization entry point.

Composes token introspection and catalogue classification, then hands
both results to the :class:`AccessPolicyEngine`::

    identity = await orchestrator.authorize(user_request, auth_context)

Failures are raised as :class:`~rs_sentinel.errors.AuthorizationFailure`
subclasses; the API layer renders them with ``to_dict()``.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from rs_sentinel.aio import gather_fail_fast
from rs_sentinel.audit.logger import AuditLogger
from rs_sentinel.audit.models import AuditEvent, AuditOutcome, AuditRequest
from rs_sentinel.auth.tip_cache import TokenIntrospectionCache
from rs_sentinel.authz.endpoints import EndpointSets
from rs_sentinel.authz.engine import AccessPolicyEngine
from rs_sentinel.authz.models import AuthContext, Identity, UserRequest
from rs_sentinel.catalogue.classifier import CatalogueClassifier
from rs_sentinel.constants import PUBLIC_TOKEN, TEST_CONSUMER, TEST_PROVIDER
from rs_sentinel.errors import AccessDeniedError, DenialReason, RsSentinelError

logger = logging.getLogger(__name__)


class AuthorizationOrchestrator:
    """Decides whether a request may proceed, and as whom.

    Parameters
    ----------
    tip_cache:
        Resolves bearer tokens to grants.
    classifier:
        Resolves requested resources to OPEN/SECURE.
    engine:
        Applies the endpoint policies.
    endpoints:
        Endpoint classification sets.
    public_token:
        Sentinel token for anonymous access.
    permissive:
        Testing profile only.  The sentinel token skips the pipeline:
        open endpoints succeed with an empty identity and every other
        endpoint succeeds as *test_identity*.
    test_identity:
        Identity returned by the permissive profile for non-open endpoints.
    audit_logger:
        Receives one event per decision when given.
    """

    def __init__(
        self,
        tip_cache: TokenIntrospectionCache,
        classifier: CatalogueClassifier,
        engine: AccessPolicyEngine,
        endpoints: EndpointSets,
        *,
        public_token: str = PUBLIC_TOKEN,
        permissive: bool = False,
        test_identity: Optional[Identity] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self._tip_cache = tip_cache
        self._classifier = classifier
        self._engine = engine
        self._endpoints = endpoints
        self._public_token = public_token
        self._permissive = permissive
        self._test_identity = test_identity or Identity(consumer=TEST_CONSUMER, provider=TEST_PROVIDER)
        self._audit_logger = audit_logger
        if permissive:
            logger.warning("Authorization running in PERMISSIVE testing mode for the public token")

    async def authorize(self, user_request: UserRequest, context: AuthContext) -> Identity:
        """Return the identity the request proceeds as.

        Raises :class:`AuthorizationFailure` for per-request failures and
        :class:`ContractViolationError` for malformed grants or requests.
        """
        started = time.monotonic()
        logger.debug("Authorizing %s %s", context.method, context.api_endpoint)
        try:
            identity = await self._authorize(user_request, context)
        except RsSentinelError as exc:
            logger.debug("Authorization failed for %s: %s", context.api_endpoint, exc)
            self._audit(user_request, context, started, error=exc)
            raise
        self._audit(user_request, context, started, identity=identity)
        return identity

    async def _authorize(self, user_request: UserRequest, context: AuthContext) -> Identity:
        is_public = context.token == self._public_token
        is_open_endpoint = self._endpoints.is_open(context.api_endpoint)

        if is_public and self._permissive:
            return Identity() if is_open_endpoint else self._test_identity

        if is_public and not is_open_endpoint:
            raise AccessDeniedError(DenialReason.PUBLIC_TOKEN_RESTRICTED)

        grant, classification = await gather_fail_fast(
            self._tip_cache.resolve(context.token),
            self._classifier.classify(context.api_endpoint, user_request.resource_ids),
        )
        logger.debug(
            "TIP grant for %s and classification %s resolved",
            grant.consumer,
            "skipped" if classification.skipped else dict(classification.open_by_id),
        )
        return self._engine.decide(grant, classification, context, user_request)

    def _audit(
        self,
        user_request: UserRequest,
        context: AuthContext,
        started: float,
        *,
        identity: Optional[Identity] = None,
        error: Optional[RsSentinelError] = None,
    ) -> None:
        if self._audit_logger is None:
            return
        outcome = AuditOutcome(latency_ms=round((time.monotonic() - started) * 1000, 3))
        if identity is not None:
            outcome.consumer = identity.consumer
            outcome.provider = identity.provider
        elif isinstance(error, AccessDeniedError):
            outcome.status = "deny"
            outcome.reason = error.reason.name
            outcome.consumer = error.identity
        elif error is not None:
            outcome.status = "error"
            outcome.reason = str(error)
            outcome.error_type = type(error).__name__
        self._audit_logger.emit(
            AuditEvent(
                request=AuditRequest(
                    endpoint=context.api_endpoint,
                    method=context.method,
                    target_id=context.subscription_or_adapter_id,
                    resource_ids=list(user_request.resource_ids),
                ),
                outcome=outcome,
            )
        )

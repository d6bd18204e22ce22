"""Assembles the authorization components from a validated config.

Usage::

    config = load_config("config.yaml")
    async with AuthorizationRuntime(config) as runtime:
        identity = await runtime.authorize(user_request, context)
"""

from __future__ import annotations

import logging
from typing import Optional

from rs_sentinel.audit.logger import AuditLogger
from rs_sentinel.auth.tip_cache import TokenIntrospectionCache, build_public_grant
from rs_sentinel.auth.tip_client import TipClient
from rs_sentinel.authz.endpoints import EndpointSets
from rs_sentinel.authz.engine import AccessPolicyEngine
from rs_sentinel.authz.models import AuthContext, Identity, UserRequest
from rs_sentinel.authz.orchestrator import AuthorizationOrchestrator
from rs_sentinel.catalogue.classifier import CatalogueClassifier
from rs_sentinel.catalogue.client import CatalogueClient
from rs_sentinel.config.schema import RsSentinelConfig
from rs_sentinel.display.logging_config import secret_redaction_filter

logger = logging.getLogger(__name__)


def _build_audit_logger(config: RsSentinelConfig) -> Optional[AuditLogger]:
    audit_cfg = config.audit
    if not audit_cfg.enabled:
        return None
    return AuditLogger(
        audit_cfg.file,
        max_bytes=audit_cfg.max_size_mb * 1024 * 1024,
        backup_count=audit_cfg.backup_count,
    )


class AuthorizationRuntime:
    """Owns the HTTP clients, caches and audit log for one process.

    Parameters
    ----------
    config:
        Validated configuration.
    tip_client, catalogue_client:
        Optional pre-built clients (tests inject mocks here).
    audit_logger:
        Optional audit writer; built from ``config.audit`` when omitted.
    """

    def __init__(
        self,
        config: RsSentinelConfig,
        *,
        tip_client: Optional[TipClient] = None,
        catalogue_client: Optional[CatalogueClient] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self.config = config
        authz = config.authorization
        eps = authz.endpoints
        for secret in config.tip.headers.values():
            secret_redaction_filter.register(secret)

        self.endpoints = EndpointSets(
            open=eps.open,
            adapter=eps.adapter,
            subscription=eps.subscription,
            management=eps.management,
        )
        self.tip_client = tip_client or TipClient(
            config.tip.base_url,
            path=config.tip.path,
            headers=config.tip.headers,
            timeout=config.tip.timeout,
        )
        self.catalogue_client = catalogue_client or CatalogueClient(
            config.catalogue.base_url,
            path=config.catalogue.path,
            timeout=config.catalogue.timeout,
            verify=config.catalogue.verify_tls,
        )
        self.tip_cache = TokenIntrospectionCache(
            self.tip_client,
            ttl=config.cache.ttl,
            sweep_interval=config.cache.sweep_seconds,
            public_token=authz.public_token,
            public_grant=build_public_grant(self.endpoints.open),
        )
        self.classifier = CatalogueClassifier(
            self.catalogue_client,
            open_endpoints=self.endpoints.open,
            classify_all_ids=config.catalogue.classify_all_ids,
        )
        self.engine = AccessPolicyEngine(
            self.endpoints,
            admin_identity=authz.admin_identity,
            public_consumer=authz.public_consumer,
        )
        self.audit_logger = audit_logger if audit_logger is not None else _build_audit_logger(config)
        self.orchestrator = AuthorizationOrchestrator(
            self.tip_cache,
            self.classifier,
            self.engine,
            self.endpoints,
            public_token=authz.public_token,
            permissive=config.server.permissive,
            test_identity=Identity(consumer=authz.test_consumer, provider=authz.test_provider),
            audit_logger=self.audit_logger,
        )

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start background maintenance (the TIP cache sweep)."""
        self.tip_cache.start()

    async def close(self) -> None:
        """Stop the sweep and release HTTP clients and the audit file."""
        await self.tip_cache.stop()
        await self.tip_client.close()
        await self.catalogue_client.close()
        if self.audit_logger is not None:
            self.audit_logger.close()
        logger.info("Authorization runtime closed.")

    async def __aenter__(self) -> AuthorizationRuntime:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Authorization ────────────────────────────────────────────────

    async def authorize(self, user_request: UserRequest, context: AuthContext) -> Identity:
        """Authorize one request; see :meth:`AuthorizationOrchestrator.authorize`."""
        return await self.orchestrator.authorize(user_request, context)

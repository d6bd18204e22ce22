"""Pydantic configuration models for RS Sentinel.

Defines the validated config structure using the versioned v1 format::

    {
        "version": "1",
        "server": {"mode": "production", ...},
        "tip": {"host": "auth.example.org", ...},
        "catalogue": {"host": "catalogue.example.org", ...},
        "cache": {"ttl_amount": 30, "ttl_unit": "minutes"},
        "authorization": {"endpoints": {...}, ...},
        "audit": {...}
    }
"""

from __future__ import annotations

from datetime import timedelta
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from rs_sentinel.constants import (
    ADAPTER_ENDPOINTS,
    ADMIN_IDENTITY,
    CAT_DEFAULT_PATH,
    CAT_DEFAULT_PORT,
    CAT_TIMEOUT,
    DEFAULT_LOG_LEVEL,
    MANAGEMENT_ENDPOINTS,
    MODE_PRODUCTION,
    MODE_TESTING,
    OPEN_ENDPOINTS,
    PUBLIC_CONSUMER,
    PUBLIC_TOKEN,
    SUBSCRIPTION_ENDPOINTS,
    TEST_CONSUMER,
    TEST_PROVIDER,
    TIP_CACHE_TTL_AMOUNT,
    TIP_CACHE_TTL_UNIT,
    TIP_DEFAULT_PATH,
    TIP_DEFAULT_PORT,
    TIP_TIMEOUT,
)


def _base_url(host: str, port: int, scheme: str) -> str:
    default_port = 443 if scheme == "https" else 80
    if port == default_port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


class ServerSettings(BaseModel):
    """Deployment profile and logging."""

    mode: Literal["production", "testing"] = Field(
        default=MODE_PRODUCTION,
        description=(
            "Deployment profile. 'testing' lets the public token bypass the "
            "pipeline and must never be used in production."
        ),
    )
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="File log level.")

    @property
    def permissive(self) -> bool:
        return self.mode == MODE_TESTING


class TipConfig(BaseModel):
    """Token introspection provider connection."""

    host: str = Field(description="Auth server host name.")
    port: int = Field(default=TIP_DEFAULT_PORT, ge=1, le=65535)
    path: str = Field(default=TIP_DEFAULT_PATH, description="Introspection endpoint path.")
    scheme: Literal["http", "https"] = "https"
    timeout: float = Field(default=TIP_TIMEOUT, gt=0, description="Per-call timeout in seconds.")
    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent with every introspection call (server credentials).",
    )

    @property
    def base_url(self) -> str:
        return _base_url(self.host, self.port, self.scheme)


class CatalogueConfig(BaseModel):
    """Catalogue server connection."""

    host: str = Field(description="Catalogue host name.")
    port: int = Field(default=CAT_DEFAULT_PORT, ge=1, le=65535)
    path: str = Field(default=CAT_DEFAULT_PATH, description="Search endpoint path.")
    scheme: Literal["http", "https"] = "https"
    timeout: float = Field(default=CAT_TIMEOUT, gt=0, description="Per-call timeout in seconds.")
    verify_tls: bool = Field(default=True, description="Verify the catalogue TLS certificate.")
    classify_all_ids: bool = Field(
        default=False,
        description="Classify every requested id instead of only the first one.",
    )

    @property
    def base_url(self) -> str:
        return _base_url(self.host, self.port, self.scheme)


class CacheConfig(BaseModel):
    """Introspection cache lifetime and sweep period."""

    ttl_amount: int = Field(default=TIP_CACHE_TTL_AMOUNT, ge=1)
    ttl_unit: Literal["seconds", "minutes", "hours"] = TIP_CACHE_TTL_UNIT
    sweep_interval: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds between sweeps. Defaults to the TTL.",
    )

    @property
    def ttl(self) -> timedelta:
        return timedelta(**{self.ttl_unit: self.ttl_amount})

    @property
    def sweep_seconds(self) -> float:
        if self.sweep_interval is not None:
            return self.sweep_interval
        return self.ttl.total_seconds()


class EndpointsConfig(BaseModel):
    """The four endpoint classification sets."""

    open: List[str] = Field(default_factory=lambda: list(OPEN_ENDPOINTS))
    adapter: List[str] = Field(default_factory=lambda: list(ADAPTER_ENDPOINTS))
    subscription: List[str] = Field(default_factory=lambda: list(SUBSCRIPTION_ENDPOINTS))
    management: List[str] = Field(default_factory=lambda: list(MANAGEMENT_ENDPOINTS))

    @model_validator(mode="after")
    def _check_disjoint(self) -> EndpointsConfig:
        seen: Dict[str, str] = {}
        for category in ("open", "adapter", "subscription", "management"):
            for endpoint in getattr(self, category):
                if endpoint in seen and seen[endpoint] != category:
                    raise ValueError(
                        f"Endpoint '{endpoint}' is listed as both {seen[endpoint]} and {category}"
                    )
                seen[endpoint] = category
        return self


class AuthorizationSettings(BaseModel):
    """Identities and endpoint sets used by the access policies."""

    public_token: str = Field(default=PUBLIC_TOKEN, min_length=1)
    public_consumer: str = Field(default=PUBLIC_CONSUMER)
    admin_identity: str = Field(
        default=ADMIN_IDENTITY,
        description="Provider id '<domain>/<sha>' allowed on management endpoints.",
    )
    test_consumer: str = Field(default=TEST_CONSUMER, description="Testing profile only.")
    test_provider: str = Field(default=TEST_PROVIDER, description="Testing profile only.")
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)


class AuditConfig(BaseModel):
    """Audit logging settings."""

    enabled: bool = Field(default=True, description="Enable decision audit logging.")
    file: str = Field(
        default="logs/audit.jsonl",
        description="Path to the JSON-line audit log file.",
    )
    max_size_mb: int = Field(default=100, ge=1, description="Max file size in MB before rotation.")
    backup_count: int = Field(
        default=5, ge=0, description="Number of rotated backup files to keep."
    )


# ── Top-level config ────────────────────────────────────────────────────


class RsSentinelConfig(BaseModel):
    """Top-level validated configuration for RS Sentinel."""

    version: str = "1"
    server: ServerSettings = Field(default_factory=ServerSettings)
    tip: TipConfig
    catalogue: CatalogueConfig
    cache: CacheConfig = Field(default_factory=CacheConfig)
    authorization: AuthorizationSettings = Field(default_factory=AuthorizationSettings)
    audit: AuditConfig = Field(default_factory=AuditConfig)

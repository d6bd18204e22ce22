"""Request and identity shapes exchanged with the API layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class AuthContext:
    """Per-request authentication info supplied by the API layer.

    ``subscription_or_adapter_id`` is the id in the request path for
    subscription and adapter calls that address an existing object.
    """

    token: str
    api_endpoint: str
    method: str = "GET"
    subscription_or_adapter_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AuthContext:
        """Construct from the API layer's ``{"token", "apiEndpoint", "method", "id"}`` dict."""
        return cls(
            token=data["token"],
            api_endpoint=data["apiEndpoint"],
            method=data.get("method", "GET"),
            subscription_or_adapter_id=data.get("id"),
        )


@dataclass(frozen=True)
class UserRequest:
    """The parts of the user's request that access decisions look at."""

    resource_ids: Tuple[str, ...] = ()
    entity_ids: Tuple[str, ...] = ()
    resource_group: Optional[str] = None
    resource_server: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UserRequest:
        """Construct from ``{"ids", "entities", "resourceGroup", "resourceServer"}``."""
        return cls(
            resource_ids=tuple(data.get("ids") or ()),
            entity_ids=tuple(data.get("entities") or ()),
            resource_group=data.get("resourceGroup"),
            resource_server=data.get("resourceServer"),
        )


@dataclass(frozen=True)
class Identity:
    """Identity a request is allowed to proceed as."""

    consumer: Optional[str] = None
    provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": "success"}
        if self.consumer is not None:
            payload["consumer"] = self.consumer
        if self.provider is not None:
            payload["provider"] = self.provider
        return payload

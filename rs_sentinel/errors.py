"""Custom exception classes for RS Sentinel."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Optional


class RsSentinelError(Exception):
    """Base class for all custom exceptions in RS Sentinel."""

    pass


class ConfigurationError(RsSentinelError):
    """Raised when loading or validating the configuration file fails."""

    pass


class ContractViolationError(RsSentinelError):
    """
    Raised when a grant or request is missing a field the policy needs.

    This is a programming or integration error, not an access decision.
    """

    pass


class InvalidQueryError(RsSentinelError):
    """Raised when NGSI-LD query parameters cannot be mapped."""

    pass


class AuthorizationFailure(RsSentinelError):
    """Base class for per-request failures returned to the API layer."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Failure payload handed back to the API layer."""
        return {"status": "error", "message": self.message}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))


class TokenInvalidError(AuthorizationFailure):
    """Raised when a token has expired or is not recognised."""

    pass


class RemoteServiceError(AuthorizationFailure):
    """
    Raised when the token introspection provider or the catalogue
    cannot be reached, times out, or answers with an error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        orig_exc: Optional[Exception] = None,
    ):
        self.service = service
        self.orig_exc = orig_exc

        full_msg = message
        if service:
            full_msg = f"{service}: {message}"
        if orig_exc:
            full_msg += f" (original error: {type(orig_exc).__name__})"
        super().__init__(full_msg)


class ResourceNotFoundError(AuthorizationFailure):
    """Raised when a resource or its group is not listed in the catalogue."""

    def __init__(self, resource_id: Optional[str] = None):
        self.resource_id = resource_id
        message = "Not Found"
        if resource_id:
            message = f"Not Found: {resource_id}"
        super().__init__(message)


class DenialReason(Enum):
    """Why a well-formed request was refused."""

    PUBLIC_TOKEN_RESTRICTED = "Public token cannot access requested endpoint"
    UNKNOWN_ENDPOINT = "Requested endpoint is not classified"
    API_NOT_PERMITTED = "Token does not grant access to requested API"
    RESOURCE_GROUP_MISMATCH = "Token does not grant access to requested resource"
    ADAPTER_MISMATCH = "Token does not grant access to requested adapter"
    ENTITY_MISMATCH = "Token does not grant access to requested entity"
    SUBSCRIPTION_OWNER_MISMATCH = "Subscription is not owned by token consumer"
    NOT_ADMINISTRATOR = "Management API requires administrator identity"


class AccessDeniedError(AuthorizationFailure):
    """
    Raised when the policy refuses an otherwise valid request.

    *identity* names the consumer recorded against the denial.
    """

    def __init__(self, reason: DenialReason, identity: Optional[str] = None):
        self.reason = reason
        self.identity = identity
        super().__init__(reason.value)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason.name
        if self.identity:
            payload["consumer"] = self.identity
        return payload

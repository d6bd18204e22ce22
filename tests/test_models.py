"""Tests for ids, endpoint sets, request models, errors and audit records."""

from __future__ import annotations

import hashlib
import json

import pytest

from rs_sentinel.audit.logger import AuditLogger
from rs_sentinel.audit.models import AuditEvent, AuditRequest
from rs_sentinel.authz.endpoints import EndpointCategory, EndpointSets
from rs_sentinel.authz.models import AuthContext, Identity, UserRequest
from rs_sentinel.errors import (
    AccessDeniedError,
    AuthorizationFailure,
    ContractViolationError,
    DenialReason,
    RemoteServiceError,
    ResourceNotFoundError,
    TokenInvalidError,
)
from rs_sentinel.hashing import sha1_identity
from rs_sentinel.ids import group_id, parent_id, provider_id

RID = "example.org/provsha/rs.example.org/group-a/item-1"
GROUP = "example.org/provsha/rs.example.org/group-a"


# ── Ids ──────────────────────────────────────────────────────────────────


class TestIds:
    def test_group_id(self):
        assert group_id(RID) == GROUP
        assert group_id(GROUP) == GROUP
        assert group_id("a/b/c") is None

    def test_parent_id(self):
        assert parent_id(RID) == GROUP
        assert parent_id("a/*") == "a"
        with pytest.raises(ContractViolationError):
            parent_id("flat")

    def test_provider_id(self):
        assert provider_id(RID) == "example.org/provsha"
        with pytest.raises(ContractViolationError):
            provider_id("example.org")

    def test_sha1_identity(self):
        expected = hashlib.sha1(b"alice@example.org").hexdigest()
        assert sha1_identity("alice@example.org") == expected
        assert len(expected) == 40


# ── Endpoint sets ────────────────────────────────────────────────────────


class TestEndpointSets:
    def test_defaults(self):
        sets = EndpointSets()
        assert sets.classify("/ngsi-ld/v1/entities") is EndpointCategory.OPEN
        assert sets.classify("/iudx/v1/adapter") is EndpointCategory.ADAPTER
        assert sets.classify("/ngsi-ld/v1/subscription") is EndpointCategory.SUBSCRIPTION
        assert sets.classify("/management/vhost") is EndpointCategory.MANAGEMENT
        assert sets.classify("/unknown") is None
        assert sets.is_open("/ngsi-ld/v1/temporal/entities")

    def test_lists_are_frozen(self):
        sets = EndpointSets(open=["/a"], adapter=["/b"], subscription=[], management=[])
        assert sets.open == frozenset({"/a"})
        assert sets.members(EndpointCategory.ADAPTER) == frozenset({"/b"})

    def test_overlap_rejected(self):
        with pytest.raises(ValueError, match="open and management"):
            EndpointSets(open=["/x"], management=["/x"])


# ── Request models ───────────────────────────────────────────────────────


class TestRequestModels:
    def test_auth_context_from_dict(self):
        ctx = AuthContext.from_dict(
            {"token": "tok", "apiEndpoint": "/iudx/v1/adapter", "method": "DELETE", "id": GROUP}
        )
        assert ctx == AuthContext("tok", "/iudx/v1/adapter", "DELETE", GROUP)

    def test_auth_context_defaults(self):
        ctx = AuthContext.from_dict({"token": "tok", "apiEndpoint": "/x"})
        assert ctx.method == "GET"
        assert ctx.subscription_or_adapter_id is None

    def test_user_request_from_dict(self):
        req = UserRequest.from_dict(
            {"ids": [RID], "entities": [RID], "resourceGroup": "group-a", "resourceServer": "rs"}
        )
        assert req.resource_ids == (RID,)
        assert req.entity_ids == (RID,)
        assert req.resource_group == "group-a"
        assert req.resource_server == "rs"

    def test_user_request_empty(self):
        assert UserRequest.from_dict({}) == UserRequest()

    def test_identity_to_dict(self):
        assert Identity().to_dict() == {"status": "success"}
        assert Identity("alice@example.org", "example.org/provsha").to_dict() == {
            "status": "success",
            "consumer": "alice@example.org",
            "provider": "example.org/provsha",
        }


# ── Errors ───────────────────────────────────────────────────────────────


class TestErrors:
    def test_failures_share_wire_shape(self):
        for exc in (
            TokenInvalidError("Token has expired"),
            RemoteServiceError("down", "TIP"),
            ResourceNotFoundError(RID),
        ):
            assert isinstance(exc, AuthorizationFailure)
            assert exc.to_dict()["status"] == "error"
            assert json.loads(exc.to_json())["message"] == exc.message

    def test_remote_service_message(self):
        exc = RemoteServiceError("timed out", "Catalogue", TimeoutError())
        assert exc.message == "Catalogue: timed out (original error: TimeoutError)"

    def test_not_found_message(self):
        assert ResourceNotFoundError().message == "Not Found"
        assert ResourceNotFoundError(RID).message == f"Not Found: {RID}"

    def test_access_denied_payload(self):
        exc = AccessDeniedError(DenialReason.NOT_ADMINISTRATOR, identity="alice@example.org")
        assert exc.to_dict() == {
            "status": "error",
            "message": DenialReason.NOT_ADMINISTRATOR.value,
            "reason": "NOT_ADMINISTRATOR",
            "consumer": "alice@example.org",
        }

    def test_contract_violation_is_not_a_failure(self):
        assert not issubclass(ContractViolationError, AuthorizationFailure)


# ── Audit ────────────────────────────────────────────────────────────────


class TestAuditLogger:
    def test_emit_writes_json_line(self, tmp_path):
        audit = AuditLogger(
            str(tmp_path / "audit" / "audit.jsonl"), max_bytes=1024 * 1024, backup_count=1
        )
        audit.emit(AuditEvent(request=AuditRequest(endpoint="/x", method="GET")))
        audit.close()
        lines = (tmp_path / "audit" / "audit.jsonl").read_text().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["event_type"] == "authorization"
        assert record["request"]["endpoint"] == "/x"
        assert record["outcome"]["status"] == "allow"

    def test_rotates_at_max_bytes(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        audit = AuditLogger(str(path), max_bytes=200, backup_count=2)
        for _ in range(5):
            audit.emit(AuditEvent(request=AuditRequest(endpoint="/x", method="GET")))
        audit.close()
        assert (tmp_path / "audit.jsonl.1").exists()
        assert not (tmp_path / "audit.jsonl.3").exists()

    def test_close_detaches_handler(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        audit = AuditLogger(str(path), max_bytes=1024, backup_count=0)
        audit.close()
        audit2 = AuditLogger(str(tmp_path / "other.jsonl"), max_bytes=1024, backup_count=0)
        audit2.emit(AuditEvent(request=AuditRequest(endpoint="/y", method="GET")))
        audit2.close()
        assert path.read_text() == ""

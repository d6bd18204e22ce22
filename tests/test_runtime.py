"""Tests for runtime wiring, the CLI and log redaction."""

from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from rs_sentinel import cli
from rs_sentinel.auth.models import TipGrant, TipRequest
from rs_sentinel.auth.tip_client import TipClient
from rs_sentinel.authz.models import AuthContext, Identity, UserRequest
from rs_sentinel.catalogue.client import CatalogueClient
from rs_sentinel.config.loader import validate_config
from rs_sentinel.display.logging_config import SecretRedactionFilter, secret_redaction_filter
from rs_sentinel.errors import AccessDeniedError, DenialReason
from rs_sentinel.runtime import AuthorizationRuntime

GROUP_A = "example.org/provsha/rs.example.org/group-a"
RID_A1 = f"{GROUP_A}/item-1"


def _config(**overrides):
    raw = {
        "tip": {"host": "auth.example.org"},
        "catalogue": {"host": "catalogue.example.org"},
        "audit": {"enabled": False},
    }
    raw.update(overrides)
    return validate_config(raw)


def _clients():
    tip = MagicMock(spec=TipClient)
    tip.introspect = AsyncMock(
        return_value=TipGrant(
            consumer="alice@example.org",
            requests=(TipRequest(id=f"{GROUP_A}/*", apis=frozenset({"/ngsi-ld/v1/entities"})),),
        )
    )
    tip.close = AsyncMock()
    cat = MagicMock(spec=CatalogueClient)
    cat.count_items = AsyncMock(return_value=1)
    cat.access_policy = AsyncMock(return_value="SECURE")
    cat.close = AsyncMock()
    return tip, cat


# ── Runtime ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestAuthorizationRuntime:
    async def test_authorize_and_close(self):
        tip, cat = _clients()
        async with AuthorizationRuntime(_config(), tip_client=tip, catalogue_client=cat) as rt:
            identity = await rt.authorize(
                UserRequest(resource_ids=(RID_A1,)),
                AuthContext("tok-abcdef-123", "/ngsi-ld/v1/entities"),
            )
            assert identity == Identity(consumer="alice@example.org")
            assert rt.audit_logger is None
        tip.close.assert_awaited_once()
        cat.close.assert_awaited_once()

    async def test_request_tokens_are_not_retained(self):
        tip, cat = _clients()
        rt = AuthorizationRuntime(_config(), tip_client=tip, catalogue_client=cat)
        for i in range(5):
            await rt.authorize(
                UserRequest(resource_ids=(RID_A1,)),
                AuthContext(f"request-token-{i:04d}", "/ngsi-ld/v1/entities"),
            )
        await rt.close()
        assert not any(s.startswith("request-token-") for s in secret_redaction_filter._secrets)

    async def test_tip_header_secrets_registered(self):
        tip, cat = _clients()
        config = _config(
            tip={"host": "auth.example.org", "headers": {"clientSecret": "s3cr3t-value-01"}}
        )
        rt = AuthorizationRuntime(config, tip_client=tip, catalogue_client=cat)
        assert secret_redaction_filter.redact("sent s3cr3t-value-01") == "sent ***REDACTED***"
        await rt.close()
        secret_redaction_filter.clear()

    async def test_configured_endpoint_sets(self):
        tip, cat = _clients()
        config = _config(
            authorization={"endpoints": {"open": ["/custom/entities"], "management": []}}
        )
        rt = AuthorizationRuntime(config, tip_client=tip, catalogue_client=cat)
        with pytest.raises(AccessDeniedError) as exc_info:
            await rt.authorize(
                UserRequest(), AuthContext("public", "/ngsi-ld/v1/entities")
            )
        assert exc_info.value.reason is DenialReason.PUBLIC_TOKEN_RESTRICTED
        assert rt.tip_cache._public_grant.primary.apis == frozenset({"/custom/entities"})
        await rt.close()

    async def test_testing_profile_is_permissive(self):
        tip, cat = _clients()
        config = _config(
            server={"mode": "testing"},
            authorization={"test_consumer": "qa@example.org", "test_provider": "qa/provider"},
        )
        rt = AuthorizationRuntime(config, tip_client=tip, catalogue_client=cat)
        identity = await rt.authorize(UserRequest(), AuthContext("public", "/iudx/v1/adapter"))
        assert identity == Identity(consumer="qa@example.org", provider="qa/provider")
        await rt.close()

    async def test_audit_logger_built_from_config(self, tmp_path):
        tip, cat = _clients()
        config = _config(audit={"enabled": True, "file": str(tmp_path / "audit" / "events.jsonl")})
        rt = AuthorizationRuntime(config, tip_client=tip, catalogue_client=cat)
        await rt.authorize(
            UserRequest(resource_ids=(RID_A1,)),
            AuthContext("tok-abcdef-123", "/ngsi-ld/v1/entities"),
        )
        await rt.close()
        lines = (tmp_path / "audit" / "events.jsonl").read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["outcome"]["status"] == "allow"


# ── Redaction ────────────────────────────────────────────────────────────


class TestSecretRedactionFilter:
    def _record(self, msg, args=()):
        return logging.LogRecord("t", logging.INFO, __file__, 1, msg, args, None)

    def test_redacts_message_and_args(self):
        flt = SecretRedactionFilter()
        flt.register("tok-abcdef-123")
        record = self._record("token %s rejected: tok-abcdef-123", ("tok-abcdef-123",))
        assert flt.filter(record)
        assert "tok-abcdef-123" not in record.getMessage()
        assert "***REDACTED***" in record.getMessage()

    def test_short_values_ignored(self):
        flt = SecretRedactionFilter()
        flt.register("abc")
        record = self._record("abc")
        flt.filter(record)
        assert record.getMessage() == "abc"

    def test_clear(self):
        flt = SecretRedactionFilter()
        flt.register("tok-abcdef-123")
        flt.clear()
        assert flt.redact("tok-abcdef-123") == "tok-abcdef-123"

    @pytest.mark.parametrize(
        "text, secret",
        [
            ("Authorization: Bearer eyJhbGciOi.abc.def", "eyJhbGciOi.abc.def"),
            ('TIP body {"token": "tok-abcdef-123", "x": 1}', "tok-abcdef-123"),
            ("GET /introspect?token=tok-abcdef-123&x=1", "tok-abcdef-123"),
        ],
    )
    def test_tokens_redacted_by_shape(self, text, secret):
        flt = SecretRedactionFilter()
        record = self._record("%s", (text,))
        flt.filter(record)
        assert secret not in record.getMessage()
        assert "***REDACTED***" in record.getMessage()

    def test_token_shapes_keep_no_state(self):
        flt = SecretRedactionFilter()
        for i in range(1000):
            flt.redact(f"Bearer tok-{i:08d}")
        assert flt._secrets == set()
        assert flt._pattern is None


# ── CLI ──────────────────────────────────────────────────────────────────


class TestCli:
    def test_query(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "setup_logging", lambda *a, **kw: ("", "INFO"))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["query", "id=a/b/c/d/e&q=speed>40"])
        assert exc_info.value.code == 0
        doc = json.loads(capsys.readouterr().out)
        assert doc["searchType"] == "latestSearch_attributeSearch"

    def test_query_invalid(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "setup_logging", lambda *a, **kw: ("", "INFO"))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["query", "georel=near;radius==5&coordinates=[1,2]"])
        assert exc_info.value.code == 1
        assert "Invalid query" in capsys.readouterr().err

    def test_no_command(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 1

    def test_authorize_missing_config(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "setup_logging", lambda *a, **kw: ("", "INFO"))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(
                [
                    "authorize",
                    "--config",
                    "/nonexistent/config.yaml",
                    "--token",
                    "tok",
                    "--endpoint",
                    "/ngsi-ld/v1/entities",
                ]
            )
        assert exc_info.value.code == 2
        assert "Configuration error" in capsys.readouterr().err

    def test_authorize_denied(self, monkeypatch, capsys, tmp_path):
        monkeypatch.setattr(cli, "setup_logging", lambda *a, **kw: ("", "INFO"))
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            "tip:\n  host: auth.example.org\n"
            "catalogue:\n  host: catalogue.example.org\n"
            "audit:\n  enabled: false\n"
        )
        with pytest.raises(SystemExit) as exc_info:
            cli.main(
                [
                    "authorize",
                    "--config",
                    str(config_path),
                    "--token",
                    "public",
                    "--endpoint",
                    "/iudx/v1/adapter",
                    "--method",
                    "post",
                ]
            )
        assert exc_info.value.code == 1
        payload = json.loads(capsys.readouterr().out)
        assert payload["status"] == "error"
        assert payload["reason"] == "PUBLIC_TOKEN_RESTRICTED"

    def test_authorize_malformed_request(self, monkeypatch, capsys, tmp_path):
        monkeypatch.setattr(cli, "setup_logging", lambda *a, **kw: ("", "INFO"))
        monkeypatch.setattr(
            TipClient,
            "introspect",
            AsyncMock(
                return_value=TipGrant(
                    consumer="alice@example.org",
                    requests=(
                        TipRequest(id="org/res/grp/item", apis=frozenset({"/iudx/v1/adapter"})),
                    ),
                )
            ),
        )
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            "tip:\n  host: auth.example.org\n"
            "catalogue:\n  host: catalogue.example.org\n"
            "audit:\n  enabled: false\n"
        )
        with pytest.raises(SystemExit) as exc_info:
            cli.main(
                [
                    "authorize",
                    "--config",
                    str(config_path),
                    "--token",
                    "tok-abcdef-123",
                    "--endpoint",
                    "/iudx/v1/adapter",
                    "--method",
                    "post",
                ]
            )
        assert exc_info.value.code == 3
        payload = json.loads(capsys.readouterr().out)
        assert payload["status"] == "error"
        assert payload["error_type"] == "ContractViolationError"

"""Async client for the token introspection provider (TIP).

POSTs ``{"token": ...}`` to the configured introspection path and parses
the JSON answer into a :class:`~rs_sentinel.auth.models.TipGrant`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from rs_sentinel.auth.models import TipGrant
from rs_sentinel.constants import TIP_DEFAULT_PATH, TIP_TIMEOUT
from rs_sentinel.errors import RemoteServiceError

logger = logging.getLogger(__name__)

_SERVICE = "TIP"


class TipClient:
    """Async HTTP client for token introspection.

    Parameters
    ----------
    base_url:
        Root URL of the auth server (e.g. ``https://auth.example.org``).
    path:
        Introspection endpoint path.
    headers:
        Extra headers applied to every request (server credentials, etc.).
    timeout:
        HTTP request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        *,
        path: str = TIP_DEFAULT_PATH,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = TIP_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._path = path
        self._headers = headers or {}
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    # ── lifecycle ───────────────────────────────────────────────────

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── public API ──────────────────────────────────────────────────

    async def introspect(self, token: str) -> TipGrant:
        """Introspect *token* and return the grant.

        Raises :class:`RemoteServiceError` when the TIP is unreachable,
        times out, answers non-2xx, or returns a malformed body.  The
        grant returned has no ``cache_expiry`` set.
        """
        client = await self._ensure_client()
        try:
            resp = await client.post(self._path, json={"token": token})
        except httpx.TimeoutException as exc:
            raise RemoteServiceError("introspection timed out", _SERVICE, exc) from exc
        except httpx.HTTPError as exc:
            raise RemoteServiceError("introspection request failed", _SERVICE, exc) from exc

        if not 200 <= resp.status_code < 300:
            message = _error_message(resp)
            logger.warning("TIP rejected introspection (HTTP %d): %s", resp.status_code, message)
            raise RemoteServiceError(message, _SERVICE)

        try:
            grant = TipGrant.from_dict(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise RemoteServiceError("malformed introspection response", _SERVICE, exc) from exc

        logger.debug(
            "TIP introspection ok: consumer=%s requests=%d expiry=%s",
            grant.consumer,
            len(grant.requests),
            grant.token_expiry.isoformat(),
        )
        return grant


def _error_message(resp: Any) -> str:
    """Extract ``error.message`` from a TIP error body, tolerating junk."""
    try:
        body = resp.json()
        message = body["error"]["message"]
        if isinstance(message, str) and message:
            return message
    except (ValueError, KeyError, TypeError):
        pass
    return f"introspection failed with HTTP {resp.status_code}"

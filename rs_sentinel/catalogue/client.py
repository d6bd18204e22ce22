"""Read-only async client for the catalogue search API.

Resources are looked up with ``GET <path>?property=[id]&value=[[<id>]]&filter=[<attr>]``.
A successful answer has the shape::

    {"status": "success", "totalHits": 1, "results": [{"accessPolicy": "OPEN"}]}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from rs_sentinel.constants import CAT_DEFAULT_PATH, CAT_TIMEOUT
from rs_sentinel.errors import RemoteServiceError

logger = logging.getLogger(__name__)

_SERVICE = "Catalogue"


class CatalogueClient:
    """Async HTTP client for the catalogue server.

    Parameters
    ----------
    base_url:
        Root URL of the catalogue (e.g. ``https://catalogue.example.org:8443``).
    path:
        Search endpoint path.
    timeout:
        HTTP request timeout in seconds.
    verify:
        Verify the catalogue's TLS certificate.
    """

    def __init__(
        self,
        base_url: str,
        *,
        path: str = CAT_DEFAULT_PATH,
        timeout: float = CAT_TIMEOUT,
        verify: bool = True,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._path = path
        self._timeout = timeout
        self._verify = verify
        self._client: Optional[httpx.AsyncClient] = None

    # ── lifecycle ───────────────────────────────────────────────────

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                verify=self._verify,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── public API ──────────────────────────────────────────────────

    async def count_items(self, resource_id: str) -> int:
        """Return the number of catalogue items whose id is *resource_id*."""
        body = await self._search(resource_id, "id")
        try:
            return int(body.get("totalHits", 0))
        except (TypeError, ValueError) as exc:
            raise RemoteServiceError("malformed totalHits", _SERVICE, exc) from exc

    async def access_policy(self, group_id: str) -> Optional[str]:
        """Return the ``accessPolicy`` of *group_id*, or ``None`` if no result carries one."""
        body = await self._search(group_id, "accessPolicy")
        results = body.get("results") or []
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            return None
        policy = results[0].get("accessPolicy")
        return policy if isinstance(policy, str) else None

    # ── internals ───────────────────────────────────────────────────

    async def _search(self, item_id: str, attribute: str) -> Dict[str, Any]:
        params = {
            "property": "[id]",
            "value": f"[[{item_id}]]",
            "filter": f"[{attribute}]",
        }
        client = await self._ensure_client()
        try:
            resp = await client.get(self._path, params=params)
        except httpx.TimeoutException as exc:
            raise RemoteServiceError("search timed out", _SERVICE, exc) from exc
        except httpx.HTTPError as exc:
            raise RemoteServiceError("search request failed", _SERVICE, exc) from exc

        if resp.status_code != 200:
            raise RemoteServiceError(f"search failed with HTTP {resp.status_code}", _SERVICE)
        try:
            body = resp.json()
        except ValueError as exc:
            raise RemoteServiceError("search returned non-JSON body", _SERVICE, exc) from exc
        if not isinstance(body, dict) or body.get("status") != "success":
            raise RemoteServiceError("search did not succeed", _SERVICE)
        logger.debug("Catalogue search %s (%s): totalHits=%s", item_id, attribute, body.get("totalHits"))
        return body

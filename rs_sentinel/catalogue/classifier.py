"""OPEN/SECURE classification of resources against the catalogue.

Only requests to catalogue-gated (open) endpoints are classified.  For
each resource id the classifier checks that the id exists in the
catalogue and then reads the ``accessPolicy`` of its group (the first
four path segments).  Positive answers are cached per id and per group
for the lifetime of the process.

Negative lookups are not cached, so every request for an unknown id
queries the catalogue again.  Changes to a group's policy in the
catalogue are not picked up until restart.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from rs_sentinel.aio import gather_fail_fast
from rs_sentinel.auth.store import AtomicStore
from rs_sentinel.catalogue.client import CatalogueClient
from rs_sentinel.catalogue.models import CLOSED_ENDPOINT, Classification
from rs_sentinel.constants import CAT_ACCESS_POLICY_OPEN
from rs_sentinel.errors import RemoteServiceError, ResourceNotFoundError
from rs_sentinel.ids import group_id

logger = logging.getLogger(__name__)


class CatalogueClassifier:
    """Resolves whether requested resources are OPEN or SECURE.

    Parameters
    ----------
    client:
        Catalogue search client.
    open_endpoints:
        Endpoints whose access depends on catalogue classification.
    classify_all_ids:
        When ``False`` (default) only the first requested id is
        classified; when ``True`` every id is looked up concurrently.
    """

    def __init__(
        self,
        client: CatalogueClient,
        *,
        open_endpoints: Iterable[str],
        classify_all_ids: bool = False,
    ) -> None:
        self._client = client
        self._open_endpoints = frozenset(open_endpoints)
        self._classify_all_ids = classify_all_ids
        self._policy_by_id: AtomicStore[str, str] = AtomicStore()
        self._policy_by_group: AtomicStore[str, str] = AtomicStore()

    async def classify(self, endpoint: str, resource_ids: Sequence[str]) -> Classification:
        """Classify *resource_ids* for a request to *endpoint*.

        Returns :data:`CLOSED_ENDPOINT` when *endpoint* is not catalogue
        gated.  Raises :class:`ResourceNotFoundError` if any lookup fails;
        no partial result is returned.
        """
        if endpoint not in self._open_endpoints:
            logger.debug("Endpoint %s is not catalogue gated; classification skipped.", endpoint)
            return CLOSED_ENDPOINT

        ids: List[str] = list(resource_ids)
        if not self._classify_all_ids:
            ids = ids[:1]

        outcomes = await gather_fail_fast(*(self._classify_one(rid) for rid in ids))
        return Classification(
            open_by_id={rid: is_open for rid, is_open in zip(ids, outcomes) if is_open is not None}
        )

    def cached_policy(self, resource_id: str) -> Optional[str]:
        """Cached ``accessPolicy`` for *resource_id*, if it was classified before."""
        return self._policy_by_id.get(resource_id)

    async def _classify_one(self, resource_id: str) -> Optional[bool]:
        group = group_id(resource_id)
        if group is None:
            logger.debug("Resource id %s is too short to classify; skipped.", resource_id)
            return None

        policy = self._policy_by_id.get(resource_id)
        if policy is not None:
            return policy == CAT_ACCESS_POLICY_OPEN

        try:
            hits = await self._client.count_items(resource_id)
        except RemoteServiceError as exc:
            logger.warning("Catalogue lookup for %s failed: %s", resource_id, exc)
            raise ResourceNotFoundError(resource_id) from exc
        if hits == 0:
            logger.debug("Resource id %s not found in catalogue.", resource_id)
            raise ResourceNotFoundError(resource_id)

        policy = self._policy_by_group.get(group)
        if policy is None:
            try:
                policy = await self._client.access_policy(group)
            except RemoteServiceError as exc:
                logger.warning("Catalogue group lookup for %s failed: %s", group, exc)
                raise ResourceNotFoundError(resource_id) from exc
            if policy is None:
                logger.debug("Group %s has no accessPolicy in catalogue; left unclassified.", group)
                return None
            self._policy_by_group.put(group, policy)

        self._policy_by_id.put(resource_id, policy)
        logger.debug("Resource %s classified as %s.", resource_id, policy)
        return policy == CAT_ACCESS_POLICY_OPEN

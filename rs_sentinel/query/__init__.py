"""NGSI-LD query parameter mapping."""

from rs_sentinel.query.mapper import QueryMapper, get_query_terms
from rs_sentinel.query.models import GeoRelation, NGSILDQueryParams, TemporalRelation

__all__ = [
    "GeoRelation",
    "NGSILDQueryParams",
    "QueryMapper",
    "TemporalRelation",
    "get_query_terms",
]

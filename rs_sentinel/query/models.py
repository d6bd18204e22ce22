"""Parsed NGSI-LD query parameters."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import parse_qsl

from rs_sentinel.errors import InvalidQueryError

# georel=near;maxDistance==360  (NGSI-LD uses '==', a single '=' is accepted)
_DISTANCE_RE = re.compile(r"^(maxDistance|minDistance)==?(.+)$")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _distance(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise InvalidQueryError(f"{name} must be numeric, got '{raw}'") from None


@dataclass
class GeoRelation:
    relation: Optional[str] = None
    max_distance: Optional[float] = None
    min_distance: Optional[float] = None

    @classmethod
    def parse(cls, value: str) -> GeoRelation:
        """Parse ``near;maxDistance==360`` style values."""
        parts = [p for p in value.split(";") if p]
        georel = cls(relation=parts[0] if parts else None)
        for part in parts[1:]:
            match = _DISTANCE_RE.match(part)
            if match is None:
                raise InvalidQueryError(f"Unrecognised georel modifier '{part}'")
            name, raw = match.groups()
            if name == "maxDistance":
                georel.max_distance = _distance(name, raw)
            else:
                georel.min_distance = _distance(name, raw)
        return georel


@dataclass
class TemporalRelation:
    temprel: Optional[str] = None
    time: Optional[str] = None
    end_time: Optional[str] = None


@dataclass
class NGSILDQueryParams:
    """Query parameters of an NGSI-LD entities or temporal request."""

    id: Optional[List[str]] = None
    attrs: Optional[List[str]] = None
    georel: Optional[GeoRelation] = None
    geometry: Optional[str] = None
    coordinates: Optional[str] = None
    temporal_relation: TemporalRelation = field(default_factory=TemporalRelation)
    q: Optional[str] = None
    geoproperty: Optional[str] = None
    options: Optional[str] = None

    @classmethod
    def from_query_string(cls, query_string: str) -> NGSILDQueryParams:
        """Build params from a raw (URL-encoded) query string.

        Unknown parameters are ignored.  Raises :class:`InvalidQueryError`
        for malformed ``georel`` modifiers.
        """
        params = cls()
        for key, value in parse_qsl(query_string.lstrip("?"), keep_blank_values=False):
            if key == "id":
                params.id = _split_list(value)
            elif key == "attrs":
                params.attrs = _split_list(value)
            elif key == "georel":
                params.georel = GeoRelation.parse(value)
            elif key == "geometry":
                params.geometry = value
            elif key == "coordinates":
                params.coordinates = value
            elif key == "timerel":
                params.temporal_relation.temprel = value
            elif key == "time":
                params.temporal_relation.time = value
            elif key in ("endTime", "endtime"):
                params.temporal_relation.end_time = value
            elif key == "q":
                params.q = value
            elif key == "geoproperty":
                params.geoproperty = value
            elif key == "options":
                params.options = value
        return params

"""Maps NGSI-LD query parameters to the internal query document.

The document is what the database and broker layers consume::

    params = NGSILDQueryParams.from_query_string("id=a/b/c/d/e&q=speed>40")
    QueryMapper().to_json(params, temporal=False)
    # {"id": ["a/b/c/d/e"],
    #  "attr-query": [{"attribute": "speed", "operator": ">", "value": "40"}],
    #  "searchType": "latestSearch_attributeSearch"}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from rs_sentinel.errors import InvalidQueryError
from rs_sentinel.query.models import NGSILDQueryParams

logger = logging.getLogger(__name__)

# ── Document keys ────────────────────────────────────────────────────────

JSON_ID = "id"
JSON_ATTRS = "attrs"
JSON_LAT = "lat"
JSON_LON = "lon"
JSON_RADIUS = "radius"
JSON_GEOMETRY = "geometry"
JSON_COORDINATES = "coordinates"
JSON_GEOREL = "georel"
JSON_MAX_DISTANCE = "maxDistance"
JSON_MIN_DISTANCE = "minDistance"
JSON_TIME = "time"
JSON_END_TIME = "endtime"
JSON_TIMEREL = "timerel"
JSON_ATTR_QUERY = "attr-query"
JSON_GEOPROPERTY = "geoproperty"
JSON_OPTIONS = "options"
JSON_SEARCH_TYPE = "searchType"

JSON_ATTRIBUTE = "attribute"
JSON_OPERATOR = "operator"
JSON_VALUE = "value"

# ── Search types ─────────────────────────────────────────────────────────

TEMPORAL_SEARCH = "temporalSearch_"
LATEST_SEARCH = "latestSearch_"
GEO_SEARCH = "geoSearch_"
RESPONSE_FILTER_SEARCH = "responseFilter_"
ATTRIBUTE_SEARCH = "attributeSearch_"

GEOM_POINT = "point"
GEOREL_NEAR = "near"
GEOREL_WITHIN = "within"
TIMEREL_DURING = "during"

_OPERATOR_CHARS = frozenset("><=!")


def get_query_terms(term: str) -> Dict[str, str]:
    """Split one ``q`` term such as ``speed>=40`` into its parts.

    The attribute is everything before the first operator character and
    the operator is the run of ``> = < !`` that follows.  Other
    punctuation in the attribute name is kept.  A term without an
    operator yields an empty dict.
    """
    start = next((i for i, ch in enumerate(term) if ch in _OPERATOR_CHARS), None)
    if start is None:
        logger.debug("Query term '%s' has no operator; ignored.", term)
        return {}
    end = start
    while end < len(term) and term[end] in _OPERATOR_CHARS:
        end += 1
    return {
        JSON_ATTRIBUTE: term[:start],
        JSON_OPERATOR: term[start:end],
        JSON_VALUE: term[end:],
    }


def _parse_point(coordinates: str) -> List[float]:
    parts = coordinates.replace("[", "").replace("]", "").split(",")
    try:
        return [float(p) for p in parts]
    except ValueError:
        raise InvalidQueryError(f"Invalid point coordinates '{coordinates}'") from None


class QueryMapper:
    """Builds the internal query document; holds no per-request state."""

    def to_json(self, params: NGSILDQueryParams, temporal: bool) -> Dict[str, Any]:
        """Return the query document for *params*.

        *temporal* selects the temporal search family; the time window is
        only copied when both ``timerel`` and ``time`` are present.
        """
        doc: Dict[str, Any] = {}
        geo_search = response_filter = attribute_search = False

        if params.id is not None:
            doc[JSON_ID] = list(params.id)

        if params.attrs is not None:
            response_filter = True
            doc[JSON_ATTRS] = list(params.attrs)

        georel = params.georel
        if georel is not None and (params.coordinates is not None or params.geometry is not None):
            geo_search = True
            is_point = (params.geometry or "").lower() == GEOM_POINT
            if is_point and georel.relation == GEOREL_NEAR and georel.max_distance is not None:
                coords = _parse_point(params.coordinates or "")
                if len(coords) < 2:
                    raise InvalidQueryError("A point needs both latitude and longitude")
                doc[JSON_LAT] = coords[0]
                doc[JSON_LON] = coords[1]
                doc[JSON_RADIUS] = georel.max_distance
            else:
                doc[JSON_GEOMETRY] = params.geometry
                doc[JSON_COORDINATES] = params.coordinates
                doc[JSON_GEOREL] = georel.relation or GEOREL_WITHIN
                if georel.max_distance is not None:
                    doc[JSON_MAX_DISTANCE] = georel.max_distance
                elif georel.min_distance is not None:
                    doc[JSON_MIN_DISTANCE] = georel.min_distance

        window = params.temporal_relation
        if temporal and window.temprel is not None and window.time is not None:
            doc[JSON_TIME] = window.time
            if window.temprel.lower() == TIMEREL_DURING:
                if window.end_time is None:
                    raise InvalidQueryError("timerel 'during' requires endTime")
                doc[JSON_END_TIME] = window.end_time
            doc[JSON_TIMEREL] = window.temprel

        if params.q is not None:
            attribute_search = True
            doc[JSON_ATTR_QUERY] = [get_query_terms(term) for term in params.q.split(";") if term]

        if params.geoproperty is not None:
            doc[JSON_GEOPROPERTY] = params.geoproperty
        if params.options is not None:
            doc[JSON_OPTIONS] = params.options

        search_type = TEMPORAL_SEARCH if temporal else LATEST_SEARCH
        if geo_search:
            search_type += GEO_SEARCH
        if response_filter:
            search_type += RESPONSE_FILTER_SEARCH
        if attribute_search:
            search_type += ATTRIBUTE_SEARCH
        doc[JSON_SEARCH_TYPE] = search_type[:-1]

        logger.debug("Mapped query document: %s", doc)
        return doc

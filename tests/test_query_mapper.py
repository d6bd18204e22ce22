"""Tests for NGSI-LD query parameter mapping."""

from __future__ import annotations

import pytest

from rs_sentinel.errors import InvalidQueryError
from rs_sentinel.query.mapper import QueryMapper, get_query_terms
from rs_sentinel.query.models import GeoRelation, NGSILDQueryParams, TemporalRelation

RID = "example.org/provsha/rs.example.org/group-a/item-1"


# ── Params ───────────────────────────────────────────────────────────────


class TestNGSILDQueryParams:
    def test_from_query_string(self):
        params = NGSILDQueryParams.from_query_string(
            f"?id={RID},{RID}-2&attrs=speed,direction&q=speed>40"
            "&georel=near;maxDistance==250&geometry=Point&coordinates=[21.17,72.83]"
            "&timerel=during&time=2026-01-01T00:00:00Z&endTime=2026-01-02T00:00:00Z"
            "&geoproperty=location&options=count&unknown=1"
        )
        assert params.id == [RID, f"{RID}-2"]
        assert params.attrs == ["speed", "direction"]
        assert params.q == "speed>40"
        assert params.georel == GeoRelation(relation="near", max_distance=250.0)
        assert params.geometry == "Point"
        assert params.coordinates == "[21.17,72.83]"
        assert params.temporal_relation == TemporalRelation(
            temprel="during", time="2026-01-01T00:00:00Z", end_time="2026-01-02T00:00:00Z"
        )
        assert params.geoproperty == "location"
        assert params.options == "count"

    def test_min_distance_single_equals(self):
        georel = GeoRelation.parse("near;minDistance=5")
        assert georel.min_distance == 5.0
        assert georel.max_distance is None

    def test_bad_georel_modifier(self):
        with pytest.raises(InvalidQueryError):
            GeoRelation.parse("near;radius==5")

    def test_non_numeric_distance(self):
        with pytest.raises(InvalidQueryError, match="numeric"):
            GeoRelation.parse("near;maxDistance==far")


# ── Query terms ──────────────────────────────────────────────────────────


class TestQueryTerms:
    @pytest.mark.parametrize(
        "term, expected",
        [
            ("speed>40", {"attribute": "speed", "operator": ">", "value": "40"}),
            ("speed>=40", {"attribute": "speed", "operator": ">=", "value": "40"}),
            ("speed!=40", {"attribute": "speed", "operator": "!=", "value": "40"}),
            ("ref_id==abc", {"attribute": "ref_id", "operator": "==", "value": "abc"}),
        ],
    )
    def test_split(self, term, expected):
        assert get_query_terms(term) == expected

    def test_no_operator(self):
        assert get_query_terms("speed") == {}


# ── Mapper ───────────────────────────────────────────────────────────────


class TestQueryMapper:
    def test_latest_by_id(self):
        doc = QueryMapper().to_json(NGSILDQueryParams(id=[RID]), temporal=False)
        assert doc == {"id": [RID], "searchType": "latestSearch"}

    def test_near_point_becomes_circle(self):
        params = NGSILDQueryParams(
            id=[RID],
            georel=GeoRelation(relation="near", max_distance=250.0),
            geometry="Point",
            coordinates="[21.17,72.83]",
        )
        doc = QueryMapper().to_json(params, temporal=False)
        assert doc["lat"] == 21.17
        assert doc["lon"] == 72.83
        assert doc["radius"] == 250.0
        assert "geometry" not in doc
        assert doc["searchType"] == "latestSearch_geoSearch"

    def test_polygon_defaults_to_within(self):
        params = NGSILDQueryParams(
            georel=GeoRelation(relation=None),
            geometry="Polygon",
            coordinates="[[[1,2],[3,4],[5,6],[1,2]]]",
        )
        doc = QueryMapper().to_json(params, temporal=False)
        assert doc["geometry"] == "Polygon"
        assert doc["georel"] == "within"
        assert doc["coordinates"] == "[[[1,2],[3,4],[5,6],[1,2]]]"

    def test_point_near_with_min_distance(self):
        params = NGSILDQueryParams(
            georel=GeoRelation(relation="near", min_distance=10.0),
            geometry="Point",
            coordinates="[1,2]",
        )
        doc = QueryMapper().to_json(params, temporal=False)
        assert doc["georel"] == "near"
        assert doc["minDistance"] == 10.0
        assert "radius" not in doc

    def test_temporal_during(self):
        params = NGSILDQueryParams(
            id=[RID],
            temporal_relation=TemporalRelation(
                temprel="during", time="2026-01-01T00:00:00Z", end_time="2026-01-02T00:00:00Z"
            ),
        )
        doc = QueryMapper().to_json(params, temporal=True)
        assert doc["time"] == "2026-01-01T00:00:00Z"
        assert doc["endtime"] == "2026-01-02T00:00:00Z"
        assert doc["timerel"] == "during"
        assert doc["searchType"] == "temporalSearch"

    def test_temporal_during_needs_end(self):
        params = NGSILDQueryParams(
            temporal_relation=TemporalRelation(temprel="during", time="2026-01-01T00:00:00Z")
        )
        with pytest.raises(InvalidQueryError):
            QueryMapper().to_json(params, temporal=True)

    def test_time_ignored_for_latest(self):
        params = NGSILDQueryParams(
            temporal_relation=TemporalRelation(temprel="before", time="2026-01-01T00:00:00Z")
        )
        doc = QueryMapper().to_json(params, temporal=False)
        assert "time" not in doc

    def test_combined_search_type(self):
        params = NGSILDQueryParams.from_query_string(
            "id=a/b/c/d/e&attrs=speed&q=speed>40;direction==north"
            "&georel=within&geometry=Polygon&coordinates=[[[1,2],[3,4],[1,2]]]"
            "&geoproperty=location&options=count"
        )
        doc = QueryMapper().to_json(params, temporal=False)
        assert doc["searchType"] == "latestSearch_geoSearch_responseFilter_attributeSearch"
        assert doc["attrs"] == ["speed"]
        assert doc["attr-query"] == [
            {"attribute": "speed", "operator": ">", "value": "40"},
            {"attribute": "direction", "operator": "==", "value": "north"},
        ]
        assert doc["geoproperty"] == "location"
        assert doc["options"] == "count"

    def test_mapper_is_reusable(self):
        mapper = QueryMapper()
        mapper.to_json(NGSILDQueryParams(q="speed>1", attrs=["speed"]), temporal=True)
        doc = mapper.to_json(NGSILDQueryParams(id=[RID]), temporal=False)
        assert doc["searchType"] == "latestSearch"

"""Tests for the parse_geojson activity."""

from __future__ import annotations

import json

import pytest
from shapely.geometry import shape

from aoi_imagery.activities.parse_geojson import GeoJsonParseError, parse_geojson


class TestFeatureCollection:
    def test_polygons_extracted_points_ignored(self, fields_geojson: bytes) -> None:
        layer = parse_geojson(fields_geojson, source_filename="fields.geojson")

        assert [f.name for f in layer.features] == ["Field 1", "Field 2"]
        assert layer.bounds.to_bbox() == pytest.approx((20.0, 40.0, 23.0, 43.0))
        assert layer.geometry.type == "MultiPolygon"

    def test_properties_become_metadata(self, fields_geojson: bytes) -> None:
        layer = parse_geojson(fields_geojson, source_filename="fields.geojson")
        first = layer.features[0]
        assert first.metadata == {"crop": "wheat"}
        assert first.source_file == "fields.geojson"

    def test_text_and_bom_accepted(self, fields_geojson: bytes) -> None:
        assert len(parse_geojson(fields_geojson.decode("utf-8"))) == 2
        assert len(parse_geojson(b"\xef\xbb\xbf" + fields_geojson)) == 2


class TestOtherShapes:
    def test_single_feature(self, ring_factory) -> None:  # type: ignore[no-untyped-def]
        doc = {
            "type": "Feature",
            "properties": {"name": "Solo"},
            "geometry": {"type": "Polygon", "coordinates": [ring_factory(5.0, 5.0)]},
        }
        layer = parse_geojson(json.dumps(doc))
        assert [f.name for f in layer.features] == ["Solo"]

    def test_bare_geometry(self, ring_factory) -> None:  # type: ignore[no-untyped-def]
        doc = {"type": "Polygon", "coordinates": [ring_factory(5.0, 5.0)]}
        layer = parse_geojson(json.dumps(doc))
        assert len(layer) == 1
        assert layer.features[0].name == ""

    def test_multipolygon_split(self, ring_factory) -> None:  # type: ignore[no-untyped-def]
        doc = {
            "type": "MultiPolygon",
            "coordinates": [[ring_factory(0.0, 0.0)], [ring_factory(1.0, 1.0)]],
        }
        layer = parse_geojson(json.dumps(doc))
        assert len(layer) == 2
        assert layer.bounds.to_bbox() == pytest.approx((0.0, 0.0, 1.01, 1.01))

    def test_polygon_with_hole(self) -> None:
        outer = [[0, 0], [4, 0], [4, 4], [0, 4], [0, 0]]
        hole = [[1, 1], [2, 1], [2, 2], [1, 2], [1, 1]]
        layer = parse_geojson(json.dumps({"type": "Polygon", "coordinates": [outer, hole]}))
        assert layer.features[0].has_holes

    def test_geometry_collection_keeps_polygons(self, ring_factory) -> None:  # type: ignore[no-untyped-def]
        doc = {
            "type": "GeometryCollection",
            "geometries": [
                {"type": "Point", "coordinates": [0, 0]},
                {"type": "Polygon", "coordinates": [ring_factory(3.0, 3.0)]},
            ],
        }
        assert len(parse_geojson(json.dumps(doc))) == 1

    def test_self_intersecting_polygon_repaired(self) -> None:
        bowtie = [[0, 0], [1, 1], [1, 0], [0, 1], [0, 0]]
        doc = {
            "type": "Feature",
            "properties": {"name": "Bowtie"},
            "geometry": {"type": "Polygon", "coordinates": [bowtie]},
        }

        layer = parse_geojson(json.dumps(doc))

        assert [f.name for f in layer.features] == ["Bowtie", "Bowtie"]
        assert layer.geometry.type == "MultiPolygon"
        merged = shape(layer.geometry.to_geojson())
        assert merged.is_valid
        assert merged.area == pytest.approx(0.5)
        assert layer.bounds.to_bbox() == pytest.approx((0.0, 0.0, 1.0, 1.0))


class TestInvalidGeoJson:
    @pytest.mark.parametrize(
        ("content", "match"),
        [
            (b"", "empty"),
            (b"{not json", "not valid JSON"),
            (b"[1, 2]", "not a GeoJSON object"),
            (b'{"type": "Topology"}', "unsupported GeoJSON type"),
            (b'{"type": "FeatureCollection", "features": {}}', "must be a list"),
            (b"\xff\xfe\x00", "not UTF-8"),
        ],
    )
    def test_rejected(self, content: bytes, match: str) -> None:
        with pytest.raises(GeoJsonParseError, match=match):
            parse_geojson(content, source_filename="bad.geojson")

    def test_no_polygons(self) -> None:
        doc = {"type": "Feature", "properties": {}, "geometry": {"type": "Point", "coordinates": [0, 0]}}
        with pytest.raises(GeoJsonParseError, match="No valid polygon"):
            parse_geojson(json.dumps(doc))

    def test_null_geometry_skipped(self, ring_factory) -> None:  # type: ignore[no-untyped-def]
        doc = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {"name": "empty"}, "geometry": None},
                {
                    "type": "Feature",
                    "properties": {"name": "real"},
                    "geometry": {"type": "Polygon", "coordinates": [ring_factory(1.0, 1.0)]},
                },
            ],
        }
        assert [f.name for f in parse_geojson(json.dumps(doc)).features] == ["real"]

    def test_out_of_range_polygon_skipped(
        self, ring_factory, caplog: pytest.LogCaptureFixture  # type: ignore[no-untyped-def]
    ) -> None:
        doc = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "properties": {"name": "north pole plus"},
                    "geometry": {"type": "Polygon", "coordinates": [ring_factory(0.0, 95.0)]},
                },
                {
                    "type": "Feature",
                    "properties": {"name": "fine"},
                    "geometry": {"type": "Polygon", "coordinates": [ring_factory(0.0, 0.0)]},
                },
            ],
        }
        with caplog.at_level("WARNING"):
            layer = parse_geojson(json.dumps(doc))
        assert [f.name for f in layer.features] == ["fine"]
        assert "north pole plus" in caplog.text

    def test_error_category(self) -> None:
        with pytest.raises(GeoJsonParseError) as exc_info:
            parse_geojson(b"{}")
        assert exc_info.value.category == "validation"
        assert exc_info.value.stage == "parse_geojson"

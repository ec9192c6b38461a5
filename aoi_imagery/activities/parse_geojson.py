"""GeoJSON parsing.

Accepts a FeatureCollection, a single Feature or a bare geometry object
and extracts every polygon into a ``ParsedLayer``.  Polygon,
MultiPolygon and GeometryCollection geometries are read through
shapely; other geometry types are ignored.  Each polygon runs through
the same checks as KML placemarks (``activities.validate_geometry``)
and invalid ones are skipped with a warning.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aoi_imagery.activities.validate_geometry import (
    GeometryValidationError,
    coords_to_tuples,
    validate_polygon,
)
from aoi_imagery.core.exceptions import ValidationError
from aoi_imagery.models.feature import Feature, ParsedLayer

logger = logging.getLogger("aoi_imagery.activities.parse_geojson")

_GEOMETRY_TYPES = frozenset(
    {
        "Point",
        "MultiPoint",
        "LineString",
        "MultiLineString",
        "Polygon",
        "MultiPolygon",
        "GeometryCollection",
    }
)


class GeoJsonParseError(ValidationError):
    """Raised when GeoJSON content cannot be parsed or has no polygons."""

    default_stage = "parse_geojson"
    default_code = "GEOJSON_PARSE_FAILED"


def parse_geojson(content: bytes | str, *, source_filename: str = "upload.geojson") -> ParsedLayer:
    """Parse GeoJSON content and extract polygon features.

    Args:
        content: Raw GeoJSON document (bytes or text, UTF-8).
        source_filename: Original filename, recorded on every feature.

    Returns:
        A ``ParsedLayer`` with one Feature per valid polygon.

    Raises:
        GeoJsonParseError: If the content is not JSON, is not a GeoJSON
            object, or holds no usable polygon.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            msg = f"{source_filename!r} is not UTF-8 text: {exc}"
            raise GeoJsonParseError(msg) from exc

    logger.info("Parsing GeoJSON | file=%s | size=%d", source_filename, len(content))

    if not content.strip():
        msg = f"GeoJSON file {source_filename!r} is empty"
        raise GeoJsonParseError(msg)

    try:
        document = json.loads(content)
    except json.JSONDecodeError as exc:
        msg = f"{source_filename!r} is not valid JSON: {exc}"
        raise GeoJsonParseError(msg) from exc

    features: list[Feature] = []
    for idx, (geometry, properties) in enumerate(_iter_features(document, source_filename)):
        features.extend(_features_from_geometry(geometry, properties, source_filename, idx))

    if not features:
        msg = f"No valid polygon features found in {source_filename!r}"
        raise GeoJsonParseError(msg)

    logger.info(
        "Parsed %d polygon feature(s) from %s",
        len(features),
        source_filename,
    )
    return ParsedLayer(source_file=source_filename, features=features)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _iter_features(
    document: Any, source_filename: str
) -> list[tuple[dict[str, Any] | None, dict[str, Any]]]:
    """Return ``(geometry, properties)`` pairs for every feature in *document*."""
    if not isinstance(document, dict):
        msg = f"{source_filename!r} is not a GeoJSON object"
        raise GeoJsonParseError(msg)

    doc_type = document.get("type")
    if doc_type == "FeatureCollection":
        raw_features = document.get("features")
        if not isinstance(raw_features, list):
            msg = f"{source_filename!r}: FeatureCollection.features must be a list"
            raise GeoJsonParseError(msg)
        return [_feature_parts(f) for f in raw_features if isinstance(f, dict)]
    if doc_type == "Feature":
        return [_feature_parts(document)]
    if doc_type in _GEOMETRY_TYPES:
        return [(document, {})]

    msg = f"{source_filename!r}: unsupported GeoJSON type {doc_type!r}"
    raise GeoJsonParseError(msg)


def _feature_parts(feature: dict[str, Any]) -> tuple[dict[str, Any] | None, dict[str, Any]]:
    geometry = feature.get("geometry")
    properties = feature.get("properties")
    return (
        geometry if isinstance(geometry, dict) else None,
        properties if isinstance(properties, dict) else {},
    )


def _polygon_rings(geometry: dict[str, Any], feature_name: str) -> list[list[Any]]:
    """Return the ring lists of every polygon in *geometry*.

    Raises:
        GeometryValidationError: If shapely cannot read the geometry.
    """
    from shapely.geometry import mapping, shape

    if geometry.get("type") not in {"Polygon", "MultiPolygon", "GeometryCollection"}:
        return []

    try:
        geom = shape(geometry)
    except (ValueError, TypeError, AttributeError, IndexError, KeyError) as exc:
        msg = f"Cannot read geometry of feature '{feature_name}': {exc}"
        raise GeometryValidationError(msg) from exc

    if geom.is_empty:
        return []

    if geom.geom_type == "Polygon":
        parts = [geom]
    elif geom.geom_type == "MultiPolygon":
        parts = list(geom.geoms)
    elif geom.geom_type == "GeometryCollection":
        parts = [g for g in geom.geoms if g.geom_type == "Polygon" and not g.is_empty]
    else:
        return []

    return [list(mapping(part)["coordinates"]) for part in parts]


def _features_from_geometry(
    geometry: dict[str, Any] | None,
    properties: dict[str, Any],
    source_filename: str,
    feature_index: int,
) -> list[Feature]:
    name = str(properties.get("name", "") or properties.get("Name", "") or "")
    description = str(properties.get("description", "") or "")
    display_name = name or f"Feature {feature_index}"

    if geometry is None:
        return []

    try:
        polygons = _polygon_rings(geometry, display_name)
    except GeometryValidationError as exc:
        logger.warning(
            "Skipping invalid feature '%s' in %s: %s",
            display_name,
            source_filename,
            exc,
        )
        return []

    metadata = {
        str(k): str(v)
        for k, v in properties.items()
        if k not in {"name", "Name", "description"} and v is not None
    }

    features: list[Feature] = []
    for sub_idx, rings in enumerate(polygons):
        part_name = f"{display_name} (part {sub_idx})" if len(polygons) > 1 else display_name
        try:
            exterior = coords_to_tuples(rings[0]) if rings else []
            interior = [coords_to_tuples(ring) for ring in rings[1:]]
            parts = validate_polygon(exterior, interior, part_name)
        except GeometryValidationError as exc:
            logger.warning(
                "Skipping invalid feature '%s' in %s: %s",
                part_name,
                source_filename,
                exc,
            )
            continue

        features.extend(
            Feature(
                name=name,
                description=description,
                exterior_coords=ring,
                interior_coords=holes,
                metadata=metadata,
                source_file=source_filename,
                feature_index=feature_index,
            )
            for ring, holes in parts
        )
    return features

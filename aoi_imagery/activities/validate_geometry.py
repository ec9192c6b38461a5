"""Polygon validation shared by the KML and GeoJSON parsers.

Responsibilities:
- Normalise raw coordinate arrays to ``(lon, lat)`` tuples
- Coordinate bounds checking (WGS 84)
- Polygon ring structure validation (closure, vertex count)
- Shapely geometry validity checks and repair

Parsers call these per feature and skip features that fail, so one bad
polygon in an upload does not discard the rest.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aoi_imagery.core.exceptions import ValidationError

if TYPE_CHECKING:
    from shapely.geometry import Polygon as ShapelyPolygon
    from shapely.geometry.base import BaseGeometry

logger = logging.getLogger("aoi_imagery.activities.validate_geometry")

# WGS 84 coordinate bounds
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# One polygon as (exterior ring, interior rings), lon/lat order.
PolygonRings = tuple[list[tuple[float, float]], list[list[tuple[float, float]]]]

# Minimum vertices for a valid polygon (3 distinct + closing = 4)
MIN_POLYGON_VERTICES = 4


class GeometryValidationError(ValidationError):
    """Raised when a parsed polygon is structurally unusable."""

    default_stage = "validate_geometry"
    default_code = "GEOMETRY_VALIDATION_FAILED"


class InvalidCoordinateError(GeometryValidationError):
    """Raised when coordinates are outside valid WGS 84 bounds."""

    default_code = "COORDINATE_INVALID"


# ---------------------------------------------------------------------------
# Coordinate normalisation
# ---------------------------------------------------------------------------


def coords_to_tuples(raw_coords: object) -> list[tuple[float, float]]:
    """Convert GeoJSON-style coordinate arrays to ``(lon, lat)`` tuples.

    Drops altitude (third element) if present.

    Raises:
        GeometryValidationError: If any coordinate element is malformed.
    """
    if not isinstance(raw_coords, list | tuple):
        return []
    coords: list[tuple[float, float]] = []
    for idx, c in enumerate(raw_coords):
        if not isinstance(c, list | tuple) or len(c) < 2:
            msg = f"Malformed coordinate at index {idx}: expected [lon, lat], got {c!r}"
            raise GeometryValidationError(msg)
        try:
            coords.append((float(c[0]), float(c[1])))
        except (TypeError, ValueError) as exc:
            msg = (
                f"Malformed coordinate at index {idx}: cannot convert to float "
                f"(lon={c[0]!r}, lat={c[1]!r})"
            )
            raise GeometryValidationError(msg) from exc
    return coords


# ---------------------------------------------------------------------------
# Coordinate validation
# ---------------------------------------------------------------------------


def validate_coordinates(coords: list[tuple[float, float]], feature_name: str) -> None:
    """Validate that all coordinates are within WGS 84 bounds.

    Raises:
        InvalidCoordinateError: If any coordinate is out of bounds.
    """
    for lon, lat in coords:
        if not (MIN_LONGITUDE <= lon <= MAX_LONGITUDE):
            msg = (
                f"Longitude {lon} out of WGS 84 range [{MIN_LONGITUDE}, {MAX_LONGITUDE}] "
                f"in feature '{feature_name}'"
            )
            raise InvalidCoordinateError(msg)
        if not (MIN_LATITUDE <= lat <= MAX_LATITUDE):
            msg = (
                f"Latitude {lat} out of WGS 84 range [{MIN_LATITUDE}, {MAX_LATITUDE}] "
                f"in feature '{feature_name}'"
            )
            raise InvalidCoordinateError(msg)


# ---------------------------------------------------------------------------
# Polygon ring validation
# ---------------------------------------------------------------------------


def validate_polygon_ring(
    coords: list[tuple[float, float]], feature_name: str
) -> list[tuple[float, float]]:
    """Validate a polygon ring has enough vertices and is closed.

    Returns the (possibly auto-closed) coordinate list.

    Raises:
        GeometryValidationError: If the ring has fewer than 3 distinct points.
    """
    if len(coords) < 3:
        msg = (
            f"Polygon ring has only {len(coords)} point(s), need at least 3 "
            f"in feature '{feature_name}'"
        )
        raise GeometryValidationError(msg)

    if coords[0] != coords[-1]:
        logger.warning("Auto-closing unclosed ring in feature '%s'", feature_name)
        coords = [*coords, coords[0]]

    if len(coords) < MIN_POLYGON_VERTICES:
        msg = (
            f"Polygon ring has fewer than {MIN_POLYGON_VERTICES} vertices "
            f"(including closure) in feature '{feature_name}'"
        )
        raise GeometryValidationError(msg)

    if len(set(coords)) < 3:
        msg = f"Polygon ring has fewer than 3 distinct points in feature '{feature_name}'"
        raise GeometryValidationError(msg)

    return coords


# ---------------------------------------------------------------------------
# Shapely geometry validation
# ---------------------------------------------------------------------------


def validate_shapely_geometry(
    exterior: list[tuple[float, float]],
    interior: list[list[tuple[float, float]]],
    feature_name: str,
) -> list[PolygonRings]:
    """Validate geometry using shapely and return the usable polygon(s).

    A valid polygon comes back as its own rings.  An invalid one is passed
    through ``make_valid()`` and every polygonal part of the repair is
    returned, so a self-intersecting "bowtie" yields two polygons.

    Raises:
        GeometryValidationError: If the geometry is invalid and cannot be
            repaired into polygons with a non-zero area.
    """
    from shapely.geometry import Polygon
    from shapely.validation import make_valid

    try:
        poly = Polygon(exterior, interior)
    except (ValueError, TypeError) as exc:
        msg = f"Cannot create polygon for feature '{feature_name}': {exc}"
        raise GeometryValidationError(msg) from exc

    if poly.is_valid:
        if poly.area == 0:
            msg = f"Zero-area polygon in feature '{feature_name}'"
            raise GeometryValidationError(msg)
        return [(exterior, interior)]

    logger.warning(
        "Invalid geometry in feature '%s', attempting make_valid()",
        feature_name,
    )
    repaired = make_valid(poly)
    parts = [p for p in _polygon_parts(repaired) if p.area > 0]
    if not parts:
        msg = (
            f"Geometry became {repaired.geom_type} without area after make_valid() "
            f"for feature '{feature_name}'"
        )
        raise GeometryValidationError(msg)

    logger.info(
        "Geometry repaired | feature=%s | parts=%d | area=%.6f",
        feature_name,
        len(parts),
        sum(p.area for p in parts),
    )
    return [_rings_of(p) for p in parts]


def validate_polygon(
    exterior: list[tuple[float, float]],
    interior: list[list[tuple[float, float]]],
    feature_name: str,
) -> list[PolygonRings]:
    """Run every check on one polygon and return its usable part(s).

    The result holds one ``(exterior, interior)`` pair, with rings
    auto-closed, unless shapely had to split an invalid polygon.

    Raises:
        GeometryValidationError: If any check fails.
    """
    if not exterior:
        msg = f"Feature '{feature_name}' has a polygon with no exterior coordinates"
        raise GeometryValidationError(msg)

    validate_coordinates(exterior, feature_name)
    for hole_ring in interior:
        validate_coordinates(hole_ring, f"{feature_name} (hole)")

    exterior = validate_polygon_ring(exterior, feature_name)
    interior = [validate_polygon_ring(ring, f"{feature_name} (hole)") for ring in interior]

    return validate_shapely_geometry(exterior, interior, feature_name)


def _polygon_parts(geom: BaseGeometry) -> list[ShapelyPolygon]:
    """Polygons inside *geom*; lines and points left by ``make_valid`` are dropped."""
    if geom.geom_type == "Polygon":
        return [geom]
    if geom.geom_type in ("MultiPolygon", "GeometryCollection"):
        return [p for member in geom.geoms for p in _polygon_parts(member)]
    return []


def _rings_of(poly: ShapelyPolygon) -> PolygonRings:
    exterior = [(float(c[0]), float(c[1])) for c in poly.exterior.coords]
    interior = [[(float(c[0]), float(c[1])) for c in ring.coords] for ring in poly.interiors]
    return exterior, interior

"""Geometry bounds reduction.

Computes axis-aligned bounding boxes from polygon rings, unions
intermediate boxes, and computes geodesic polygon area.

The reducer is a single left-to-right fold seeded at ``(+inf, +inf)`` /
``(-inf, -inf)``: pure, deterministic, O(n), and independent of the order
of the input coordinates.  Output boxes are in GeoJSON order; use
``to_latlng_bounds`` to hand them to the map widget.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from aoi_imagery.core.exceptions import ValidationError
from aoi_imagery.models.geometry import BoundingBox, LatLng

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aoi_imagery.models.geometry import Geometry

# Square metres per hectare (explicit unit conversion)
SQ_METRES_PER_HECTARE = 10_000.0

# Minimum coordinates for an area computation
MIN_COORDS_FOR_POLYGON = 3


class InvalidGeometryError(ValidationError):
    """Raised when a ring is empty or contains a malformed coordinate."""

    default_stage = "compute_bounds"
    default_code = "INVALID_GEOMETRY"


# ---------------------------------------------------------------------------
# Bounding box
# ---------------------------------------------------------------------------


def compute_bounds(ring: Iterable[Any]) -> BoundingBox:
    """Compute the bounding box of a ring of ``(lon, lat)`` pairs.

    Args:
        ring: Sequence of ``(lon, lat)`` pairs (extra elements such as
            altitude are ignored).

    Returns:
        The tightest ``BoundingBox`` covering every coordinate.

    Raises:
        InvalidGeometryError: If the ring is empty or a coordinate is
            not a numeric, finite ``(lon, lat)`` pair.
    """
    min_lon = min_lat = math.inf
    max_lon = max_lat = -math.inf
    count = 0

    for idx, coord in enumerate(ring):
        lon, lat = _coordinate(coord, idx)
        min_lon = min(min_lon, lon)
        min_lat = min(min_lat, lat)
        max_lon = max(max_lon, lon)
        max_lat = max(max_lat, lat)
        count += 1

    if count == 0:
        msg = "Cannot compute bounds of an empty ring"
        raise InvalidGeometryError(msg)

    return BoundingBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)


def union_bounds(boxes: Iterable[BoundingBox]) -> BoundingBox:
    """Combine boxes by successive pairwise ``extend`` in the given order.

    Raises:
        InvalidGeometryError: If *boxes* is empty.
    """
    result: BoundingBox | None = None
    for box in boxes:
        result = box if result is None else result.extend(box)
    if result is None:
        msg = "Cannot union an empty sequence of bounds"
        raise InvalidGeometryError(msg)
    return result


def geometry_bounds(geometry: Geometry) -> BoundingBox:
    """Bounds over the exterior ring of every polygon in *geometry*.

    Raises:
        InvalidGeometryError: If the geometry has no rings.
    """
    exteriors = [polygon[0] for polygon in geometry.polygons if polygon]
    return union_bounds(compute_bounds(ring) for ring in exteriors)


def to_latlng_bounds(bounds: BoundingBox) -> tuple[LatLng, LatLng]:
    """Convert to map display order ``((south, west), (north, east))``."""
    return bounds.to_latlng_bounds()


# ---------------------------------------------------------------------------
# Geodesic area
# ---------------------------------------------------------------------------


def compute_geodesic_area_ha(
    exterior_coords: list[tuple[float, float]],
    interior_rings: list[list[tuple[float, float]]] | None = None,
) -> float:
    """Compute geodesic polygon area in hectares.

    Uses pyproj.Geod on the WGS 84 ellipsoid for accurate area
    regardless of latitude. Returns absolute area (winding-order agnostic).
    Rings with fewer than three coordinates contribute no area.

    Args:
        exterior_coords: Exterior ring as list of ``(lon, lat)`` tuples.
        interior_rings: Interior rings (holes) to subtract.

    Returns:
        Area in hectares.
    """
    if len(exterior_coords) < MIN_COORDS_FOR_POLYGON:
        return 0.0

    from pyproj import Geod

    geod = Geod(ellps="WGS84")

    ext_lons = [c[0] for c in exterior_coords]
    ext_lats = [c[1] for c in exterior_coords]

    # Geod.polygon_area_perimeter returns (area_m2, perimeter_m)
    area_m2, _perimeter = geod.polygon_area_perimeter(ext_lons, ext_lats)
    total_area = abs(area_m2)

    if interior_rings:
        for ring in interior_rings:
            if len(ring) >= MIN_COORDS_FOR_POLYGON:
                hole_lons = [c[0] for c in ring]
                hole_lats = [c[1] for c in ring]
                hole_area_m2, _ = geod.polygon_area_perimeter(hole_lons, hole_lats)
                total_area -= abs(hole_area_m2)

    return max(total_area, 0.0) / SQ_METRES_PER_HECTARE


def geometry_area_ha(geometry: Geometry) -> float:
    """Total geodesic area of every polygon in *geometry*, in hectares."""
    total = 0.0
    for polygon in geometry.polygons:
        if not polygon:
            continue
        total += compute_geodesic_area_ha(polygon[0], interior_rings=polygon[1:])
    return total


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coordinate(coord: Any, idx: int) -> tuple[float, float]:
    """Validate and unpack one ``(lon, lat)`` pair.

    Raises:
        InvalidGeometryError: If the coordinate is malformed or non-finite.
    """
    if not isinstance(coord, list | tuple) or len(coord) < 2:
        msg = f"Malformed coordinate at index {idx}: expected [lon, lat], got {coord!r}"
        raise InvalidGeometryError(msg)
    try:
        lon = float(coord[0])
        lat = float(coord[1])
    except (TypeError, ValueError) as exc:
        msg = f"Malformed coordinate at index {idx}: cannot convert {coord!r} to float"
        raise InvalidGeometryError(msg) from exc
    if not (math.isfinite(lon) and math.isfinite(lat)):
        msg = f"Non-finite coordinate at index {idx}: {coord!r}"
        raise InvalidGeometryError(msg)
    return lon, lat

"""Geometry and bounding-box models.

Two coordinate orders meet in this package:

- **GeoJSON order** ``(lon, lat)``: used for every ring, geometry and
  request payload, and for ``BoundingBox`` fields.
- **Map display order** ``(lat, lon)``: what the map widget expects
  for overlay bounds (``[[south, west], [north, east]]``).

The only place the two meet is ``BoundingBox.to_latlng_bounds()`` and
its inverse ``BoundingBox.from_latlng_bounds()``.  Nothing else in the
package swaps axes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aoi_imagery.models.imagery import ModelValidationError

Coordinate = tuple[float, float]
"""A ``(lon, lat)`` pair in WGS 84 degrees."""

Ring = list[Coordinate]

LatLng = tuple[float, float]
"""A ``(lat, lon)`` pair in map display order."""

POLYGON = "Polygon"
MULTI_POLYGON = "MultiPolygon"
SUPPORTED_GEOMETRY_TYPES = frozenset({POLYGON, MULTI_POLYGON})


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned bounding box in WGS 84.

    Fields are stored in GeoJSON order.  Invariant:
    ``min_lon <= max_lon`` and ``min_lat <= max_lat``.

    Attributes:
        min_lon: Western edge (degrees).
        min_lat: Southern edge (degrees).
        max_lon: Eastern edge (degrees).
        max_lat: Northern edge (degrees).
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def __post_init__(self) -> None:
        if self.min_lon > self.max_lon:
            raise ModelValidationError(
                "BoundingBox", "min_lon", self.min_lon, f"must be <= max_lon ({self.max_lon})"
            )
        if self.min_lat > self.max_lat:
            raise ModelValidationError(
                "BoundingBox", "min_lat", self.min_lat, f"must be <= max_lat ({self.max_lat})"
            )

    @property
    def southwest(self) -> LatLng:
        """South-west corner as ``(lat, lon)``."""
        return (self.min_lat, self.min_lon)

    @property
    def northeast(self) -> LatLng:
        """North-east corner as ``(lat, lon)``."""
        return (self.max_lat, self.max_lon)

    def to_latlng_bounds(self) -> tuple[LatLng, LatLng]:
        """Return ``((south, west), (north, east))`` for the map widget."""
        return (self.southwest, self.northeast)

    @classmethod
    def from_latlng_bounds(cls, bounds: Any) -> BoundingBox:
        """Build from map-widget bounds ``[[south, west], [north, east]]``."""
        (south, west), (north, east) = bounds
        return cls(
            min_lon=float(west),
            min_lat=float(south),
            max_lon=float(east),
            max_lat=float(north),
        )

    def to_bbox(self) -> tuple[float, float, float, float]:
        """Return ``(min_lon, min_lat, max_lon, max_lat)`` (GeoJSON bbox order)."""
        return (self.min_lon, self.min_lat, self.max_lon, self.max_lat)

    @classmethod
    def from_bbox(cls, bbox: Any) -> BoundingBox:
        """Build from a GeoJSON-order bbox, e.g. shapely's ``geom.bounds``."""
        min_lon, min_lat, max_lon, max_lat = bbox
        return cls(float(min_lon), float(min_lat), float(max_lon), float(max_lat))

    def extend(self, other: BoundingBox) -> BoundingBox:
        """Return the smallest box covering both ``self`` and *other*."""
        return BoundingBox(
            min_lon=min(self.min_lon, other.min_lon),
            min_lat=min(self.min_lat, other.min_lat),
            max_lon=max(self.max_lon, other.max_lon),
            max_lat=max(self.max_lat, other.max_lat),
        )

    def contains(self, lon: float, lat: float) -> bool:
        """Whether ``(lon, lat)`` lies inside the box (edges inclusive)."""
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat


@dataclass(frozen=True, slots=True)
class Geometry:
    """A polygonal AOI geometry, tagged with its GeoJSON type.

    Attributes:
        type: ``"Polygon"`` or ``"MultiPolygon"``.
        coordinates: GeoJSON-nested coordinates.  For a Polygon a list of
            rings; for a MultiPolygon a list of polygons.  Every position
            is a ``(lon, lat)`` tuple.
    """

    type: str
    coordinates: list[Any] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.type not in SUPPORTED_GEOMETRY_TYPES:
            raise ModelValidationError(
                "Geometry",
                "type",
                self.type,
                f"must be one of {sorted(SUPPORTED_GEOMETRY_TYPES)}",
            )

    @property
    def polygons(self) -> list[list[Ring]]:
        """Every polygon as a list of rings (exterior first)."""
        if self.type == POLYGON:
            return [self.coordinates] if self.coordinates else []
        return list(self.coordinates)

    @property
    def outer_ring(self) -> Ring:
        """Exterior ring of the first polygon, or ``[]`` if there is none."""
        for polygon in self.polygons:
            if polygon:
                return polygon[0]
        return []

    @property
    def ring_count(self) -> int:
        """Total number of rings across all polygons."""
        return sum(len(polygon) for polygon in self.polygons)

    @classmethod
    def from_polygons(cls, polygons: list[list[Ring]]) -> Geometry:
        """Build a Polygon (one input) or MultiPolygon (several)."""
        if len(polygons) == 1:
            return cls(type=POLYGON, coordinates=polygons[0])
        return cls(type=MULTI_POLYGON, coordinates=polygons)

    @classmethod
    def from_geojson(cls, data: Any) -> Geometry:
        """Build from a GeoJSON geometry object.

        Altitude values are dropped.

        Raises:
            ModelValidationError: If the object is not a Polygon or
                MultiPolygon, or a position is malformed.
        """
        if not isinstance(data, dict):
            raise ModelValidationError(
                "Geometry", "geojson", data, "must be a GeoJSON geometry object"
            )
        geom_type = str(data.get("type", ""))
        raw = data.get("coordinates")
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise ModelValidationError("Geometry", "coordinates", raw, "must be a list")

        if geom_type == POLYGON:
            return cls(type=POLYGON, coordinates=_rings_from_raw(raw))
        if geom_type == MULTI_POLYGON:
            return cls(
                type=MULTI_POLYGON,
                coordinates=[_rings_from_raw(polygon) for polygon in raw],
            )
        raise ModelValidationError(
            "Geometry",
            "type",
            geom_type,
            f"must be one of {sorted(SUPPORTED_GEOMETRY_TYPES)}",
        )

    def to_geojson(self) -> dict[str, Any]:
        """Serialise to a GeoJSON geometry object (``[lon, lat]`` lists)."""
        if self.type == POLYGON:
            coordinates: list[Any] = [_ring_to_lists(ring) for ring in self.coordinates]
        else:
            coordinates = [
                [_ring_to_lists(ring) for ring in polygon] for polygon in self.coordinates
            ]
        return {"type": self.type, "coordinates": coordinates}


# ---------------------------------------------------------------------------
# Helpers (module-private)
# ---------------------------------------------------------------------------


def _rings_from_raw(raw: Any) -> list[Ring]:
    if not isinstance(raw, list):
        raise ModelValidationError("Geometry", "coordinates", raw, "polygon must be a list of rings")
    rings: list[Ring] = []
    for ring in raw:
        if not isinstance(ring, list):
            raise ModelValidationError("Geometry", "coordinates", ring, "ring must be a list")
        rings.append([_position(p) for p in ring])
    return rings


def _position(raw: Any) -> Coordinate:
    if not isinstance(raw, list | tuple) or len(raw) < 2:
        raise ModelValidationError(
            "Geometry", "coordinates", raw, "position must be [lon, lat(, alt)]"
        )
    try:
        return (float(raw[0]), float(raw[1]))
    except (TypeError, ValueError) as exc:
        raise ModelValidationError(
            "Geometry", "coordinates", raw, "position values must be numeric"
        ) from exc


def _ring_to_lists(ring: Ring) -> list[list[float]]:
    return [[lon, lat] for lon, lat in ring]

"""Data model for the current Area of Interest (AOI).

An AOI is the normalised output of every AOI input channel (hand-drawn
shape, single uploaded file, archive): one geometry plus the bounding
box covering it.  Only one AOI is current at a time; a new draw or
upload replaces it wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass

from aoi_imagery.models.geometry import BoundingBox, Geometry


@dataclass(frozen=True, slots=True)
class AOI:
    """A normalised Area of Interest.

    All coordinates are WGS 84 (EPSG:4326), GeoJSON order.

    Attributes:
        geometry: Polygon or MultiPolygon to request imagery for.
        bounds: Bounding box covering ``geometry`` (or, for archives,
            the union of every recognised member's bounds).
        source: Input channel (``"draw"``, ``"file"`` or ``"archive"``).
        name: Display name (uploaded filename or feature name).
        area_ha: Geodesic area in hectares.
        area_warning: Non-empty string if area exceeds the configured threshold.
    """

    geometry: Geometry
    bounds: BoundingBox
    source: str = ""
    name: str = ""
    area_ha: float = 0.0
    area_warning: str = ""

    def to_dict(self) -> dict[str, object]:
        """Serialise to a JSON-compatible dict."""
        return {
            "geometry": self.geometry.to_geojson(),
            "bounds": list(self.bounds.to_bbox()),
            "source": self.source,
            "name": self.name,
            "area_ha": self.area_ha,
            "area_warning": self.area_warning,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> AOI:
        """Deserialise from a dict produced by ``to_dict``.

        Raises:
            TypeError: If field values have unexpected types.
            ModelValidationError: If the geometry or bounds are invalid.
        """
        geometry_raw = data.get("geometry")
        if not isinstance(geometry_raw, dict):
            msg = f"geometry must be a dict, got {type(geometry_raw).__name__}"
            raise TypeError(msg)

        bounds_raw = data.get("bounds")
        if not isinstance(bounds_raw, list):
            msg = f"bounds must be a list, got {type(bounds_raw).__name__}"
            raise TypeError(msg)

        return cls(
            geometry=Geometry.from_geojson(geometry_raw),
            bounds=BoundingBox.from_bbox(bounds_raw),
            source=str(data.get("source", "")),
            name=str(data.get("name", "")),
            area_ha=float(data.get("area_ha", 0.0)),  # type: ignore[arg-type]
            area_warning=str(data.get("area_warning", "")),
        )

"""Data model for parsed AOI file features.

A Feature represents a single polygon extracted from a KML or GeoJSON
file, along with any associated metadata (Placemark name, ExtendedData,
GeoJSON properties).  A ParsedLayer is the set of features one file
(or one archive member) produced: the "layer" a format parser returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aoi_imagery.models.geometry import BoundingBox, Geometry


@dataclass(frozen=True, slots=True)
class Feature:
    """A single polygon feature extracted from an uploaded file.

    Attributes:
        name: Placemark / feature name (e.g. ``"Block A - Fuji Apple"``).
        description: Placemark description text.
        exterior_coords: Exterior ring coordinates as list of ``(lon, lat)`` tuples.
        interior_coords: Interior ring(s) (holes) as list of lists of ``(lon, lat)`` tuples.
        crs: Coordinate reference system. Always ``"EPSG:4326"``.
        metadata: Key-value pairs from ExtendedData or GeoJSON properties.
        source_file: Name of the file this feature was extracted from.
        feature_index: Zero-based index of this feature within the source file.
    """

    name: str
    description: str = ""
    exterior_coords: list[tuple[float, float]] = field(default_factory=list)
    interior_coords: list[list[tuple[float, float]]] = field(default_factory=list)
    crs: str = "EPSG:4326"
    metadata: dict[str, str] = field(default_factory=dict)
    source_file: str = ""
    feature_index: int = 0

    def to_dict(self) -> dict[str, object]:
        """Serialise to a plain dict."""
        return {
            "name": self.name,
            "description": self.description,
            "exterior_coords": [list(c) for c in self.exterior_coords],
            "interior_coords": [[list(c) for c in ring] for ring in self.interior_coords],
            "crs": self.crs,
            "metadata": dict(self.metadata),
            "source_file": self.source_file,
            "feature_index": self.feature_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Feature:
        """Deserialise from a plain dict.

        Missing fields are defaulted (for example, an absent ``name``
        becomes ``""``) rather than raising an error.

        Raises:
            TypeError: If field values have unexpected types.
        """
        exterior_raw = data.get("exterior_coords", [])
        if not isinstance(exterior_raw, list):
            msg = f"exterior_coords must be a list, got {type(exterior_raw).__name__}"
            raise TypeError(msg)
        exterior = [tuple(c) for c in exterior_raw]  # type: ignore[arg-type]

        interior_raw = data.get("interior_coords", [])
        if not isinstance(interior_raw, list):
            msg = f"interior_coords must be a list, got {type(interior_raw).__name__}"
            raise TypeError(msg)
        interior = [[tuple(c) for c in ring] for ring in interior_raw]  # type: ignore[arg-type]

        metadata_raw = data.get("metadata", {})
        if not isinstance(metadata_raw, dict):
            msg = f"metadata must be a dict, got {type(metadata_raw).__name__}"
            raise TypeError(msg)

        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            exterior_coords=exterior,  # type: ignore[arg-type]
            interior_coords=interior,  # type: ignore[arg-type]
            crs=str(data.get("crs", "EPSG:4326")),
            metadata={str(k): str(v) for k, v in metadata_raw.items()},
            source_file=str(data.get("source_file", "")),
            feature_index=int(data.get("feature_index", 0)),  # type: ignore[arg-type]
        )

    @property
    def vertex_count(self) -> int:
        """Total number of vertices in the exterior ring."""
        return len(self.exterior_coords)

    @property
    def has_holes(self) -> bool:
        """Whether this feature has interior boundary (hole) rings."""
        return len(self.interior_coords) > 0

    @property
    def rings(self) -> list[list[tuple[float, float]]]:
        """Exterior ring followed by interior rings."""
        return [self.exterior_coords, *self.interior_coords]

    @property
    def bounds(self) -> BoundingBox:
        """Bounding box of the exterior ring."""
        from aoi_imagery.activities.compute_bounds import compute_bounds

        return compute_bounds(self.exterior_coords)

    def to_geojson(self) -> dict[str, Any]:
        """Serialise to a GeoJSON Feature."""
        properties: dict[str, Any] = {"name": self.name, "description": self.description}
        properties.update(self.metadata)
        return {
            "type": "Feature",
            "geometry": Geometry.from_polygons([self.rings]).to_geojson(),
            "properties": properties,
        }


@dataclass(frozen=True, slots=True)
class ParsedLayer:
    """Every polygon feature one file produced.

    Attributes:
        source_file: Name of the parsed file or archive member.
        features: Extracted features, in document order.
    """

    source_file: str
    features: list[Feature] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    @property
    def bounds(self) -> BoundingBox:
        """Union of every feature's bounds, in document order.

        Raises:
            InvalidGeometryError: If the layer has no features.
        """
        from aoi_imagery.activities.compute_bounds import union_bounds

        return union_bounds(f.bounds for f in self.features)

    @property
    def geometry(self) -> Geometry:
        """A Polygon for a single feature, otherwise a MultiPolygon."""
        return Geometry.from_polygons([f.rings for f in self.features])

    def to_geojson(self) -> dict[str, Any]:
        """Serialise to a GeoJSON FeatureCollection."""
        return {
            "type": "FeatureCollection",
            "features": [f.to_geojson() for f in self.features],
        }

"""Fiona-based KML parser (primary).

Parses KML content using fiona (OGR KML driver).  OGR exposes every KML
Folder as its own layer, so all layers are read.  Handles Polygon,
MultiPolygon and GeometryCollection geometry types with graceful
degradation on individual feature validation failures.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Any

from aoi_imagery.activities.parse_kml._normalization import metadata_from_properties
from aoi_imagery.activities.parse_kml._validation import KmlValidationError
from aoi_imagery.activities.validate_geometry import (
    GeometryValidationError,
    coords_to_tuples,
    validate_polygon,
)
from aoi_imagery.models.feature import Feature

logger = logging.getLogger("aoi_imagery.activities.parse_kml")


def parse_with_fiona(content: bytes, source_filename: str) -> list[Feature]:
    """Parse KML content using fiona (OGR KML driver).

    OGR reads from the filesystem, so the content is written to a
    temporary file first.  Only polygonal geometries are extracted.

    Raises:
        KmlValidationError: If a layer declares a CRS other than WGS 84.
        Exception: Any fiona/OGR failure propagates so the caller can
            fall back to the lxml parser.
    """
    import fiona

    features: list[Feature] = []

    with tempfile.TemporaryDirectory(prefix="aoi-kml-") as tmp_dir:
        kml_path = Path(tmp_dir) / "upload.kml"
        kml_path.write_bytes(content)

        feature_index = 0
        for layer_name in fiona.listlayers(str(kml_path)):
            with fiona.open(str(kml_path), layer=layer_name, driver="KML") as collection:
                crs_str = _extract_crs_from_fiona(collection)

                for record in collection:
                    data = _as_mapping(record)
                    geom = _as_mapping(data.get("geometry"))
                    props = dict(_as_mapping(data.get("properties")))
                    features.extend(
                        _features_from_geometry(
                            geom, props, source_filename, feature_index, crs_str
                        )
                    )
                    feature_index += 1

    return features


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_mapping(obj: Any) -> dict[str, Any]:
    """Return a plain dict for a fiona record/geometry (or ``{}`` for ``None``)."""
    if obj is None:
        return {}
    geo = getattr(obj, "__geo_interface__", None)
    if isinstance(geo, dict):
        return geo
    return dict(obj)


def _features_from_geometry(
    geom: dict[str, Any],
    props: dict[str, object],
    source_filename: str,
    feature_index: int,
    crs: str,
) -> list[Feature]:
    """Split one OGR geometry into polygon Features."""
    geom_type = geom.get("type", "")

    if geom_type == "Polygon":
        polygons = [geom.get("coordinates", [])]
    elif geom_type == "MultiPolygon":
        polygons = list(geom.get("coordinates", []))
    elif geom_type == "GeometryCollection":
        polygons = [
            sub.get("coordinates", [])
            for sub in (_as_mapping(g) for g in geom.get("geometries", []))
            if sub.get("type") == "Polygon"
        ]
    else:
        return []

    sub_index_needed = len(polygons) > 1
    features: list[Feature] = []
    for sub_idx, coords in enumerate(polygons):
        features.extend(
            _try_fiona_polygon(
                coords,
                props,
                source_filename,
                feature_index,
                crs,
                sub_index=sub_idx if sub_index_needed else None,
            )
        )
    return features


def _try_fiona_polygon(
    coords_list: Any,
    props: dict[str, object],
    source_filename: str,
    feature_index: int,
    crs: str,
    *,
    sub_index: int | None = None,
) -> list[Feature]:
    """Convert one polygon's rings, returning ``[]`` on validation failure."""
    placemark_name = str(props.get("Name", "") or props.get("name", "") or "")
    description = str(props.get("Description", "") or props.get("description", "") or "")

    display_name = placemark_name or f"Feature {feature_index}"
    if sub_index is not None:
        display_name = f"{display_name} (part {sub_index})"

    if not isinstance(coords_list, list | tuple) or not coords_list:
        return []

    try:
        exterior = coords_to_tuples(coords_list[0])
        interior = [coords_to_tuples(ring) for ring in coords_list[1:]]
        parts = validate_polygon(exterior, interior, display_name)
    except GeometryValidationError as exc:
        logger.warning(
            "Skipping invalid feature '%s' in %s: %s",
            display_name,
            source_filename,
            exc,
        )
        return []

    metadata = metadata_from_properties(props)
    return [
        Feature(
            name=placemark_name,
            description=description,
            exterior_coords=ring,
            interior_coords=holes,
            crs=crs,
            metadata=metadata,
            source_file=source_filename,
            feature_index=feature_index,
        )
        for ring, holes in parts
    ]


def _extract_crs_from_fiona(collection: object) -> str:
    """Extract CRS string from a fiona collection.

    Raises:
        KmlValidationError: If the CRS is not WGS 84.
    """
    crs = getattr(collection, "crs", None)
    if crs is None:
        return "EPSG:4326"

    epsg = getattr(crs, "to_epsg", lambda: None)()

    if epsg is not None and epsg != 4326:
        msg = f"Unexpected CRS: EPSG:{epsg} (expected EPSG:4326 for KML)"
        raise KmlValidationError(msg)

    return "EPSG:4326"

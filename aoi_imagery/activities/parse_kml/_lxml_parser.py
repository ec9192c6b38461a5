"""lxml-based KML parser (fallback).

Walks the element tree of an already-validated KML document.  Handles
cases where fiona's OGR KML driver fails, such as SchemaData typed
metadata, nested Folder hierarchies, or a GDAL build without KML
support.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aoi_imagery.activities.parse_kml._normalization import (
    metadata_from_extended_data,
    parse_coordinates_text,
)
from aoi_imagery.activities.parse_kml._validation import KML_NAMESPACE
from aoi_imagery.activities.validate_geometry import (
    GeometryValidationError,
    validate_polygon,
)
from aoi_imagery.models.feature import Feature

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("aoi_imagery.activities.parse_kml")


def parse_with_lxml(root: _Element, source_filename: str) -> list[Feature]:
    """Extract polygon features from a parsed KML root element.

    Every ``<Polygon>`` under a ``<Placemark>`` (including inside
    ``<MultiGeometry>``) becomes one Feature.  Invalid polygons are
    logged and skipped.
    """
    ns = {"kml": KML_NAMESPACE}
    # Older or un-namespaced documents match any namespace instead.
    if not root.tag.startswith(f"{{{KML_NAMESPACE}}}"):
        return _parse_placemarks(root, source_filename, ns, prefix="{*}")
    return _parse_placemarks(root, source_filename, ns, prefix="kml:")


def _parse_placemarks(
    root: _Element, source_filename: str, ns: dict[str, str], *, prefix: str
) -> list[Feature]:
    features: list[Feature] = []
    placemarks: list[_Element] = root.findall(f".//{prefix}Placemark", ns)

    for idx, pm in enumerate(placemarks):
        polygons = pm.findall(f".//{prefix}Polygon", ns)
        if not polygons:
            continue

        name_elem = pm.find(f"{prefix}name", ns)
        desc_elem = pm.find(f"{prefix}description", ns)
        placemark_name = (name_elem.text or "").strip() if name_elem is not None else ""
        description = (desc_elem.text or "").strip() if desc_elem is not None else ""
        metadata = metadata_from_extended_data(pm, ns, prefix)

        for poly_idx, polygon in enumerate(polygons):
            display_name = placemark_name or f"Feature {idx}"
            if len(polygons) > 1:
                display_name = f"{display_name} (part {poly_idx})"

            exterior, interior = _polygon_rings(polygon, ns, prefix)
            try:
                parts = validate_polygon(exterior, interior, display_name)
            except GeometryValidationError as exc:
                logger.warning(
                    "Skipping invalid feature '%s' in %s: %s",
                    display_name,
                    source_filename,
                    exc,
                )
                continue

            features.extend(
                Feature(
                    name=placemark_name,
                    description=description,
                    exterior_coords=ring,
                    interior_coords=holes,
                    metadata=metadata,
                    source_file=source_filename,
                    feature_index=idx,
                )
                for ring, holes in parts
            )

    return features


def _polygon_rings(
    polygon_elem: _Element, ns: dict[str, str], prefix: str
) -> tuple[list[tuple[float, float]], list[list[tuple[float, float]]]]:
    """Return exterior + interior coordinates of a KML Polygon element."""
    outer = polygon_elem.find(
        f"{prefix}outerBoundaryIs/{prefix}LinearRing/{prefix}coordinates", ns
    )
    exterior: list[tuple[float, float]] = []
    if outer is not None and outer.text:
        exterior = parse_coordinates_text(outer.text.strip())

    interior: list[list[tuple[float, float]]] = []
    for inner in polygon_elem.findall(
        f"{prefix}innerBoundaryIs/{prefix}LinearRing/{prefix}coordinates", ns
    ):
        if inner.text:
            ring = parse_coordinates_text(inner.text.strip())
            if ring:
                interior.append(ring)

    return exterior, interior

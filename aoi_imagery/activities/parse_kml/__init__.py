"""KML parsing: composable pipeline.

Parses KML content and extracts polygon features with geometry and
metadata into a ``ParsedLayer``.  Uses fiona (OGR KML driver) as the
primary parser, with an lxml fallback for edge cases where OGR fails.

The parsing pipeline is split into focused stages:
- **_validation**: XML well-formedness and KML namespace check
- **_normalization**: metadata extraction (fiona + lxml), coordinate text
- **_fiona_parser**: primary parser using fiona/OGR
- **_lxml_parser**: fallback parser using the lxml element tree

Per-polygon checks (WGS 84 bounds, ring closure, shapely validity) are
shared with the GeoJSON parser via ``activities.validate_geometry``.

Supported KML structures:
- Single and multiple polygon Placemarks
- MultiGeometry containing multiple Polygons
- Nested Folder hierarchies
- Inner boundaries (holes)
- ExtendedData/Data and Schema/SchemaData metadata
- Degenerate geometries: auto-close, make_valid, partial failure
"""

from __future__ import annotations

import logging

from aoi_imagery.activities.parse_kml._fiona_parser import parse_with_fiona
from aoi_imagery.activities.parse_kml._lxml_parser import parse_with_lxml
from aoi_imagery.activities.parse_kml._validation import (
    KML_NAMESPACE,
    KmlParseError,
    KmlValidationError,
    validate_xml,
)
from aoi_imagery.models.feature import ParsedLayer

logger = logging.getLogger("aoi_imagery.activities.parse_kml")

__all__ = [
    "KML_NAMESPACE",
    "KmlParseError",
    "KmlValidationError",
    "parse_kml",
    "parse_with_fiona",
    "parse_with_lxml",
    "validate_xml",
]


def parse_kml(content: bytes | str, *, source_filename: str = "upload.kml") -> ParsedLayer:
    """Parse KML content and extract polygon features.

    Attempts fiona first, falls back to lxml.  Validates XML structure,
    KML namespace, geometry and coordinate bounds.

    Args:
        content: Raw KML document (bytes or text).
        source_filename: Original filename, recorded on every feature.

    Returns:
        A ``ParsedLayer`` with one Feature per valid polygon.

    Raises:
        KmlParseError: If the content is not valid XML or KML, or holds
            no usable polygon.
        KmlValidationError: If the document declares a non-WGS 84 CRS.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    logger.info("Parsing KML | file=%s | size=%d", source_filename, len(content))

    root = validate_xml(content, source_filename)

    # Our own validation errors propagate; only fiona/OGR failures fall back.
    try:
        features = parse_with_fiona(content, source_filename)
    except KmlParseError:
        raise
    except Exception as fiona_err:
        logger.warning(
            "Fiona parse failed for %s, trying lxml fallback: %s",
            source_filename,
            fiona_err,
        )
        features = parse_with_lxml(root, source_filename)
    else:
        if not features:
            logger.info("Fiona found no polygons in %s, trying lxml", source_filename)
            features = parse_with_lxml(root, source_filename)

    if not features:
        msg = f"No valid polygon features found in {source_filename!r}"
        raise KmlParseError(msg)

    logger.info(
        "Parsed %d polygon feature(s) from %s",
        len(features),
        source_filename,
    )
    return ParsedLayer(source_file=source_filename, features=features)

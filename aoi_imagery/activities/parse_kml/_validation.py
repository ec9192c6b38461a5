"""KML document checks and error types.

Responsibilities:
- KML-specific exception hierarchy
- XML well-formedness and KML namespace validation of raw content

Per-polygon checks (coordinates, ring closure, shapely validity) live in
``aoi_imagery.activities.validate_geometry`` and are shared with the
GeoJSON parser.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aoi_imagery.core.exceptions import ValidationError

if TYPE_CHECKING:
    from lxml.etree import _Element

# KML 2.2 namespace
KML_NAMESPACE = "http://www.opengis.net/kml/2.2"


class KmlParseError(ValidationError):
    """Raised when KML content cannot be parsed."""

    default_stage = "parse_kml"
    default_code = "KML_PARSE_FAILED"


class KmlValidationError(KmlParseError):
    """Raised when KML content is well-formed but contains invalid data."""

    default_code = "KML_VALIDATION_FAILED"


def validate_xml(content: bytes, source_filename: str) -> _Element:
    """Validate that *content* is well-formed XML with a KML root.

    Returns:
        The parsed root element.

    Raises:
        KmlParseError: If the content is empty, not valid XML, or not KML.
    """
    from lxml import etree  # type: ignore[attr-defined]

    if not content.strip():
        msg = f"KML file {source_filename!r} is empty"
        raise KmlParseError(msg)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as exc:
        msg = f"{source_filename!r} is not valid XML: {exc}"
        raise KmlParseError(msg) from exc

    tag = root.tag
    if f"{{{KML_NAMESPACE}}}" not in tag and "kml" not in tag.lower():
        msg = f"{source_filename!r} is not a KML file; root element is <{tag}>"
        raise KmlParseError(msg)

    return root

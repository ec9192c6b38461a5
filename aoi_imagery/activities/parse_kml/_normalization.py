"""Placemark attribute and coordinate-text normalisation.

Both KML parsers reduce a placemark's attributes to a flat
``dict[str, str]`` stored as ``Feature.metadata``; this module holds
the two readers (OGR properties, ExtendedData elements) and the
coordinate tokenizer used by the lxml parser.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lxml.etree import _Element

# OGR KML driver fields that are not user attributes.  Name and
# description are carried on the Feature itself.
OGR_STANDARD_FIELDS = frozenset(
    {
        "name",
        "description",
        "timestamp",
        "begin",
        "end",
        "altitudemode",
        "tessellate",
        "extrude",
        "visibility",
        "draworder",
        "icon",
        "snippet",
    }
)


def metadata_from_properties(props: dict[str, object]) -> dict[str, str]:
    """User attributes of an OGR record, as stripped strings."""
    metadata: dict[str, str] = {}
    for key, value in props.items():
        if value is None or key.lower() in OGR_STANDARD_FIELDS:
            continue
        text = str(value).strip()
        if text:
            metadata[key] = text
    return metadata


def metadata_from_extended_data(
    placemark: _Element, ns: dict[str, str], prefix: str = "kml:"
) -> dict[str, str]:
    """Read ``<ExtendedData>`` of one Placemark.

    Untyped ``Data/value`` pairs are read first, then typed
    ``SchemaData/SimpleData`` fields; a SimpleData field overrides a
    Data pair of the same name.
    """
    metadata: dict[str, str] = {}
    extended = f"{prefix}ExtendedData"

    for data in placemark.findall(f"{extended}/{prefix}Data", ns):
        key = data.get("name", "")
        value = data.find(f"{prefix}value", ns)
        if key and value is not None and value.text:
            metadata[key] = value.text.strip()

    for field in placemark.findall(f"{extended}/{prefix}SchemaData/{prefix}SimpleData", ns):
        key = field.get("name", "")
        if key and field.text:
            metadata[key] = field.text.strip()

    return metadata


def parse_coordinates_text(text: str) -> list[tuple[float, float]]:
    """Split a ``<coordinates>`` body into ``(lon, lat)`` tuples.

    Altitude is dropped; tokens without two numeric values are skipped.
    """
    coords: list[tuple[float, float]] = []
    for token in text.split():
        lon, _, rest = token.partition(",")
        lat = rest.split(",", 1)[0]
        try:
            coords.append((float(lon), float(lat)))
        except ValueError:
            continue
    return coords

"""AOI input channels.

Every way a user can define an Area of Interest ends up here and
produces one ``AOI`` (geometry + bounding box):

- **Draw**: the map draw widget hands over a finished shape as GeoJSON.
  Bounds come from the outer ring of that shape.
- **Single file**: a KML or GeoJSON upload, dispatched on its MIME type.
  Bounds come from the parsed layer.
- **Archive**: a ZIP (or KMZ) upload.  Every ``.kml``, ``.geojson`` and
  ``.json`` member is parsed concurrently; other members are ignored.
  Bounds are the union of every member's bounds, in encounter order.

A failing channel raises and leaves the caller's current AOI untouched;
nothing here holds state.
"""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from aoi_imagery.activities.compute_bounds import (
    InvalidGeometryError,
    compute_bounds,
    geometry_area_ha,
    union_bounds,
)
from aoi_imagery.activities.parse_geojson import parse_geojson
from aoi_imagery.activities.parse_kml import parse_kml
from aoi_imagery.core.constants import (
    DEFAULT_AOI_MAX_AREA_HA,
    EXTENSION_MIME_TYPES,
    GENERIC_MIME_TYPES,
    GEOJSON_EXTENSIONS,
    GEOJSON_MIME_TYPES,
    KML_EXTENSIONS,
    KML_MIME_TYPE,
    SOURCE_ARCHIVE,
    SOURCE_DRAW,
    SOURCE_FILE,
    ZIP_MIME_TYPES,
)
from aoi_imagery.core.exceptions import ContractError, ValidationError
from aoi_imagery.models.aoi import AOI
from aoi_imagery.models.geometry import SUPPORTED_GEOMETRY_TYPES, BoundingBox, Geometry
from aoi_imagery.models.imagery import ModelValidationError
from aoi_imagery.models.payloads import DrawCreatedEvent, ShapeFeature, validate_payload

if TYPE_CHECKING:
    from aoi_imagery.models.feature import ParsedLayer

logger = logging.getLogger("aoi_imagery.activities.load_aoi")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class EmptyShapeError(ValidationError):
    """Raised when a drawn shape carries no polygon ring."""

    default_stage = "load_aoi"
    default_code = "EMPTY_SHAPE"


class UnsupportedFormatError(ValidationError):
    """Raised when an upload's type is not KML, GeoJSON or ZIP."""

    default_stage = "load_aoi"
    default_code = "UNSUPPORTED_FORMAT"


class NoRecognizedEntriesError(ValidationError):
    """Raised when an archive holds no usable KML/GeoJSON member."""

    default_stage = "load_aoi"
    default_code = "NO_RECOGNIZED_ENTRIES"


# ---------------------------------------------------------------------------
# Upload envelope
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Upload:
    """A file handed over by the upload control.

    Attributes:
        filename: Name of the file as selected by the user.
        content_type: MIME type reported by the browser (may be empty).
        content: Raw file bytes.
    """

    filename: str
    content_type: str
    content: bytes

    @property
    def resolved_content_type(self) -> str:
        """Declared MIME type, or one inferred from the extension."""
        return resolve_content_type(self.content_type, self.filename)


def resolve_content_type(content_type: str, filename: str) -> str:
    """Return *content_type*, inferring it from *filename* when generic.

    Browsers report an empty type (or ``application/octet-stream``) for
    extensions they do not know, which is common for ``.kml`` and
    ``.geojson``.
    """
    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared not in GENERIC_MIME_TYPES:
        return declared
    suffix = PurePosixPath(filename or "").suffix.lower()
    return EXTENSION_MIME_TYPES.get(suffix, declared)


# ---------------------------------------------------------------------------
# AOI construction
# ---------------------------------------------------------------------------


def build_aoi(
    geometry: Geometry,
    bounds: BoundingBox,
    *,
    source: str,
    name: str = "",
    area_threshold_ha: float = DEFAULT_AOI_MAX_AREA_HA,
) -> AOI:
    """Assemble an AOI, computing its geodesic area.

    Args:
        geometry: Polygon or MultiPolygon for the imagery request.
        bounds: Bounding box the image will be displayed at.
        source: Input channel (``draw`` / ``file`` / ``archive``).
        name: Display name.
        area_threshold_ha: Area above which a warning is attached.

    Returns:
        The new AOI.
    """
    area_ha = geometry_area_ha(geometry)

    area_warning = ""
    if area_ha > area_threshold_ha:
        area_warning = (
            f"Area {area_ha:.1f} ha exceeds threshold of "
            f"{area_threshold_ha:.0f} ha for AOI '{name or source}'"
        )
        logger.warning(area_warning)

    logger.info(
        "AOI prepared | source=%s | name=%s | type=%s | area=%.2f ha | "
        "bbox=[%.4f, %.4f, %.4f, %.4f]",
        source,
        name,
        geometry.type,
        area_ha,
        *bounds.to_bbox(),
    )

    return AOI(
        geometry=geometry,
        bounds=bounds,
        source=source,
        name=name,
        area_ha=area_ha,
        area_warning=area_warning,
    )


# ---------------------------------------------------------------------------
# Draw channel
# ---------------------------------------------------------------------------


def aoi_from_draw(
    event: Any,
    *,
    area_threshold_ha: float = DEFAULT_AOI_MAX_AREA_HA,
) -> AOI:
    """Build an AOI from the draw widget's finished shape.

    Accepts the widget's created event (``{"layer": <Feature>}``), a
    GeoJSON Feature, or a bare geometry.  Bounds are computed over the
    outer ring of the first polygon.

    Raises:
        ContractError: If the event payload is not a recognisable object.
        EmptyShapeError: If the shape has no polygon ring.
        InvalidGeometryError: If a ring coordinate is malformed.
    """
    geometry_raw = _extract_drawn_geometry(event)

    geom_type = geometry_raw.get("type")
    if geom_type not in SUPPORTED_GEOMETRY_TYPES:
        msg = f"Drawn shape of type {geom_type!r} has no polygon ring"
        raise EmptyShapeError(msg)

    try:
        geometry = Geometry.from_geojson(geometry_raw)
    except ModelValidationError as exc:
        raise InvalidGeometryError(str(exc)) from exc

    if geometry.ring_count == 0:
        msg = "Drawn shape has no rings"
        raise EmptyShapeError(msg)

    bounds = compute_bounds(geometry.outer_ring)
    return build_aoi(
        geometry,
        bounds,
        source=SOURCE_DRAW,
        name=f"Drawn {geom_type}",
        area_threshold_ha=area_threshold_ha,
    )


def _extract_drawn_geometry(event: Any) -> dict[str, Any]:
    """Unwrap the created event / Feature down to its GeoJSON geometry."""
    if isinstance(event, dict) and "layer" in event:
        validate_payload(event, DrawCreatedEvent, activity="load_aoi")
        event = event["layer"]

    # Bare geometry object
    if isinstance(event, dict) and ("coordinates" in event or "geometries" in event):
        return event

    validate_payload(event, ShapeFeature, activity="load_aoi")
    geometry = event["geometry"]
    if geometry is None:
        msg = "Drawn feature has no geometry"
        raise EmptyShapeError(msg)
    if not isinstance(geometry, dict):
        msg = f"load_aoi: feature geometry must be an object, got {type(geometry).__name__}"
        raise ContractError(msg, stage="load_aoi", code="PAYLOAD_NOT_OBJECT")
    return geometry


# ---------------------------------------------------------------------------
# Single-file channel
# ---------------------------------------------------------------------------


def aoi_from_file(
    content: bytes,
    content_type: str,
    filename: str = "",
    *,
    area_threshold_ha: float = DEFAULT_AOI_MAX_AREA_HA,
) -> AOI:
    """Build an AOI from one KML or GeoJSON upload.

    Raises:
        UnsupportedFormatError: If the type is neither KML nor GeoJSON.
        KmlParseError: If a KML upload cannot be parsed or has no polygons.
        GeoJsonParseError: If a GeoJSON upload cannot be parsed or has no
            polygons.
    """
    resolved = resolve_content_type(content_type, filename)
    logger.info(
        "Loading file | file=%s | declared_type=%s | type=%s | size=%d",
        filename,
        content_type,
        resolved,
        len(content),
    )

    layer = _parse_single(content, resolved, filename)
    return build_aoi(
        layer.geometry,
        layer.bounds,
        source=SOURCE_FILE,
        name=filename,
        area_threshold_ha=area_threshold_ha,
    )


def _parse_single(content: bytes, content_type: str, filename: str) -> ParsedLayer:
    if content_type == KML_MIME_TYPE:
        return parse_kml(content, source_filename=filename or "upload.kml")
    if content_type in GEOJSON_MIME_TYPES:
        return parse_geojson(content, source_filename=filename or "upload.geojson")
    if content_type in ZIP_MIME_TYPES:
        msg = f"{filename!r} is an archive; load it through the archive channel"
        raise UnsupportedFormatError(msg)
    msg = f"Unsupported file type {content_type!r} for {filename!r}"
    raise UnsupportedFormatError(msg)


# ---------------------------------------------------------------------------
# Archive channel
# ---------------------------------------------------------------------------


async def aoi_from_archive(
    content: bytes,
    filename: str = "",
    *,
    area_threshold_ha: float = DEFAULT_AOI_MAX_AREA_HA,
) -> AOI:
    """Build an AOI from every KML/GeoJSON member of a ZIP archive.

    Members are parsed concurrently in worker threads.  A recognised
    member that fails to parse is skipped with a warning.

    Raises:
        UnsupportedFormatError: If *content* is not a readable ZIP archive.
        NoRecognizedEntriesError: If no member yields a polygon.
    """
    entries = _read_recognized_entries(content, filename)
    if not entries:
        msg = f"Archive {filename!r} contains no .kml, .geojson or .json entries"
        raise NoRecognizedEntriesError(msg)

    results = await asyncio.gather(
        *(asyncio.to_thread(_parse_entry, name, data) for name, data in entries),
        return_exceptions=True,
    )

    layers: list[ParsedLayer] = []
    for (name, _data), result in zip(entries, results, strict=True):
        if isinstance(result, ValidationError):
            logger.warning(
                "Skipping archive entry | archive=%s | entry=%s | code=%s | error=%s",
                filename,
                name,
                result.code,
                result,
            )
            continue
        if isinstance(result, BaseException):
            raise result
        layers.append(result)

    if not layers:
        msg = f"Archive {filename!r} contains no parsable polygon entries"
        raise NoRecognizedEntriesError(msg)

    bounds = union_bounds(layer.bounds for layer in layers)
    geometry = Geometry.from_polygons([f.rings for layer in layers for f in layer.features])

    logger.info(
        "Archive parsed | archive=%s | entries=%d | parsed=%d",
        filename,
        len(entries),
        len(layers),
    )
    return build_aoi(
        geometry,
        bounds,
        source=SOURCE_ARCHIVE,
        name=filename,
        area_threshold_ha=area_threshold_ha,
    )


def _read_recognized_entries(content: bytes, filename: str) -> list[tuple[str, bytes]]:
    """Return ``(name, bytes)`` for every recognised member, in archive order."""
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            entries: list[tuple[str, bytes]] = []
            for info in archive.infolist():
                if info.is_dir():
                    continue
                if not info.filename.lower().endswith(KML_EXTENSIONS + GEOJSON_EXTENSIONS):
                    logger.debug("Ignoring archive entry | entry=%s", info.filename)
                    continue
                entries.append((info.filename, archive.read(info)))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError) as exc:
        msg = f"{filename!r} is not a readable ZIP archive: {exc}"
        raise UnsupportedFormatError(msg) from exc
    return entries


def _parse_entry(name: str, data: bytes) -> ParsedLayer:
    if name.lower().endswith(KML_EXTENSIONS):
        return parse_kml(data, source_filename=name)
    return parse_geojson(data, source_filename=name)


# ---------------------------------------------------------------------------
# Upload dispatch
# ---------------------------------------------------------------------------


async def load_upload(
    upload: Upload,
    *,
    area_threshold_ha: float = DEFAULT_AOI_MAX_AREA_HA,
) -> AOI:
    """Route an upload to the archive or single-file channel by type.

    Raises:
        UnsupportedFormatError: If the type is not KML, GeoJSON or ZIP.
    """
    content_type = upload.resolved_content_type
    if content_type in ZIP_MIME_TYPES:
        return await aoi_from_archive(
            upload.content, upload.filename, area_threshold_ha=area_threshold_ha
        )
    return await asyncio.to_thread(
        aoi_from_file,
        upload.content,
        content_type,
        upload.filename,
        area_threshold_ha=area_threshold_ha,
    )

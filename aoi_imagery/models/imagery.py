"""Typed models for the imagery request layer.

Defines the data structures exchanged between the session, the request
builder and the provider adapters:

- ``TimeRange``: Inclusive acquisition window passed through to the provider
- ``ProcessRequest``: A fully-specified Process API request
- ``ImageryResult``: Rendered image bytes plus the bounds to display them at
- ``RenderedImage``: Provider response body and its reported MIME type

Design notes:
- All models are frozen dataclasses.
- Date bounds are forwarded literally; no end-of-day adjustment is made.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from aoi_imagery.core.constants import (
    CRS84_URI,
    DEFAULT_DATA_COLLECTION,
    DEFAULT_IMAGE_CONTENT_TYPE,
    OUTPUT_HEIGHT_PX,
    OUTPUT_WIDTH_PX,
)
from aoi_imagery.core.exceptions import AOIImageryError

if TYPE_CHECKING:
    from aoi_imagery.models.geometry import BoundingBox, Geometry


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, AOIImageryError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        AOIImageryError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Helpers (module-private)
# ---------------------------------------------------------------------------


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _format_utc(value: datetime) -> str:
    """ISO 8601 UTC with a ``Z`` suffix, e.g. ``2023-10-01T00:00:00Z``."""
    return _as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TimeRange:
    """Acquisition window for an imagery request.

    Naive datetimes are interpreted as UTC.

    Attributes:
        start: Earliest acquisition time (``from``).
        end: Latest acquisition time (``to``).
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if _as_utc(self.start) > _as_utc(self.end):
            raise ModelValidationError(
                "TimeRange", "start", self.start, f"must be <= end ({self.end})"
            )

    @classmethod
    def from_iso(cls, start: str, end: str) -> TimeRange:
        """Build from ISO 8601 strings (``"2023-10-01"`` or full timestamps)."""
        try:
            return cls(
                start=datetime.fromisoformat(start.replace("Z", "+00:00")),
                end=datetime.fromisoformat(end.replace("Z", "+00:00")),
            )
        except ValueError as exc:
            if isinstance(exc, ModelValidationError):
                raise
            raise ModelValidationError(
                "TimeRange", "iso", (start, end), f"not ISO 8601: {exc}"
            ) from exc

    def to_filter(self) -> dict[str, str]:
        """Return the Process API ``timeRange`` object."""
        return {"from": _format_utc(self.start), "to": _format_utc(self.end)}


DEFAULT_TIME_RANGE = TimeRange(
    start=datetime(2023, 10, 1, tzinfo=UTC),
    end=datetime(2023, 10, 31, tzinfo=UTC),
)


@dataclass(frozen=True, slots=True)
class ProcessRequest:
    """A fully-specified Process API request.

    Attributes:
        geometry: AOI geometry (GeoJSON order).
        time_range: Acquisition window.
        evalscript: Source text of the selected evalscript.
        data_collection: Provider data collection identifier.
        width: Output raster width in pixels.
        height: Output raster height in pixels.
    """

    geometry: Geometry
    time_range: TimeRange
    evalscript: str
    data_collection: str = DEFAULT_DATA_COLLECTION
    width: int = OUTPUT_WIDTH_PX
    height: int = OUTPUT_HEIGHT_PX

    def __post_init__(self) -> None:
        if not self.evalscript or not self.evalscript.strip():
            raise ModelValidationError(
                "ProcessRequest", "evalscript", self.evalscript, "must not be empty"
            )
        if self.width <= 0 or self.height <= 0:
            raise ModelValidationError(
                "ProcessRequest", "size", (self.width, self.height), "must be > 0 pixels"
            )

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body for ``POST /api/v1/process``."""
        return {
            "input": {
                "bounds": {
                    "geometry": self.geometry.to_geojson(),
                    "properties": {"crs": CRS84_URI},
                },
                "data": [
                    {
                        "type": self.data_collection,
                        "dataFilter": {"timeRange": self.time_range.to_filter()},
                    }
                ],
            },
            # Top level beside "input", where the Process API documents it; not under "input".
            "output": {"width": self.width, "height": self.height},
            "evalscript": self.evalscript,
        }


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RenderedImage:
    """What a provider's ``render`` call returns.

    Attributes:
        content: Response body, untouched.
        content_type: ``Content-Type`` of the response, parameters dropped.
    """

    content: bytes
    content_type: str = DEFAULT_IMAGE_CONTENT_TYPE


@dataclass(frozen=True, slots=True)
class ImageryResult:
    """A rendered image and the bounds it must be overlaid at.

    Attributes:
        content: Raw image bytes as returned by the provider.
        bounds: AOI bounds captured when the request was dispatched.
        content_type: MIME type reported by the provider.
        sequence: Sequence number of the fetch that produced this result.
    """

    content: bytes
    bounds: BoundingBox
    content_type: str = DEFAULT_IMAGE_CONTENT_TYPE
    sequence: int = 0

    @property
    def size_bytes(self) -> int:
        """Size of the image payload in bytes."""
        return len(self.content)

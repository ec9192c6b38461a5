"""Data models and schemas.

Defines the data structures used throughout the package:
- BoundingBox / Geometry: AOI geometry and its bounds (with the explicit
  GeoJSON ↔ map axis-order conversion)
- Feature / ParsedLayer: Polygons extracted from uploaded files
- AOI: The normalised current area of interest
- EvalscriptEntry / EvalscriptCatalog: Static evalscript catalog
- TimeRange / ProcessRequest / RenderedImage / ImageryResult: Imagery
  request and result
"""

from aoi_imagery.models.aoi import AOI
from aoi_imagery.models.evalscript import (
    CatalogError,
    EvalscriptCatalog,
    EvalscriptEntry,
    load_catalog,
)
from aoi_imagery.models.feature import Feature, ParsedLayer
from aoi_imagery.models.geometry import BoundingBox, Geometry
from aoi_imagery.models.imagery import (
    DEFAULT_TIME_RANGE,
    ImageryResult,
    ModelValidationError,
    ProcessRequest,
    RenderedImage,
    TimeRange,
)

__all__ = [
    "AOI",
    "DEFAULT_TIME_RANGE",
    "BoundingBox",
    "CatalogError",
    "EvalscriptCatalog",
    "EvalscriptEntry",
    "Feature",
    "Geometry",
    "ImageryResult",
    "ModelValidationError",
    "ParsedLayer",
    "ProcessRequest",
    "RenderedImage",
    "TimeRange",
    "load_catalog",
]

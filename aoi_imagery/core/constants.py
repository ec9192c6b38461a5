"""Shared constants: single source of truth.

Centralises endpoint URLs, MIME types, archive member extensions and the
fixed parameters of every imagery request.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# External endpoints
# ---------------------------------------------------------------------------

DEFAULT_PROCESS_URL: str = "https://services.sentinel-hub.com/api/v1/process"
"""Sentinel Hub Process API endpoint."""

DEFAULT_TOKEN_URL: str = "https://backend.fitclimate.com/auth/get-token"
"""Credential endpoint returning ``{"token": "..."}``."""

DEFAULT_OAUTH_TOKEN_URL: str = (
    "https://services.sentinel-hub.com/auth/realms/main/protocol/openid-connect/token"
)
"""Sentinel Hub OAuth2 token endpoint (client-credentials grant)."""

# ---------------------------------------------------------------------------
# Process API request
# ---------------------------------------------------------------------------

CRS84_URI: str = "http://www.opengis.net/def/crs/OGC/1.3/CRS84"
"""CRS declaration sent with every AOI geometry (lon/lat order)."""

DEFAULT_DATA_COLLECTION: str = "sentinel-2-l2a"

OUTPUT_WIDTH_PX: int = 512
OUTPUT_HEIGHT_PX: int = 512

DEFAULT_IMAGE_CONTENT_TYPE: str = "image/png"
"""Assumed when the provider response carries no ``Content-Type``."""

DEFAULT_HTTP_TIMEOUT_S: float = 60.0

DEFAULT_AOI_MAX_AREA_HA: float = 250_000.0
"""Area above which an AOI carries a size warning (hectares)."""

# ---------------------------------------------------------------------------
# Upload MIME types
# ---------------------------------------------------------------------------

KML_MIME_TYPE: str = "application/vnd.google-earth.kml+xml"
KMZ_MIME_TYPE: str = "application/vnd.google-earth.kmz"
GEOJSON_MIME_TYPES: frozenset[str] = frozenset({"application/json", "application/geo+json"})
ZIP_MIME_TYPES: frozenset[str] = frozenset(
    {"application/zip", "application/x-zip-compressed", KMZ_MIME_TYPE}
)

# Types a browser reports when it does not recognise the file.
GENERIC_MIME_TYPES: frozenset[str] = frozenset({"", "application/octet-stream"})

# Extension → MIME type, used only when the declared type is generic.
EXTENSION_MIME_TYPES: dict[str, str] = {
    ".kml": KML_MIME_TYPE,
    ".geojson": "application/geo+json",
    ".json": "application/json",
    ".zip": "application/zip",
    ".kmz": KMZ_MIME_TYPE,
}

# ---------------------------------------------------------------------------
# Archive members
# ---------------------------------------------------------------------------

KML_EXTENSIONS: tuple[str, ...] = (".kml",)
GEOJSON_EXTENSIONS: tuple[str, ...] = (".geojson", ".json")

# ---------------------------------------------------------------------------
# AOI sources
# ---------------------------------------------------------------------------

SOURCE_DRAW = "draw"
SOURCE_FILE = "file"
SOURCE_ARCHIVE = "archive"

"""Shared pytest fixtures for the AOI imagery test suite."""

from __future__ import annotations

import io
import json
import zipfile
from pathlib import Path

import httpx
import pytest

from aoi_imagery.core.config import AppConfig
from aoi_imagery.models.aoi import AOI
from aoi_imagery.models.geometry import BoundingBox, Geometry

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


# ---------------------------------------------------------------------------
# Sample file fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def single_polygon_kml(data_dir: Path) -> bytes:
    """One Placemark, lon 10.00-10.01, lat 45.00-45.01."""
    return (data_dir / "single_polygon.kml").read_bytes()


@pytest.fixture()
def multipolygon_kml(data_dir: Path) -> bytes:
    """One MultiGeometry Placemark with two polygons."""
    return (data_dir / "multipolygon.kml").read_bytes()


@pytest.fixture()
def polygon_with_hole_kml(data_dir: Path) -> bytes:
    return (data_dir / "polygon_with_hole.kml").read_bytes()


@pytest.fixture()
def nested_folders_kml(data_dir: Path) -> bytes:
    return (data_dir / "nested_folders.kml").read_bytes()


@pytest.fixture()
def invalid_coordinates_kml(data_dir: Path) -> bytes:
    """One valid Placemark and one with latitude 95."""
    return (data_dir / "invalid_coordinates.kml").read_bytes()


@pytest.fixture()
def no_polygons_kml(data_dir: Path) -> bytes:
    return (data_dir / "no_polygons.kml").read_bytes()


@pytest.fixture()
def not_xml_kml(data_dir: Path) -> bytes:
    return (data_dir / "not_xml.kml").read_bytes()


@pytest.fixture()
def fields_geojson(data_dir: Path) -> bytes:
    """Two polygon Features (lon 20-23, lat 40-43) and one Point."""
    return (data_dir / "fields.geojson").read_bytes()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def square_ring(lon: float, lat: float, size: float = 0.01) -> list[list[float]]:
    """Closed square ring with its south-west corner at ``(lon, lat)``."""
    return [
        [lon, lat],
        [lon + size, lat],
        [lon + size, lat + size],
        [lon, lat + size],
        [lon, lat],
    ]


def polygon_geojson(lon: float, lat: float, size: float = 0.01) -> bytes:
    """A one-Feature FeatureCollection encoded as UTF-8 JSON."""
    doc = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "square"},
                "geometry": {"type": "Polygon", "coordinates": [square_ring(lon, lat, size)]},
            }
        ],
    }
    return json.dumps(doc).encode("utf-8")


def make_zip(entries: list[tuple[str, bytes]]) -> bytes:
    """Build an in-memory ZIP archive with *entries* in order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries:
            archive.writestr(name, data)
    return buffer.getvalue()


def make_aoi(south: float, west: float, north: float, east: float) -> AOI:
    """Rectangle AOI spanning the given map-order corners."""
    ring = [(west, south), (east, south), (east, north), (west, north), (west, south)]
    return AOI(
        geometry=Geometry(type="Polygon", coordinates=[ring]),
        bounds=BoundingBox.from_latlng_bounds([[south, west], [north, east]]),
        source="draw",
        name="rectangle",
    )


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


class RecordingTransport(httpx.MockTransport):
    """``httpx.MockTransport`` that keeps every request it served."""

    def __init__(self, handler) -> None:  # type: ignore[no-untyped-def]
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def call_count(self) -> int:
        return len(self.requests)


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def default_handler(request: httpx.Request) -> httpx.Response:
    """Token endpoint answers a token; process endpoint answers a PNG."""
    if request.method == "GET":
        return httpx.Response(200, json={"token": "tok-123"})
    if request.url.path.endswith("/token"):
        return httpx.Response(200, json={"access_token": "oauth-abc", "expires_in": 3600})
    return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport(default_handler)


@pytest.fixture()
def config() -> AppConfig:
    return AppConfig()


# ---------------------------------------------------------------------------
# Builder fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def ring_factory():  # type: ignore[no-untyped-def]
    return square_ring


@pytest.fixture()
def geojson_factory():  # type: ignore[no-untyped-def]
    return polygon_geojson


@pytest.fixture()
def zip_factory():  # type: ignore[no-untyped-def]
    return make_zip


@pytest.fixture()
def aoi_factory():  # type: ignore[no-untyped-def]
    return make_aoi


@pytest.fixture()
def transport_factory():  # type: ignore[no-untyped-def]
    return RecordingTransport


@pytest.fixture()
def png_bytes() -> bytes:
    return PNG_BYTES

"""Tests for the unified exception taxonomy.

Validates:
- AOIImageryError hierarchy and structured attributes
- Category classification (validation, transient, permanent, contract)
- ``to_error_dict()`` produces stable payload keys
- Every error kind maps to its category and code
"""

from __future__ import annotations

from typing import ClassVar

import pytest

from aoi_imagery.activities.compute_bounds import InvalidGeometryError
from aoi_imagery.activities.fetch_imagery import NoAOIError
from aoi_imagery.activities.load_aoi import (
    EmptyShapeError,
    NoRecognizedEntriesError,
    UnsupportedFormatError,
)
from aoi_imagery.activities.parse_geojson import GeoJsonParseError
from aoi_imagery.activities.parse_kml import KmlParseError, KmlValidationError
from aoi_imagery.activities.validate_geometry import InvalidCoordinateError
from aoi_imagery.core.config import ConfigValidationError
from aoi_imagery.core.exceptions import (
    AOIImageryError,
    ContractError,
    NetworkError,
    PermanentError,
    TransientError,
    ValidationError,
)
from aoi_imagery.models.evalscript import CatalogError
from aoi_imagery.models.imagery import ModelValidationError
from aoi_imagery.providers.base import AuthUnavailableError, ProviderError, UpstreamError


class TestAOIImageryErrorBase:
    """AOIImageryError base class behavior."""

    def test_default_attributes(self) -> None:
        err = AOIImageryError("boom")
        assert err.message == "boom"
        assert err.stage == ""
        assert err.code == ""
        assert err.retryable is False
        assert err.correlation_id == ""
        assert str(err) == "boom"

    def test_explicit_attributes(self) -> None:
        err = AOIImageryError(
            "boom", stage="load_aoi", code="X", retryable=True, correlation_id="abc"
        )
        assert err.stage == "load_aoi"
        assert err.code == "X"
        assert err.retryable is True
        assert err.correlation_id == "abc"

    def test_category_fallback_uses_retryable(self) -> None:
        assert AOIImageryError("x", retryable=True).category == "transient"
        assert AOIImageryError("x").category == "permanent"

    def test_error_dict_keys(self) -> None:
        payload = ValidationError("bad").to_error_dict()
        assert set(payload) == {
            "category",
            "code",
            "stage",
            "message",
            "retryable",
            "correlation_id",
        }
        assert payload["category"] == "validation"


class TestCategoryBases:
    def test_validation_never_retryable(self) -> None:
        assert ValidationError("x").retryable is False

    def test_transient_retryable_by_default(self) -> None:
        assert TransientError("x").retryable is True
        assert TransientError("x").category == "transient"

    def test_permanent(self) -> None:
        assert PermanentError("x").category == "permanent"

    def test_contract(self) -> None:
        assert ContractError("x").category == "contract"


class TestErrorKinds:
    """Every error kind carries its category and machine-readable code."""

    CASES: ClassVar[list[tuple[AOIImageryError, str, str]]] = [
        (InvalidGeometryError("x"), "validation", "INVALID_GEOMETRY"),
        (EmptyShapeError("x"), "validation", "EMPTY_SHAPE"),
        (UnsupportedFormatError("x"), "validation", "UNSUPPORTED_FORMAT"),
        (NoRecognizedEntriesError("x"), "validation", "NO_RECOGNIZED_ENTRIES"),
        (NoAOIError("x"), "validation", "NO_AOI"),
        (AuthUnavailableError("credentials", "x"), "permanent", "AUTH_UNAVAILABLE"),
        (UpstreamError("sentinel_hub", 500, "Internal Server Error"), "permanent", "UPSTREAM_ERROR"),
        (NetworkError("https://example.test", "down"), "transient", "NETWORK_ERROR"),
        (KmlParseError("x"), "validation", "KML_PARSE_FAILED"),
        (KmlValidationError("x"), "validation", "KML_VALIDATION_FAILED"),
        (InvalidCoordinateError("x"), "validation", "COORDINATE_INVALID"),
        (GeoJsonParseError("x"), "validation", "GEOJSON_PARSE_FAILED"),
        (CatalogError("x"), "contract", "CATALOG_INVALID"),
    ]

    @pytest.mark.parametrize(("error", "category", "code"), CASES)
    def test_category_and_code(self, error: AOIImageryError, category: str, code: str) -> None:
        assert isinstance(error, AOIImageryError)
        assert error.category == category
        assert error.code == code

    def test_only_network_errors_are_retryable(self) -> None:
        for error, _category, _code in self.CASES:
            assert error.retryable is isinstance(error, NetworkError)


class TestSpecificErrors:
    def test_upstream_error_carries_status(self) -> None:
        err = UpstreamError("sentinel_hub", 403, "Forbidden", detail="quota exceeded")
        assert err.status_code == 403
        assert err.status_text == "Forbidden"
        assert "403 Forbidden" in str(err)
        assert "quota exceeded" in str(err)
        payload = err.to_error_dict()
        assert payload["status_code"] == 403
        assert payload["status_text"] == "Forbidden"

    def test_provider_error_str_includes_provider(self) -> None:
        assert str(ProviderError("sentinel_hub", "nope")) == "[sentinel_hub] nope"

    def test_network_error_includes_url(self) -> None:
        err = NetworkError("https://example.test/x", "Connection refused")
        assert err.url == "https://example.test/x"
        assert "https://example.test/x" in str(err)
        assert err.stage == "transport"

    def test_model_validation_error(self) -> None:
        err = ModelValidationError("TimeRange", "start", 1, "bad")
        assert isinstance(err, ValueError)
        assert err.field_name == "start"
        assert str(err) == "TimeRange.start=1: bad"

    def test_config_validation_error(self) -> None:
        err = ConfigValidationError("HTTP_TIMEOUT_S", 0, "must be > 0")
        assert err.key == "HTTP_TIMEOUT_S"
        assert err.code == "CONFIG_VALIDATION_FAILED"

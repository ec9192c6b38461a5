"""Client configuration loaded from environment variables.

All configuration values have sensible defaults so the client works
out of the box against the public Sentinel Hub endpoints.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric
    value is out of its valid range or a required value is empty.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from aoi_imagery.core.constants import (
    DEFAULT_AOI_MAX_AREA_HA,
    DEFAULT_DATA_COLLECTION,
    DEFAULT_HTTP_TIMEOUT_S,
    DEFAULT_OAUTH_TOKEN_URL,
    DEFAULT_PROCESS_URL,
    DEFAULT_TOKEN_URL,
)
from aoi_imagery.core.exceptions import AOIImageryError


class ConfigValidationError(AOIImageryError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable client configuration.

    Loaded once at startup and handed to the session runner.

    Attributes:
        imagery_provider: Registered provider name (default ``sentinel_hub``).
        process_url: Imagery Process API endpoint.
        token_url: Credential endpoint returning a bearer token.
        oauth_token_url: OAuth2 token endpoint for client credentials.
        client_id: OAuth2 client id (empty disables client credentials).
        client_secret: OAuth2 client secret.
        data_collection: Provider data collection identifier.
        http_timeout_s: Transport timeout in seconds for every request.
        aoi_max_area_ha: Area (ha) above which a warning is attached to an AOI.
        evalscript_catalog_path: Catalog JSON override (empty = bundled).
    """

    imagery_provider: str = "sentinel_hub"
    process_url: str = DEFAULT_PROCESS_URL
    token_url: str = DEFAULT_TOKEN_URL
    oauth_token_url: str = DEFAULT_OAUTH_TOKEN_URL
    client_id: str = ""
    client_secret: str = ""
    data_collection: str = DEFAULT_DATA_COLLECTION
    http_timeout_s: float = DEFAULT_HTTP_TIMEOUT_S
    aoi_max_area_ha: float = DEFAULT_AOI_MAX_AREA_HA
    evalscript_catalog_path: str = ""

    @property
    def uses_client_credentials(self) -> bool:
        """Whether both OAuth2 client id and secret are configured."""
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``HTTP_TIMEOUT_S=abc``).
        """
        config = cls(
            imagery_provider=os.getenv("IMAGERY_PROVIDER", "sentinel_hub"),
            process_url=os.getenv("SH_PROCESS_URL", DEFAULT_PROCESS_URL),
            token_url=os.getenv("SH_TOKEN_URL", DEFAULT_TOKEN_URL),
            oauth_token_url=os.getenv("SH_OAUTH_TOKEN_URL", DEFAULT_OAUTH_TOKEN_URL),
            client_id=os.getenv("SH_CLIENT_ID", ""),
            client_secret=os.getenv("SH_CLIENT_SECRET", ""),
            data_collection=os.getenv("SH_DATA_COLLECTION", DEFAULT_DATA_COLLECTION),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_S", str(DEFAULT_HTTP_TIMEOUT_S))),
            aoi_max_area_ha=float(os.getenv("AOI_MAX_AREA_HA", str(DEFAULT_AOI_MAX_AREA_HA))),
            evalscript_catalog_path=os.getenv("EVALSCRIPT_CATALOG_PATH", ""),
        )
        _validate(config)
        return config


def _validate(config: AppConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_S",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )

    if config.aoi_max_area_ha <= 0:
        raise ConfigValidationError(
            "AOI_MAX_AREA_HA",
            config.aoi_max_area_ha,
            "must be > 0 (hectares)",
        )

    if not config.imagery_provider:
        raise ConfigValidationError(
            "IMAGERY_PROVIDER",
            config.imagery_provider,
            "must not be empty",
        )

    if not config.process_url:
        raise ConfigValidationError(
            "SH_PROCESS_URL",
            config.process_url,
            "must not be empty",
        )

    if not config.data_collection:
        raise ConfigValidationError(
            "SH_DATA_COLLECTION",
            config.data_collection,
            "must not be empty",
        )

    if bool(config.client_id) != bool(config.client_secret):
        raise ConfigValidationError(
            "SH_CLIENT_ID",
            config.client_id,
            "SH_CLIENT_ID and SH_CLIENT_SECRET must be set together",
        )

    if not config.uses_client_credentials and not config.token_url:
        raise ConfigValidationError(
            "SH_TOKEN_URL",
            config.token_url,
            "must not be empty when no client credentials are configured",
        )

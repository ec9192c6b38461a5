"""Imagery provider adapters and bearer-token sources.

Implements the provider-agnostic adapter pattern (Strategy pattern):
- ImageryProvider: Abstract base class defining the interface
- SentinelHubAdapter: Sentinel Hub Process API
- TokenProvider: pluggable source of the bearer token

The active provider is selected via configuration.
"""

from aoi_imagery.providers.base import (
    AuthUnavailableError,
    ImageryProvider,
    ProviderError,
    UpstreamError,
)
from aoi_imagery.providers.credentials import (
    ClientCredentialsTokenProvider,
    HttpTokenProvider,
    StaticTokenProvider,
    TokenProvider,
    make_token_provider,
)
from aoi_imagery.providers.factory import (
    SENTINEL_HUB,
    get_provider,
    list_providers,
    register_provider,
)

__all__ = [
    "SENTINEL_HUB",
    "AuthUnavailableError",
    "ClientCredentialsTokenProvider",
    "HttpTokenProvider",
    "ImageryProvider",
    "ProviderError",
    "StaticTokenProvider",
    "TokenProvider",
    "UpstreamError",
    "get_provider",
    "list_providers",
    "make_token_provider",
    "register_provider",
]

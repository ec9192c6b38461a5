"""ImageryProvider abstract base class.

Defines the contract that every imagery provider adapter must implement.
The request builder interacts exclusively with this interface; it never
knows which concrete provider is behind it.

A provider takes one fully-specified ``ProcessRequest`` plus a bearer
token and returns the rendered image bytes with their MIME type.
Exactly one HTTP attempt is made per call; nothing is retried.

Each concrete adapter (``SentinelHubAdapter``, test doubles, etc.)
implements ``render`` per the provider's API specifics.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from aoi_imagery.core.exceptions import AOIImageryError

if TYPE_CHECKING:
    from aoi_imagery.core.config import AppConfig
    from aoi_imagery.models.imagery import ProcessRequest, RenderedImage


class ImageryProvider(abc.ABC):
    """Abstract base class for imagery provider adapters.

    The constructor receives the ``AppConfig`` which carries the endpoint
    URL, data collection and transport timeout.

    Example usage::

        provider = get_provider("sentinel_hub", config)
        image = await provider.render(request, token)
    """

    #: Registered provider name; concrete adapters override this.
    name: str = ""

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    @property
    def config(self) -> AppConfig:
        """Return the client configuration (read-only)."""
        return self._config

    @abc.abstractmethod
    async def render(self, request: ProcessRequest, token: str) -> RenderedImage:
        """Render *request* and return the image with its MIME type.

        Args:
            request: Geometry, time range, evalscript and output size.
            token: Bearer token obtained from a ``TokenProvider``.

        Returns:
            The opaque image body and the content type the provider
            reported for it.

        Raises:
            UpstreamError: If the provider answers with a non-2xx status.
            NetworkError: If the provider cannot be reached.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(AOIImageryError):
    """Base exception for provider adapter errors.

    Attributes:
        provider: Name of the provider that raised the error.
        message: Human-readable error description.
        retryable: Whether repeating the user action may succeed.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class AuthUnavailableError(ProviderError):
    """No usable bearer token could be obtained.

    Raised by token providers when the credential endpoint answers with
    a non-2xx status, a body that is not JSON, or JSON missing the token.
    """

    default_stage = "credentials"
    default_code = "AUTH_UNAVAILABLE"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=False)


class UpstreamError(ProviderError):
    """The imagery provider answered with a non-2xx status.

    Attributes:
        status_code: HTTP status code of the response.
        status_text: HTTP reason phrase of the response.
    """

    default_code = "UPSTREAM_ERROR"

    def __init__(
        self,
        provider: str,
        status_code: int,
        status_text: str,
        detail: str = "",
    ) -> None:
        self.status_code = status_code
        self.status_text = status_text
        message = f"Provider returned {status_code} {status_text}".rstrip()
        if detail:
            message = f"{message}: {detail}"
        super().__init__(provider, message, retryable=False)

    def to_error_dict(self) -> dict[str, object]:
        """Structured payload including the upstream status."""
        payload = super().to_error_dict()
        payload["status_code"] = self.status_code
        payload["status_text"] = self.status_text
        return payload

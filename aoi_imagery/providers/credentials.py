"""Bearer-token providers.

The imagery provider needs a bearer token on every request.  Where that
token comes from is a trust boundary kept behind ``TokenProvider``:

- ``HttpTokenProvider``: ``GET`` a credential endpoint that answers
  ``{"token": "..."}`` (a backend holding the real secret).
- ``ClientCredentialsTokenProvider``: OAuth2 client-credentials grant
  against the Sentinel Hub token endpoint, cached until shortly before
  expiry.
- ``StaticTokenProvider``: a fixed token (tests, scripts).

Failure mapping is the same for every endpoint-backed provider:
transport failure → ``NetworkError``; non-2xx, non-JSON body or missing
token field → ``AuthUnavailableError``.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from aoi_imagery.core.constants import DEFAULT_HTTP_TIMEOUT_S
from aoi_imagery.core.exceptions import ContractError, NetworkError
from aoi_imagery.models.payloads import OAuthTokenResponse, TokenResponse, validate_payload
from aoi_imagery.providers.base import AuthUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable

    from aoi_imagery.core.config import AppConfig

logger = logging.getLogger("aoi_imagery.providers.credentials")

CREDENTIALS = "credentials"

# Refresh a cached OAuth token this many seconds before it expires.
TOKEN_EXPIRY_MARGIN_S = 60.0

# Lifetime assumed when the token endpoint omits ``expires_in``.
DEFAULT_TOKEN_LIFETIME_S = 3600.0


class TokenProvider(abc.ABC):
    """Source of bearer tokens for the imagery provider."""

    @abc.abstractmethod
    async def get_token(self) -> str:
        """Return a bearer token.

        Raises:
            AuthUnavailableError: If no usable token could be obtained.
            NetworkError: If the credential endpoint cannot be reached.
        """


class StaticTokenProvider(TokenProvider):
    """Always returns the same token."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def get_token(self) -> str:
        if not self._token:
            raise AuthUnavailableError(CREDENTIALS, "No static token configured")
        return self._token


class HttpTokenProvider(TokenProvider):
    """Fetches a fresh token from a credential endpoint on every call.

    Args:
        url: Credential endpoint; answers ``{"token": "..."}`` to ``GET``.
        timeout_s: Transport timeout in seconds.
        transport: Optional httpx transport (tests inject a mock here).
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = DEFAULT_HTTP_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._transport = transport

    async def get_token(self) -> str:
        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            try:
                response = await client.get(self._url)
            except httpx.RequestError as exc:
                raise NetworkError(self._url, f"Credential endpoint unreachable: {exc}") from exc

        data = _json_body(response, self._url)
        try:
            validate_payload(data, TokenResponse, activity=CREDENTIALS)
        except ContractError as exc:
            raise AuthUnavailableError(CREDENTIALS, str(exc)) from exc

        token = _non_empty_string(data["token"], "token")
        logger.info("Bearer token obtained | endpoint=%s", self._url)
        return token


class ClientCredentialsTokenProvider(TokenProvider):
    """OAuth2 client-credentials grant with an in-memory token cache.

    Concurrent callers share a single refresh.

    Args:
        token_url: OAuth2 token endpoint.
        client_id: OAuth2 client id.
        client_secret: OAuth2 client secret.
        timeout_s: Transport timeout in seconds.
        transport: Optional httpx transport (tests inject a mock here).
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        timeout_s: float = DEFAULT_HTTP_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout_s = timeout_s
        self._transport = transport
        self._clock = clock
        self._token = ""
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        async with self._lock:
            if self._token and self._clock() < self._expires_at:
                return self._token

            token, lifetime_s = await self._request_token()
            self._token = token
            self._expires_at = self._clock() + max(lifetime_s - TOKEN_EXPIRY_MARGIN_S, 0.0)
            logger.info(
                "OAuth token obtained | endpoint=%s | lifetime=%.0f s",
                self._token_url,
                lifetime_s,
            )
            return token

    async def _request_token(self) -> tuple[str, float]:
        form = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            try:
                response = await client.post(self._token_url, data=form)
            except httpx.RequestError as exc:
                msg = f"OAuth token endpoint unreachable: {exc}"
                raise NetworkError(self._token_url, msg) from exc

        data = _json_body(response, self._token_url)
        try:
            validate_payload(data, OAuthTokenResponse, activity=CREDENTIALS)
        except ContractError as exc:
            raise AuthUnavailableError(CREDENTIALS, str(exc)) from exc

        token = _non_empty_string(data["access_token"], "access_token")
        expires_in = data.get("expires_in", DEFAULT_TOKEN_LIFETIME_S)
        try:
            lifetime_s = float(expires_in)
        except (TypeError, ValueError):
            lifetime_s = DEFAULT_TOKEN_LIFETIME_S
        return token, lifetime_s


def make_token_provider(
    config: AppConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TokenProvider:
    """Choose a token provider for *config*.

    OAuth2 client credentials when both id and secret are configured,
    otherwise the plain credential endpoint.
    """
    if config.uses_client_credentials:
        return ClientCredentialsTokenProvider(
            config.oauth_token_url,
            config.client_id,
            config.client_secret,
            timeout_s=config.http_timeout_s,
            transport=transport,
        )
    return HttpTokenProvider(
        config.token_url,
        timeout_s=config.http_timeout_s,
        transport=transport,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _json_body(response: httpx.Response, url: str) -> Any:
    """Return the decoded JSON body of a 2xx response.

    Raises:
        AuthUnavailableError: On a non-2xx status or a non-JSON body.
    """
    if not response.is_success:
        msg = (
            f"Credential endpoint {url} returned "
            f"{response.status_code} {response.reason_phrase}".rstrip()
        )
        raise AuthUnavailableError(CREDENTIALS, msg)
    try:
        return response.json()
    except ValueError as exc:
        msg = f"Credential endpoint {url} returned a non-JSON body"
        raise AuthUnavailableError(CREDENTIALS, msg) from exc


def _non_empty_string(value: object, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        msg = f"Credential response field {field_name!r} is empty or not a string"
        raise AuthUnavailableError(CREDENTIALS, msg)
    return value

"""Tests for bearer-token providers."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from aoi_imagery.core.config import AppConfig
from aoi_imagery.core.exceptions import NetworkError
from aoi_imagery.providers.base import AuthUnavailableError
from aoi_imagery.providers.credentials import (
    ClientCredentialsTokenProvider,
    HttpTokenProvider,
    StaticTokenProvider,
    make_token_provider,
)

OAUTH_URL = "https://auth.example.test/oauth/token"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestStaticTokenProvider:
    @pytest.mark.asyncio()
    async def test_returns_token(self) -> None:
        assert await StaticTokenProvider("abc").get_token() == "abc"

    @pytest.mark.asyncio()
    async def test_empty_token(self) -> None:
        with pytest.raises(AuthUnavailableError):
            await StaticTokenProvider("").get_token()


class TestHttpTokenProvider:
    @pytest.mark.asyncio()
    async def test_fetches_each_time(self, transport) -> None:  # type: ignore[no-untyped-def]
        provider = HttpTokenProvider("https://creds.example.test/get-token", transport=transport)

        assert await provider.get_token() == "tok-123"
        assert await provider.get_token() == "tok-123"
        assert transport.call_count == 2
        assert all(r.method == "GET" for r in transport.requests)

    @pytest.mark.asyncio()
    async def test_non_success_status(self, transport_factory) -> None:  # type: ignore[no-untyped-def]
        transport = transport_factory(lambda request: httpx.Response(401))
        provider = HttpTokenProvider("https://creds.example.test/get-token", transport=transport)

        with pytest.raises(AuthUnavailableError, match="401"):
            await provider.get_token()

    @pytest.mark.asyncio()
    async def test_token_not_a_string(self, transport_factory) -> None:  # type: ignore[no-untyped-def]
        transport = transport_factory(lambda request: httpx.Response(200, json={"token": 42}))
        provider = HttpTokenProvider("https://creds.example.test/get-token", transport=transport)

        with pytest.raises(AuthUnavailableError, match="token"):
            await provider.get_token()

    @pytest.mark.asyncio()
    async def test_body_not_an_object(self, transport_factory) -> None:  # type: ignore[no-untyped-def]
        transport = transport_factory(lambda request: httpx.Response(200, json=["tok"]))
        provider = HttpTokenProvider("https://creds.example.test/get-token", transport=transport)

        with pytest.raises(AuthUnavailableError):
            await provider.get_token()

    @pytest.mark.asyncio()
    async def test_unreachable(self, transport_factory) -> None:  # type: ignore[no-untyped-def]
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        provider = HttpTokenProvider(
            "https://creds.example.test/get-token", transport=transport_factory(handler)
        )
        with pytest.raises(NetworkError) as exc_info:
            await provider.get_token()
        assert exc_info.value.retryable is True


class TestClientCredentialsTokenProvider:
    def _provider(self, transport, clock) -> ClientCredentialsTokenProvider:  # type: ignore[no-untyped-def]
        return ClientCredentialsTokenProvider(
            OAUTH_URL, "client-id", "client-secret", transport=transport, clock=clock
        )

    @pytest.mark.asyncio()
    async def test_posts_client_credentials_form(self, transport) -> None:  # type: ignore[no-untyped-def]
        provider = self._provider(transport, FakeClock())

        assert await provider.get_token() == "oauth-abc"

        request = transport.requests[0]
        assert request.method == "POST"
        form = parse_qs(request.content.decode("utf-8"))
        assert form == {
            "grant_type": ["client_credentials"],
            "client_id": ["client-id"],
            "client_secret": ["client-secret"],
        }

    @pytest.mark.asyncio()
    async def test_token_cached_until_near_expiry(self, transport) -> None:  # type: ignore[no-untyped-def]
        clock = FakeClock()
        provider = self._provider(transport, clock)

        await provider.get_token()
        clock.now += 3000.0
        await provider.get_token()
        assert transport.call_count == 1

        # 3600 s lifetime minus the 60 s margin has elapsed.
        clock.now += 600.0
        await provider.get_token()
        assert transport.call_count == 2

    @pytest.mark.asyncio()
    async def test_missing_expires_in_uses_default(
        self, transport_factory  # type: ignore[no-untyped-def]
    ) -> None:
        transport = transport_factory(
            lambda request: httpx.Response(200, json={"access_token": "x"})
        )
        clock = FakeClock()
        provider = self._provider(transport, clock)

        await provider.get_token()
        clock.now += 3500.0
        await provider.get_token()
        assert transport.call_count == 1

    @pytest.mark.asyncio()
    async def test_missing_access_token(self, transport_factory) -> None:  # type: ignore[no-untyped-def]
        transport = transport_factory(
            lambda request: httpx.Response(200, json={"error": "invalid_client"})
        )
        with pytest.raises(AuthUnavailableError, match="access_token"):
            await self._provider(transport, FakeClock()).get_token()

    @pytest.mark.asyncio()
    async def test_rejected_credentials(self, transport_factory) -> None:  # type: ignore[no-untyped-def]
        transport = transport_factory(lambda request: httpx.Response(401, json={}))
        with pytest.raises(AuthUnavailableError, match="401"):
            await self._provider(transport, FakeClock()).get_token()

    @pytest.mark.asyncio()
    async def test_failure_is_not_cached(self, transport_factory) -> None:  # type: ignore[no-untyped-def]
        responses = [
            httpx.Response(500),
            httpx.Response(200, json={"access_token": "second", "expires_in": 3600}),
        ]
        transport = transport_factory(lambda request: responses.pop(0))
        provider = self._provider(transport, FakeClock())

        with pytest.raises(AuthUnavailableError):
            await provider.get_token()
        assert await provider.get_token() == "second"


class TestMakeTokenProvider:
    def test_plain_endpoint_by_default(self) -> None:
        assert isinstance(make_token_provider(AppConfig()), HttpTokenProvider)

    def test_client_credentials_when_configured(self) -> None:
        cfg = AppConfig(client_id="id", client_secret="secret")
        assert isinstance(make_token_provider(cfg), ClientCredentialsTokenProvider)

    @pytest.mark.asyncio()
    async def test_transport_is_forwarded(self, transport) -> None:  # type: ignore[no-untyped-def]
        provider = make_token_provider(AppConfig(), transport=transport)
        assert await provider.get_token() == "tok-123"
        assert transport.call_count == 1

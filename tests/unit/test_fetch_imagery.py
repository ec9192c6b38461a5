"""Tests for the fetch_imagery activity.

Exercises the full token → Process API round-trip against an
``httpx.MockTransport``:

- No AOI: nothing is sent
- Token failures: the imagery endpoint is never called
- Upstream non-2xx and transport failures surface as typed errors
- Result carries the bounds captured at call time
- Request body and headers match the Process API contract
"""

from __future__ import annotations

import json

import httpx
import pytest

from aoi_imagery.activities.fetch_imagery import NoAOIError, build_process_request, fetch_imagery
from aoi_imagery.core.constants import CRS84_URI
from aoi_imagery.core.exceptions import NetworkError
from aoi_imagery.models.imagery import DEFAULT_TIME_RANGE, TimeRange
from aoi_imagery.providers.base import AuthUnavailableError, UpstreamError
from aoi_imagery.providers.credentials import HttpTokenProvider
from aoi_imagery.providers.sentinel_hub import SentinelHubAdapter

EVALSCRIPT = "//VERSION=3\nfunction setup() { return {}; }"


def _wire(config, transport):  # type: ignore[no-untyped-def]
    provider = SentinelHubAdapter(config, transport=transport)
    token_provider = HttpTokenProvider(config.token_url, transport=transport)
    return provider, token_provider


def _process_calls(transport) -> list[httpx.Request]:  # type: ignore[no-untyped-def]
    return [r for r in transport.requests if r.method == "POST"]


class TestNoAOI:
    @pytest.mark.asyncio()
    async def test_nothing_sent(self, config, transport) -> None:  # type: ignore[no-untyped-def]
        provider, token_provider = _wire(config, transport)

        with pytest.raises(NoAOIError) as exc_info:
            await fetch_imagery(
                None,
                DEFAULT_TIME_RANGE,
                EVALSCRIPT,
                provider=provider,
                token_provider=token_provider,
            )

        assert transport.call_count == 0
        assert exc_info.value.category == "validation"


class TestSuccess:
    @pytest.mark.asyncio()
    async def test_returns_image_and_bounds(
        self, config, transport, aoi_factory, png_bytes  # type: ignore[no-untyped-def]
    ) -> None:
        provider, token_provider = _wire(config, transport)
        aoi = aoi_factory(10.0, 20.0, 30.0, 40.0)

        result = await fetch_imagery(
            aoi,
            DEFAULT_TIME_RANGE,
            EVALSCRIPT,
            provider=provider,
            token_provider=token_provider,
            sequence=7,
        )

        assert result.content == png_bytes
        assert result.bounds.to_latlng_bounds() == ((10.0, 20.0), (30.0, 40.0))
        assert result.sequence == 7
        assert transport.call_count == 2

    @pytest.mark.asyncio()
    async def test_result_carries_provider_content_type(
        self, config, transport_factory, aoi_factory  # type: ignore[no-untyped-def]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"token": "tok"})
            return httpx.Response(
                200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"}
            )

        provider, token_provider = _wire(config, transport_factory(handler))

        result = await fetch_imagery(
            aoi_factory(0.0, 0.0, 1.0, 1.0),
            DEFAULT_TIME_RANGE,
            EVALSCRIPT,
            provider=provider,
            token_provider=token_provider,
        )

        assert result.content_type == "image/jpeg"
        assert result.content == b"\xff\xd8jpeg"

    @pytest.mark.asyncio()
    async def test_request_contract(
        self, config, transport, aoi_factory  # type: ignore[no-untyped-def]
    ) -> None:
        provider, token_provider = _wire(config, transport)
        time_range = TimeRange.from_iso("2024-06-01", "2024-06-30")

        await fetch_imagery(
            aoi_factory(10.0, 20.0, 30.0, 40.0),
            time_range,
            EVALSCRIPT,
            provider=provider,
            token_provider=token_provider,
        )

        token_call, process_call = transport.requests
        assert token_call.method == "GET"
        assert str(token_call.url) == config.token_url

        assert str(process_call.url) == config.process_url
        assert process_call.headers["authorization"] == "Bearer tok-123"
        assert process_call.headers["content-type"] == "application/json"

        body = json.loads(process_call.content)
        assert body["input"]["bounds"]["properties"]["crs"] == CRS84_URI
        assert body["input"]["bounds"]["geometry"]["type"] == "Polygon"
        assert body["input"]["data"][0]["type"] == "sentinel-2-l2a"
        assert body["input"]["data"][0]["dataFilter"]["timeRange"] == {
            "from": "2024-06-01T00:00:00Z",
            "to": "2024-06-30T00:00:00Z",
        }
        assert body["output"] == {"width": 512, "height": 512}
        assert body["evalscript"] == EVALSCRIPT

    @pytest.mark.asyncio()
    async def test_data_collection_override(
        self, config, transport, aoi_factory  # type: ignore[no-untyped-def]
    ) -> None:
        provider, token_provider = _wire(config, transport)
        await fetch_imagery(
            aoi_factory(0.0, 0.0, 1.0, 1.0),
            DEFAULT_TIME_RANGE,
            EVALSCRIPT,
            provider=provider,
            token_provider=token_provider,
            data_collection="sentinel-1-grd",
        )
        body = json.loads(_process_calls(transport)[0].content)
        assert body["input"]["data"][0]["type"] == "sentinel-1-grd"


class TestTokenFailures:
    @pytest.mark.parametrize(
        "token_response",
        [
            httpx.Response(500),
            httpx.Response(200, json={"not_token": "x"}),
            httpx.Response(200, json={"token": ""}),
            httpx.Response(200, text="<html>login</html>"),
        ],
    )
    @pytest.mark.asyncio()
    async def test_no_process_call(
        self,
        config,  # type: ignore[no-untyped-def]
        transport_factory,  # type: ignore[no-untyped-def]
        aoi_factory,  # type: ignore[no-untyped-def]
        token_response: httpx.Response,
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return token_response
            return httpx.Response(200, content=b"image")

        transport = transport_factory(handler)
        provider, token_provider = _wire(config, transport)

        with pytest.raises(AuthUnavailableError) as exc_info:
            await fetch_imagery(
                aoi_factory(0.0, 0.0, 1.0, 1.0),
                DEFAULT_TIME_RANGE,
                EVALSCRIPT,
                provider=provider,
                token_provider=token_provider,
            )

        assert _process_calls(transport) == []
        assert exc_info.value.code == "AUTH_UNAVAILABLE"


class TestProviderFailures:
    @pytest.mark.asyncio()
    async def test_upstream_status(
        self, config, transport_factory, aoi_factory  # type: ignore[no-untyped-def]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"token": "t"})
            return httpx.Response(503, text="maintenance")

        transport = transport_factory(handler)
        provider, token_provider = _wire(config, transport)

        with pytest.raises(UpstreamError) as exc_info:
            await fetch_imagery(
                aoi_factory(0.0, 0.0, 1.0, 1.0),
                DEFAULT_TIME_RANGE,
                EVALSCRIPT,
                provider=provider,
                token_provider=token_provider,
            )

        err = exc_info.value
        assert err.status_code == 503
        assert err.status_text == "Service Unavailable"
        assert "maintenance" in str(err)
        # Exactly one attempt, no retry.
        assert len(_process_calls(transport)) == 1

    @pytest.mark.asyncio()
    async def test_network_failure(
        self, config, transport_factory, aoi_factory  # type: ignore[no-untyped-def]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"token": "t"})
            raise httpx.ConnectError("connection refused", request=request)

        transport = transport_factory(handler)
        provider, token_provider = _wire(config, transport)

        with pytest.raises(NetworkError) as exc_info:
            await fetch_imagery(
                aoi_factory(0.0, 0.0, 1.0, 1.0),
                DEFAULT_TIME_RANGE,
                EVALSCRIPT,
                provider=provider,
                token_provider=token_provider,
            )

        assert exc_info.value.url == config.process_url
        assert exc_info.value.category == "transient"

    @pytest.mark.asyncio()
    async def test_token_endpoint_unreachable(
        self, config, transport_factory, aoi_factory  # type: ignore[no-untyped-def]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        transport = transport_factory(handler)
        provider, token_provider = _wire(config, transport)

        with pytest.raises(NetworkError):
            await fetch_imagery(
                aoi_factory(0.0, 0.0, 1.0, 1.0),
                DEFAULT_TIME_RANGE,
                EVALSCRIPT,
                provider=provider,
                token_provider=token_provider,
            )
        assert transport.call_count == 1


class TestBuildProcessRequest:
    def test_uses_aoi_geometry(self, aoi_factory) -> None:  # type: ignore[no-untyped-def]
        aoi = aoi_factory(1.0, 2.0, 3.0, 4.0)
        request = build_process_request(aoi, DEFAULT_TIME_RANGE, EVALSCRIPT)
        assert request.geometry == aoi.geometry
        assert request.data_collection == "sentinel-2-l2a"

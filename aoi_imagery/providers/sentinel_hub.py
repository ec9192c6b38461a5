"""Sentinel Hub Process API adapter.

Renders an AOI into an image with a single ``POST`` to the Process API::

    POST {process_url}
    Authorization: Bearer <token>
    Content-Type: application/json

    {"input": {"bounds": {...}, "data": [...]}, "output": {...}, "evalscript": "..."}

The response body is returned untouched together with its media type;
decoding it is the display layer's job.  Exactly one attempt is made
per call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from aoi_imagery.core.constants import DEFAULT_IMAGE_CONTENT_TYPE
from aoi_imagery.core.exceptions import NetworkError
from aoi_imagery.models.imagery import RenderedImage
from aoi_imagery.providers.base import ImageryProvider, UpstreamError

if TYPE_CHECKING:
    from aoi_imagery.core.config import AppConfig
    from aoi_imagery.models.imagery import ProcessRequest

logger = logging.getLogger("aoi_imagery.providers.sentinel_hub")

# Longest upstream error body echoed into an UpstreamError message.
MAX_ERROR_DETAIL_CHARS = 500


class SentinelHubAdapter(ImageryProvider):
    """Imagery provider backed by the Sentinel Hub Process API.

    Args:
        config: Client configuration (endpoint URL, timeout).
        transport: Optional httpx transport (tests inject a mock here).
    """

    name = "sentinel_hub"

    def __init__(
        self,
        config: AppConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config)
        self._transport = transport

    async def render(self, request: ProcessRequest, token: str) -> RenderedImage:
        url = self.config.process_url
        time_filter = request.time_range.to_filter()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

        logger.info(
            "Imagery request | provider=%s | collection=%s | range=%s..%s | size=%dx%d",
            self.name,
            request.data_collection,
            time_filter["from"],
            time_filter["to"],
            request.width,
            request.height,
        )

        async with httpx.AsyncClient(
            timeout=self.config.http_timeout_s, transport=self._transport
        ) as client:
            try:
                response = await client.post(url, json=request.to_payload(), headers=headers)
            except httpx.RequestError as exc:
                raise NetworkError(url, f"Imagery provider unreachable: {exc}") from exc

        if not response.is_success:
            raise UpstreamError(
                self.name,
                response.status_code,
                response.reason_phrase,
                detail=response.text[:MAX_ERROR_DETAIL_CHARS],
            )

        content = response.content
        content_type = _media_type(response.headers.get("content-type", ""))
        logger.info(
            "Imagery received | provider=%s | status=%d | content_type=%s | size=%d bytes",
            self.name,
            response.status_code,
            content_type or "-",
            len(content),
        )
        return RenderedImage(
            content=content,
            content_type=content_type or DEFAULT_IMAGE_CONTENT_TYPE,
        )


def _media_type(header: str) -> str:
    """``"image/png; charset=binary"`` -> ``"image/png"``."""
    return header.split(";", 1)[0].strip().lower()

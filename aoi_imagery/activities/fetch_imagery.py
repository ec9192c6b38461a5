"""Imagery request activity.

Turns the current AOI, a time range and an evalscript into a Process API
request, obtains a bearer token, and asks the provider to render it.

Order of operations is fixed:

1. No AOI → ``NoAOIError``; nothing is sent.
2. Token from the ``TokenProvider``; on failure nothing is sent to the
   imagery provider.
3. One ``render`` call on the provider.

The returned ``ImageryResult`` carries the AOI bounds captured at step 1,
so a result that arrives after the user has moved on still knows where
it belongs on the map.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aoi_imagery.core.constants import DEFAULT_DATA_COLLECTION
from aoi_imagery.core.exceptions import ValidationError
from aoi_imagery.models.imagery import ImageryResult, ProcessRequest

if TYPE_CHECKING:
    from aoi_imagery.models.aoi import AOI
    from aoi_imagery.models.imagery import TimeRange
    from aoi_imagery.providers.base import ImageryProvider
    from aoi_imagery.providers.credentials import TokenProvider

logger = logging.getLogger("aoi_imagery.activities.fetch_imagery")


class NoAOIError(ValidationError):
    """Raised when imagery is requested before any AOI was defined."""

    default_stage = "fetch_imagery"
    default_code = "NO_AOI"


def build_process_request(
    aoi: AOI,
    time_range: TimeRange,
    evalscript: str,
    *,
    data_collection: str = DEFAULT_DATA_COLLECTION,
) -> ProcessRequest:
    """Build the Process API request for *aoi*.

    Dates are forwarded exactly as given.
    """
    return ProcessRequest(
        geometry=aoi.geometry,
        time_range=time_range,
        evalscript=evalscript,
        data_collection=data_collection,
    )


async def fetch_imagery(
    aoi: AOI | None,
    time_range: TimeRange,
    evalscript: str,
    *,
    provider: ImageryProvider,
    token_provider: TokenProvider,
    sequence: int = 0,
    data_collection: str | None = None,
) -> ImageryResult:
    """Render imagery for *aoi* and return it with the bounds to display at.

    Args:
        aoi: Current AOI, or ``None`` if the user has not defined one.
        time_range: Acquisition window.
        evalscript: Source text of the selected evalscript.
        provider: Imagery provider adapter.
        token_provider: Source of the bearer token.
        sequence: Sequence number of this fetch (see ``orchestrators.session``).
        data_collection: Overrides the provider config's data collection.

    Returns:
        An ``ImageryResult`` with the AOI bounds captured at call time.

    Raises:
        NoAOIError: If *aoi* is ``None``.
        AuthUnavailableError: If no bearer token could be obtained.
        UpstreamError: If the provider answers with a non-2xx status.
        NetworkError: If an endpoint cannot be reached.
    """
    if aoi is None:
        msg = "Define an area of interest before requesting imagery"
        raise NoAOIError(msg)

    bounds = aoi.bounds
    request = build_process_request(
        aoi,
        time_range,
        evalscript,
        data_collection=data_collection or provider.config.data_collection,
    )

    token = await token_provider.get_token()

    logger.info(
        "Fetching imagery | seq=%d | aoi=%s | provider=%s | bbox=[%.4f, %.4f, %.4f, %.4f]",
        sequence,
        aoi.name or aoi.source,
        provider.name,
        *bounds.to_bbox(),
    )
    rendered = await provider.render(request, token)

    logger.info(
        "Imagery fetched | seq=%d | content_type=%s | size=%d bytes",
        sequence,
        rendered.content_type,
        len(rendered.content),
    )
    return ImageryResult(
        content=rendered.content,
        bounds=bounds,
        content_type=rendered.content_type,
        sequence=sequence,
    )

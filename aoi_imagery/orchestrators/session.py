"""Interactive session state machine.

One session holds the current AOI, the selected time range and
evalscript, and the image on display.  Every user action is a pure
transform ``(state, event) -> state``; ``SessionRunner`` is the thin
async driver that performs the I/O between transforms.

Lifecycle::

    NO_AOI → AOI_READY → FETCHING → DISPLAYED | FAILED

``DISPLAYED`` and ``FAILED`` return to ``AOI_READY`` on the next
successful AOI selection.  A new AOI does not clear the image on
display; it stays until a newer fetch replaces it.

Overlapping fetches
-------------------
Every dispatched fetch takes a ticket with a monotonically increasing
sequence number.  Only the result (or failure) of the most recently
dispatched fetch is applied; anything older is discarded and logged
(last-dispatched-wins).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from aoi_imagery.activities.fetch_imagery import NoAOIError, fetch_imagery
from aoi_imagery.activities.load_aoi import aoi_from_draw, load_upload
from aoi_imagery.core.config import AppConfig
from aoi_imagery.core.exceptions import AOIImageryError
from aoi_imagery.models.evalscript import load_catalog
from aoi_imagery.models.imagery import DEFAULT_TIME_RANGE, TimeRange
from aoi_imagery.providers.credentials import make_token_provider
from aoi_imagery.providers.factory import get_provider

if TYPE_CHECKING:
    import httpx

    from aoi_imagery.activities.load_aoi import Upload
    from aoi_imagery.models.aoi import AOI
    from aoi_imagery.models.evalscript import EvalscriptCatalog
    from aoi_imagery.models.imagery import ImageryResult
    from aoi_imagery.providers.base import ImageryProvider
    from aoi_imagery.providers.credentials import TokenProvider

logger = logging.getLogger("aoi_imagery.orchestrators.session")


class SessionStatus(enum.Enum):
    """Where the session is in its AOI + fetch cycle.

    Values:
        NO_AOI:    Nothing drawn or uploaded yet.
        AOI_READY: An AOI is selected; no fetch outstanding.
        FETCHING:  A fetch has been dispatched and not yet resolved.
        DISPLAYED: The latest fetch succeeded; its image is on display.
        FAILED:    The latest fetch failed.
    """

    NO_AOI = "no_aoi"
    AOI_READY = "aoi_ready"
    FETCHING = "fetching"
    DISPLAYED = "displayed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchTicket:
    """Snapshot of what one dispatched fetch asked for.

    Attributes:
        sequence: Dispatch sequence number (1-based, per session).
        aoi: AOI at dispatch time.
        time_range: Time range at dispatch time.
        evalscript_index: Selected catalog index at dispatch time.
    """

    sequence: int
    aoi: AOI
    time_range: TimeRange
    evalscript_index: int


@dataclass(frozen=True, slots=True)
class SessionState:
    """Immutable snapshot of one interactive session.

    Attributes:
        aoi: Current AOI, or ``None``.
        time_range: Acquisition window for the next fetch.
        evalscript_index: Selected catalog entry.
        image: Image on display, or ``None``.
        status: Current lifecycle status.
        last_dispatched: Sequence number of the latest dispatched fetch;
            ``reset`` advances it so older tickets no longer match.
        last_error: ``to_error_dict()`` of the latest failure, if any.
    """

    aoi: AOI | None = None
    time_range: TimeRange = DEFAULT_TIME_RANGE
    evalscript_index: int = 0
    image: ImageryResult | None = None
    status: SessionStatus = SessionStatus.NO_AOI
    last_dispatched: int = 0
    last_error: dict[str, object] | None = None


# ---------------------------------------------------------------------------
# Pure transforms
# ---------------------------------------------------------------------------


def select_aoi(state: SessionState, aoi: AOI) -> SessionState:
    """Make *aoi* the current AOI.  The displayed image is kept."""
    status = SessionStatus.AOI_READY
    if state.status is SessionStatus.FETCHING:
        status = SessionStatus.FETCHING
    return replace(state, aoi=aoi, status=status, last_error=None)


def select_evalscript(state: SessionState, index: int, catalog: EvalscriptCatalog) -> SessionState:
    """Select catalog entry *index*.

    Raises:
        ModelValidationError: If *index* is out of range.
    """
    catalog.get(index)
    return replace(state, evalscript_index=index)


def set_time_range(state: SessionState, time_range: TimeRange) -> SessionState:
    return replace(state, time_range=time_range)


def reset(state: SessionState) -> SessionState:
    """Forget the AOI and image.

    The dispatch counter is advanced past every ticket already handed out,
    so a fetch still in flight is stale when it completes.
    """
    return SessionState(last_dispatched=state.last_dispatched + 1)


def dispatch_fetch(state: SessionState) -> tuple[SessionState, FetchTicket]:
    """Take a ticket for a new fetch of the current AOI.

    Raises:
        NoAOIError: If no AOI is selected.
    """
    if state.aoi is None:
        msg = "Define an area of interest before requesting imagery"
        raise NoAOIError(msg)

    ticket = FetchTicket(
        sequence=state.last_dispatched + 1,
        aoi=state.aoi,
        time_range=state.time_range,
        evalscript_index=state.evalscript_index,
    )
    new_state = replace(
        state,
        status=SessionStatus.FETCHING,
        last_dispatched=ticket.sequence,
        last_error=None,
    )
    return new_state, ticket


def is_current(state: SessionState, ticket: FetchTicket) -> bool:
    """Whether *ticket* is the most recently dispatched fetch."""
    return ticket.sequence == state.last_dispatched


def apply_fetch_result(
    state: SessionState, ticket: FetchTicket, result: ImageryResult
) -> SessionState:
    """Display *result* if *ticket* is current; otherwise discard it."""
    if not is_current(state, ticket):
        logger.warning(
            "Discarding stale imagery result | seq=%d | latest=%d",
            ticket.sequence,
            state.last_dispatched,
        )
        return state
    return replace(state, image=result, status=SessionStatus.DISPLAYED, last_error=None)


def apply_fetch_failure(
    state: SessionState, ticket: FetchTicket, error: AOIImageryError
) -> SessionState:
    """Record *error* if *ticket* is current; otherwise discard it."""
    if not is_current(state, ticket):
        logger.warning(
            "Discarding stale imagery failure | seq=%d | latest=%d | code=%s",
            ticket.sequence,
            state.last_dispatched,
            error.code,
        )
        return state
    return replace(state, status=SessionStatus.FAILED, last_error=error.to_error_dict())


# ---------------------------------------------------------------------------
# Async driver
# ---------------------------------------------------------------------------


class SessionRunner:
    """Holds one ``SessionState`` and performs the I/O for each action.

    Every failure is recorded in ``state.last_error``, logged, and
    re-raised to the caller.  A failed draw or upload leaves the
    previous AOI in place.

    Args:
        config: Client configuration.
        catalog: Evalscript catalog (default: loaded from config).
        provider: Imagery provider (default: from the factory).
        token_provider: Bearer-token source (default: from config).
        transport: httpx transport for the default provider and token
            provider (tests inject a mock here).
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        catalog: EvalscriptCatalog | None = None,
        provider: ImageryProvider | None = None,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._catalog = catalog or load_catalog(config.evalscript_catalog_path or None)

        adapter_kwargs: dict[str, Any] = {}
        if transport is not None:
            adapter_kwargs["transport"] = transport
        self._provider = provider or get_provider(
            config.imagery_provider, config, **adapter_kwargs
        )
        self._token_provider = token_provider or make_token_provider(config, transport=transport)
        self._state = SessionState()

    @classmethod
    def from_env(cls) -> SessionRunner:
        return cls(AppConfig.from_env())

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def catalog(self) -> EvalscriptCatalog:
        return self._catalog

    def draw(self, event: Any) -> AOI:
        """Make the shape from the draw widget the current AOI."""
        try:
            aoi = aoi_from_draw(event, area_threshold_ha=self._config.aoi_max_area_ha)
        except AOIImageryError as exc:
            self._record_error("draw", exc)
            raise
        self._state = select_aoi(self._state, aoi)
        return aoi

    async def upload(self, upload: Upload) -> AOI:
        """Make the uploaded file (or archive) the current AOI."""
        try:
            aoi = await load_upload(upload, area_threshold_ha=self._config.aoi_max_area_ha)
        except AOIImageryError as exc:
            self._record_error("upload", exc)
            raise
        self._state = select_aoi(self._state, aoi)
        return aoi

    def select_evalscript(self, index: int) -> None:
        self._state = select_evalscript(self._state, index, self._catalog)

    def set_time_range(self, time_range: TimeRange) -> None:
        self._state = set_time_range(self._state, time_range)

    def reset(self) -> None:
        self._state = reset(self._state)

    async def fetch(self) -> ImageryResult | None:
        """Fetch imagery for the current AOI.

        Returns:
            The result, or ``None`` if a newer fetch was dispatched while
            this one was in flight (the result is discarded).

        Raises:
            NoAOIError: If no AOI is selected (nothing is sent).
            AuthUnavailableError, UpstreamError, NetworkError: On failure
                of the current fetch.
        """
        try:
            self._state, ticket = dispatch_fetch(self._state)
        except NoAOIError as exc:
            self._record_error("fetch", exc)
            raise

        entry = self._catalog.get(ticket.evalscript_index)
        try:
            result = await fetch_imagery(
                ticket.aoi,
                ticket.time_range,
                entry.script,
                provider=self._provider,
                token_provider=self._token_provider,
                sequence=ticket.sequence,
                data_collection=self._config.data_collection,
            )
        except AOIImageryError as exc:
            current = is_current(self._state, ticket)
            self._state = apply_fetch_failure(self._state, ticket, exc)
            if current:
                logger.error(
                    "Imagery fetch failed | seq=%d | category=%s | code=%s | error=%s",
                    ticket.sequence,
                    exc.category,
                    exc.code,
                    exc,
                )
                raise
            return None
        except Exception as exc:
            # Every exit path resolves the ticket; FETCHING never outlives a fetch.
            error = AOIImageryError(
                f"Unexpected error while fetching imagery: {exc!r}",
                stage="fetch_imagery",
                code="UNEXPECTED_ERROR",
            )
            self._state = apply_fetch_failure(self._state, ticket, error)
            logger.exception("Imagery fetch crashed | seq=%d", ticket.sequence)
            raise

        current = is_current(self._state, ticket)
        self._state = apply_fetch_result(self._state, ticket, result)
        return result if current else None

    def _record_error(self, action: str, exc: AOIImageryError) -> None:
        logger.warning(
            "Session action failed | action=%s | category=%s | code=%s | error=%s",
            action,
            exc.category,
            exc.code,
            exc,
        )
        self._state = replace(self._state, last_error=exc.to_error_dict())

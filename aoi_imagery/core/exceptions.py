"""Unified exception taxonomy.

Every error raised by the AOI and imagery layers inherits from
``AOIImageryError`` and carries structured context fields so the
interactive layer can report it consistently and decide whether
offering the user a retry makes sense.

Taxonomy categories
-------------------
- ``ValidationError``: bad user input (geometry, file, missing AOI).
- ``TransientError``: temporary failures (network), the user may retry.
- ``PermanentError``: unrecoverable upstream or credential failures.
- ``ContractError``: payload/schema drift with a collaborator.

No error is retried automatically: every failure is terminal for the
user action that triggered it.  ``retryable`` only describes whether
repeating the same action could plausibly succeed.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and for display.
"""

from __future__ import annotations

from typing import ClassVar


class AOIImageryError(Exception):
    """Base exception for all AOI/imagery-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Stage where the error occurred
            (e.g. ``"load_aoi"``, ``"fetch_imagery"``).
        code: Machine-readable error code (e.g. ``"NO_AOI"``).
        retryable: Whether repeating the user action may succeed.
        correlation_id: Session / request correlation identifier.
    """

    #: Defaults for subclasses; the matching keyword argument overrides them.
    default_stage: ClassVar[str] = ""
    default_code: ClassVar[str] = ""
    default_retryable: ClassVar[bool] = False
    #: Set by the category bases below.
    default_category: ClassVar[str] = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool | None = None,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = self.default_retryable if retryable is None else retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Category of the nearest category base, else derived from ``retryable``."""
        if self.default_category:
            return self.default_category
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(AOIImageryError):
    """Input or domain-model validation failure. Never retryable."""

    default_category = "validation"


class TransientError(AOIImageryError):
    """Temporary failure that may succeed if the user repeats the action."""

    default_category = "transient"
    default_retryable = True


class PermanentError(AOIImageryError):
    """Unrecoverable failure. Not retryable."""

    default_category = "permanent"


class ContractError(AOIImageryError):
    """Payload or schema drift with a collaborator. Never retryable."""

    default_category = "contract"


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class NetworkError(TransientError):
    """Transport failure reaching an external endpoint.

    Raised for connection errors, DNS failures and transport timeouts
    against either the credential endpoint or the imagery provider.

    Attributes:
        url: The endpoint that could not be reached.
    """

    default_stage = "transport"
    default_code = "NETWORK_ERROR"

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"{message} ({url})")

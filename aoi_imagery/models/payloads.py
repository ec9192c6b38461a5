"""Typed payload schemas for collaborator contracts.

The draw widget and the credential endpoints hand us plain JSON
objects.  These ``TypedDict`` definitions make the expected shapes
explicit so that type checkers catch key mismatches at analysis time
and ``validate_payload`` catches them at runtime.

Usage::

    from aoi_imagery.models.payloads import ShapeFeature, validate_payload

    validate_payload(shape, ShapeFeature, activity="load_aoi")
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

from aoi_imagery.core.exceptions import ContractError

# ---------------------------------------------------------------------------
# Draw widget
# ---------------------------------------------------------------------------


class ShapeFeature(TypedDict):
    """A finished shape converted to GeoJSON by the draw widget."""

    type: str
    geometry: dict[str, Any]
    properties: NotRequired[dict[str, Any]]


class DrawCreatedEvent(TypedDict):
    """Draw widget "created" event carrying one shape."""

    layer: dict[str, Any]
    layerType: NotRequired[str]


# ---------------------------------------------------------------------------
# Credential endpoints
# ---------------------------------------------------------------------------


class TokenResponse(TypedDict):
    """Response of the plain credential endpoint (``GET``)."""

    token: str


class OAuthTokenResponse(TypedDict):
    """Response of an OAuth2 client-credentials token endpoint."""

    access_token: str
    expires_in: NotRequired[int]
    token_type: NotRequired[str]


# ---------------------------------------------------------------------------
# Required-key registrations (used by validate_payload)
# ---------------------------------------------------------------------------

_REQUIRED_KEYS: dict[type, frozenset[str]] = {
    ShapeFeature: frozenset({"geometry"}),
    DrawCreatedEvent: frozenset({"layer"}),
    TokenResponse: frozenset({"token"}),
    OAuthTokenResponse: frozenset({"access_token"}),
}


# ---------------------------------------------------------------------------
# Runtime validation
# ---------------------------------------------------------------------------


def validate_payload(
    raw: object,
    schema: type,
    *,
    activity: str,
) -> None:
    """Validate that *raw* is a dict containing the required keys for *schema*.

    Raises:
        ContractError: If *raw* is not a dict or required keys are missing.
    """
    if not isinstance(raw, dict):
        msg = f"{activity}: expected a JSON object, got {type(raw).__name__}"
        raise ContractError(msg, stage=activity, code="PAYLOAD_NOT_OBJECT")

    required = _REQUIRED_KEYS.get(schema)
    if required is None:
        return

    missing = required - raw.keys()
    if missing:
        msg = f"{activity}: missing required payload key(s): {', '.join(sorted(missing))}"
        raise ContractError(msg, stage=activity, code="PAYLOAD_MISSING_KEYS")

"""Provider factory: selects the active imagery provider by name.

The factory maintains a registry of known adapters. New adapters are
registered through ``register_provider``.

Usage::

    from aoi_imagery.providers.factory import get_provider

    provider = get_provider("sentinel_hub", config)
    image = await provider.render(request, token)

The provider name is read from the ``IMAGERY_PROVIDER`` environment variable
via ``AppConfig.imagery_provider``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aoi_imagery.core.config import AppConfig
from aoi_imagery.providers.base import ImageryProvider, ProviderError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("aoi_imagery.providers.factory")

# ---------------------------------------------------------------------------
# Provider name constants
# ---------------------------------------------------------------------------

SENTINEL_HUB = "sentinel_hub"

# ---------------------------------------------------------------------------
# Lazy-import adapter registry
# ---------------------------------------------------------------------------

# Each entry maps a provider name to a callable that returns the adapter
# *class*, so an adapter's module is only imported when it is selected.

_ADAPTER_REGISTRY: dict[str, Callable[[], type[ImageryProvider]]] = {}


def _register_builtin_adapters() -> None:
    """Register the built-in provider adapters."""

    def _sentinel_hub() -> type[ImageryProvider]:
        from aoi_imagery.providers.sentinel_hub import SentinelHubAdapter

        return SentinelHubAdapter

    _ADAPTER_REGISTRY[SENTINEL_HUB] = _sentinel_hub


def _ensure_registry() -> None:
    """Initialise the adapter registry once (idempotent)."""
    if not _ADAPTER_REGISTRY:
        _register_builtin_adapters()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_provider(
    name: str,
    loader: Callable[[], type[ImageryProvider]],
) -> None:
    """Register a custom provider adapter.

    This allows third-party or test adapters to be plugged in without
    modifying the factory.

    Args:
        name: Provider name (e.g. ``"my_custom_provider"``).
        loader: A zero-argument callable that returns the adapter class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ADAPTER_REGISTRY[name] = loader
    logger.debug("Registered provider adapter: %s", name)


def get_provider(
    name: str,
    config: AppConfig | None = None,
    **adapter_kwargs: Any,
) -> ImageryProvider:
    """Create and return an imagery provider instance.

    Args:
        name: Provider identifier (e.g. ``"sentinel_hub"``).
        config: Optional ``AppConfig``. If ``None``, the defaults are used
            with ``imagery_provider`` set to *name*.
        **adapter_kwargs: Passed to the adapter constructor (for example
            an httpx ``transport``).

    Returns:
        A configured ``ImageryProvider`` instance.

    Raises:
        ProviderError: If the named provider is not registered, or the
            config selects a different provider.
    """
    _ensure_registry()

    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Unknown imagery provider: {name!r}. Available: {available}"
        raise ProviderError(provider=name, message=msg)

    adapter_cls = loader()

    if config is None:
        config = AppConfig(imagery_provider=name)
    elif config.imagery_provider != name:
        msg = (
            f"AppConfig.imagery_provider {config.imagery_provider!r} does not match "
            f"requested provider {name!r}"
        )
        raise ProviderError(provider=name, message=msg)

    logger.info("Creating imagery provider: %s", name)
    return adapter_cls(config, **adapter_kwargs)


def list_providers() -> list[str]:
    """Return the names of all registered provider adapters."""
    _ensure_registry()
    return sorted(_ADAPTER_REGISTRY)

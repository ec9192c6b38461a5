"""Evalscript catalog model.

The catalog is a static, ordered list of ``{name, image, script}``
entries shipped with the package (``aoi_imagery/data/evalscripts.json``).
It is loaded once at startup and never mutated; a selection is an index
into the list, and list order is display order.

The JSON document shape is::

    {"evalscripts": [{"name": "...", "image": "...", "script": "..."}]}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from aoi_imagery.core.exceptions import ContractError
from aoi_imagery.models.imagery import ModelValidationError

logger = logging.getLogger("aoi_imagery.models.evalscript")

BUNDLED_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "evalscripts.json"


class CatalogError(ContractError):
    """Raised when the evalscript catalog cannot be read or fails its schema."""

    default_stage = "evalscript_catalog"
    default_code = "CATALOG_INVALID"


class EvalscriptEntry(BaseModel):
    """One selectable evalscript.

    Attributes:
        name: Display name (e.g. ``"True Color"``).
        image_icon_url: Icon shown next to the name (JSON key ``image``).
        script: Evalscript source text sent to the provider.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    image_icon_url: str = Field(default="", alias="image")
    script: str = Field(min_length=1)


class EvalscriptCatalog(BaseModel):
    """Read-only ordered evalscript catalog."""

    model_config = ConfigDict(frozen=True)

    evalscripts: tuple[EvalscriptEntry, ...] = Field(min_length=1)

    def __len__(self) -> int:
        return len(self.evalscripts)

    def get(self, index: int) -> EvalscriptEntry:
        """Return the entry at *index*.

        Raises:
            ModelValidationError: If *index* is out of range.
        """
        if not 0 <= index < len(self.evalscripts):
            raise ModelValidationError(
                "EvalscriptCatalog",
                "index",
                index,
                f"must be between 0 and {len(self.evalscripts) - 1}",
            )
        return self.evalscripts[index]

    @property
    def names(self) -> list[str]:
        """Entry names in display order."""
        return [entry.name for entry in self.evalscripts]


def load_catalog(path: Path | str | None = None) -> EvalscriptCatalog:
    """Load and validate an evalscript catalog.

    Args:
        path: JSON file to load.  ``None`` or ``""`` loads the bundled catalog.

    Raises:
        CatalogError: If the file cannot be read, is not JSON, or does
            not match the catalog schema.
    """
    catalog_path = Path(path) if path else BUNDLED_CATALOG_PATH

    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"Cannot read evalscript catalog {catalog_path}: {exc}"
        raise CatalogError(msg) from exc
    except json.JSONDecodeError as exc:
        msg = f"Evalscript catalog {catalog_path} is not valid JSON: {exc}"
        raise CatalogError(msg) from exc

    try:
        catalog = EvalscriptCatalog.model_validate(raw)
    except PydanticValidationError as exc:
        msg = f"Evalscript catalog {catalog_path} failed schema validation: {exc}"
        raise CatalogError(msg) from exc

    logger.info(
        "Evalscript catalog loaded | path=%s | entries=%d",
        catalog_path,
        len(catalog),
    )
    return catalog

"""Read-only catalogs of accelerators, model presets and stack components.

Catalogs are JSON arrays loaded once by the caller and passed explicitly to
the engine and scoring functions; nothing here is cached.
"""

import json
import logging
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from aicalc.config import CATALOG_DIR
from aicalc.engine.matrix import ModelPreset
from aicalc.engine.specs import AcceleratorSpec
from aicalc.errors import CatalogError
from aicalc.stack.models import StackComponent

logger = logging.getLogger(__name__)

ACCELERATORS_FILE = "accelerators.json"
MODEL_PRESETS_FILE = "model_presets.json"
STACK_COMPONENTS_FILE = "stack_components.json"

T = TypeVar("T", bound=BaseModel)


def _load(path: Path, model: type[T]) -> list[T]:
    try:
        rows = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise CatalogError(str(path), f"not valid JSON ({e})") from e
    if not isinstance(rows, list):
        raise CatalogError(str(path), f"expected a JSON array, got {type(rows).__name__}")

    entries = []
    for i, row in enumerate(rows):
        try:
            entries.append(model.model_validate(row))
        except ValidationError as e:
            raise CatalogError(str(path), f"entry {i}: {e}") from e

    logger.debug("Loaded %d %s entries from %s", len(entries), model.__name__, path)
    return entries


def load_accelerators(path: Path | None = None) -> list[AcceleratorSpec]:
    return _load(path or CATALOG_DIR / ACCELERATORS_FILE, AcceleratorSpec)


def load_model_presets(path: Path | None = None) -> list[ModelPreset]:
    return _load(path or CATALOG_DIR / MODEL_PRESETS_FILE, ModelPreset)


def load_stack_components(path: Path | None = None) -> list[StackComponent]:
    return _load(path or CATALOG_DIR / STACK_COMPONENTS_FILE, StackComponent)


def find_accelerator(accelerators: list[AcceleratorSpec], name: str) -> AcceleratorSpec:
    """Case-insensitive lookup by name; KeyError lists what is available."""
    wanted = name.lower()
    for acc in accelerators:
        if acc.name.lower() == wanted:
            return acc
    raise KeyError(
        f"Unknown accelerator '{name}'. Known: {', '.join(a.name for a in accelerators)}"
    )


def find_preset(presets: list[ModelPreset], name: str) -> ModelPreset:
    """Case-insensitive lookup by display name or short name."""
    wanted = name.lower()
    for preset in presets:
        if wanted in (preset.name.lower(), preset.short_name.lower()):
            return preset
    raise KeyError(
        f"Unknown model preset '{name}'. Known: {', '.join(p.short_name for p in presets)}"
    )

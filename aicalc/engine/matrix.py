"""Device x model matrix: first-token and inter-token latency for every pair.

Cells are computed with the full performance engine. When that fails, the
caller can opt into a crude bandwidth/compute estimate; such cells are
labelled ``approximate`` and carry the error that forced the fallback.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from aicalc.engine.memory import BYTES_PER_GB, model_size_bytes
from aicalc.engine.performance import PerformanceEngine
from aicalc.engine.specs import (
    DEFAULT_SYSTEM_OVERHEAD,
    AcceleratorSpec,
    ModelSpec,
    SystemOverhead,
)
from aicalc.errors import EvaluationError

logger = logging.getLogger(__name__)

# Weights may use at most this share of accelerator memory
RUNNABLE_MEMORY_FRACTION = 0.75

# Floors of the approximate estimate (ms)
APPROX_MIN_TTFT_MS = 50
APPROX_MIN_ITL_MS = 10


class ModelPreset(BaseModel):
    """A catalog model with its benchmark score and default workload."""

    model_config = ConfigDict(frozen=True)

    name: str
    short_name: str
    eval_score: float = Field(..., description="AlpacaEval-2.0 score")
    spec: ModelSpec


class MatrixFilters(BaseModel):
    """Inclusive (min, max) ranges applied to cells and models."""

    model_config = ConfigDict(frozen=True)

    ttft_range_ms: tuple[float, float] = (0, 10000)
    itl_range_ms: tuple[float, float] = (0, 1000)
    budget_range: tuple[float, float] = Field((0, 100), description="USD per hour")
    eval_score_range: tuple[float, float] = (0, 100)
    context_length_range: tuple[int, int] = (0, 200_000)
    input_tokens: int = Field(512, ge=1)

    @model_validator(mode="after")
    def _ranges_ordered(self):
        for name in (
            "ttft_range_ms",
            "itl_range_ms",
            "budget_range",
            "eval_score_range",
            "context_length_range",
        ):
            low, high = getattr(self, name)
            if low > high:
                raise ValueError(f"{name} minimum {low} exceeds maximum {high}")
        return self


class EstimateKind(str, Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class MatrixCell:
    accelerator: str
    model: str
    kind: EstimateKind
    ttft_ms: float | None = None
    itl_ms: float | None = None
    fallback_reason: str | None = None

    @property
    def can_run(self) -> bool:
        return self.kind is not EstimateKind.UNAVAILABLE


@dataclass(frozen=True)
class DeviceModelMatrix:
    cells: dict[tuple[str, str], MatrixCell]
    models: list[ModelPreset]
    devices: list[AcceleratorSpec] = field(default_factory=list)

    def cell(self, accelerator: str, model: str) -> MatrixCell:
        return self.cells[(accelerator, model)]


def _in_range(value: float, bounds: tuple[float, float]) -> bool:
    return bounds[0] <= value <= bounds[1]


def fits_in_memory(accelerator: AcceleratorSpec, model: ModelSpec) -> bool:
    weights_gb = model_size_bytes(model) / BYTES_PER_GB
    return weights_gb <= accelerator.memory_gb * RUNNABLE_MEMORY_FRACTION


def approximate_latency(
    accelerator: AcceleratorSpec,
    model: ModelSpec,
    input_tokens: int,
) -> tuple[float, float]:
    """Rough (ttft_ms, itl_ms) from parameter count alone."""
    ttft = model.parameter_count_b * input_tokens * 2 / max(accelerator.compute_tflops * 1000, 1)
    itl = model.parameter_count_b * 2 / max(accelerator.memory_bandwidth_gbps, 1)
    return max(APPROX_MIN_TTFT_MS, ttft), max(APPROX_MIN_ITL_MS, itl)


def estimate_cell(
    accelerator: AcceleratorSpec,
    preset: ModelPreset,
    input_tokens: int,
    engine: PerformanceEngine,
    overhead: SystemOverhead = DEFAULT_SYSTEM_OVERHEAD,
    allow_approximate: bool = False,
) -> MatrixCell:
    """Latency of *preset* on *accelerator* with the prompt set to *input_tokens*.

    Raises EvaluationError from the precise path unless *allow_approximate*.
    """
    if not fits_in_memory(accelerator, preset.spec):
        return MatrixCell(accelerator.name, preset.name, EstimateKind.UNAVAILABLE)

    spec = ModelSpec.model_validate({**preset.spec.model_dump(), "prompt_tokens": input_tokens})
    try:
        result = engine.evaluate(accelerator, spec, overhead)
    except EvaluationError as e:
        if not allow_approximate:
            raise
        logger.warning(
            "Precise estimate failed for %s on %s, using approximation: %s",
            preset.name, accelerator.name, e.cause,
        )
        ttft, itl = approximate_latency(accelerator, spec, input_tokens)
        return MatrixCell(
            accelerator.name, preset.name, EstimateKind.APPROXIMATE,
            ttft_ms=ttft, itl_ms=itl, fallback_reason=str(e.cause),
        )

    logger.debug(
        "Exact estimate for %s on %s: ttft=%.1f ms, itl=%.2f ms",
        preset.name, accelerator.name, result.prefill_time_ms, result.per_token_time_ms,
    )
    return MatrixCell(
        accelerator.name, preset.name, EstimateKind.EXACT,
        ttft_ms=result.prefill_time_ms, itl_ms=result.per_token_time_ms,
    )


def cell_matches(cell: MatrixCell, price: float | None, filters: MatrixFilters) -> bool:
    """Runnable, latencies in range, and price in budget (unpriced always passes)."""
    if not cell.can_run:
        return False
    return (
        _in_range(cell.ttft_ms, filters.ttft_range_ms)
        and _in_range(cell.itl_ms, filters.itl_range_ms)
        and (price is None or _in_range(price, filters.budget_range))
    )


def filter_presets(presets: list[ModelPreset], filters: MatrixFilters) -> list[ModelPreset]:
    return [
        p for p in presets
        if _in_range(p.eval_score, filters.eval_score_range)
        and _in_range(p.spec.context_length, filters.context_length_range)
    ]


def build_matrix(
    accelerators: list[AcceleratorSpec],
    presets: list[ModelPreset],
    filters: MatrixFilters | None = None,
    engine: PerformanceEngine | None = None,
    overhead: SystemOverhead = DEFAULT_SYSTEM_OVERHEAD,
    allow_approximate: bool = False,
) -> DeviceModelMatrix:
    """Compute every cell, then keep priced devices with a matching filtered model.

    Devices are ordered by price, cheapest first.
    """
    if filters is None:
        filters = MatrixFilters()
    if engine is None:
        engine = PerformanceEngine()

    cells: dict[tuple[str, str], MatrixCell] = {}
    for acc in accelerators:
        for preset in presets:
            cells[(acc.name, preset.name)] = estimate_cell(
                acc, preset, filters.input_tokens, engine, overhead, allow_approximate
            )

    models = filter_presets(presets, filters)
    devices = [
        acc for acc in accelerators
        if acc.price is not None
        and any(cell_matches(cells[(acc.name, p.name)], acc.price, filters) for p in models)
    ]
    devices.sort(key=lambda acc: acc.price)

    approximate = sum(1 for c in cells.values() if c.kind is EstimateKind.APPROXIMATE)
    logger.info(
        "Matrix: %d cells (%d approximate), %d devices and %d models after filtering",
        len(cells), approximate, len(devices), len(models),
    )
    return DeviceModelMatrix(cells=cells, models=models, devices=devices)

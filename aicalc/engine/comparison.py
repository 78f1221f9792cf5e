"""Evaluate one model across several accelerators."""

import logging
from dataclasses import dataclass

from aicalc.engine.performance import PerformanceEngine
from aicalc.engine.specs import (
    DEFAULT_SYSTEM_OVERHEAD,
    AcceleratorSpec,
    ModelSpec,
    PerformanceResult,
    SystemOverhead,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonEntry:
    accelerator: AcceleratorSpec
    result: PerformanceResult


def compare_accelerators(
    accelerators: list[AcceleratorSpec],
    model: ModelSpec,
    overhead: SystemOverhead = DEFAULT_SYSTEM_OVERHEAD,
    engine: PerformanceEngine | None = None,
) -> list[ComparisonEntry]:
    """Evaluate *model* on every accelerator, fastest (tokens/s) first.

    Evaluation errors propagate; a comparison with a hole in it is not useful.
    """
    if engine is None:
        engine = PerformanceEngine()

    entries = [
        ComparisonEntry(accelerator=acc, result=engine.evaluate(acc, model, overhead))
        for acc in accelerators
    ]
    entries.sort(key=lambda e: e.result.throughput_tok_per_sec, reverse=True)
    logger.info("Compared %s across %d accelerators", model.name, len(entries))
    return entries


def bottleneck_rows(entries: list[ComparisonEntry]) -> list[dict]:
    """Roofline position of each entry, for tabular display."""
    return [
        {
            "accelerator": e.accelerator.name,
            "ops_to_byte_ratio": round(e.result.ops_to_byte_ratio, 2),
            "arithmetic_intensity": round(e.result.arithmetic_intensity, 2),
            "is_memory_bound": e.result.is_memory_bound,
        }
        for e in entries
    ]

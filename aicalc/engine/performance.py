"""Performance engine: combines roofline, latency and memory into one result."""

import logging

from aicalc.engine.architecture import EnginePolicy
from aicalc.engine.latency import analyze_latency
from aicalc.engine.memory import analyze_memory
from aicalc.engine.roofline import analyze_roofline
from aicalc.engine.specs import (
    AcceleratorSpec,
    ModelSpec,
    PerformanceResult,
    SystemOverhead,
)
from aicalc.errors import EvaluationError

logger = logging.getLogger(__name__)

# 100% efficiency in both phases when the caller gives no overhead
NO_OVERHEAD = SystemOverhead()


class PerformanceEngine:
    """Evaluates model workloads on accelerators under a fixed policy.

    The policy is resolved once, at construction. Evaluations are pure: the
    same inputs always give the same result and nothing is cached.
    """

    def __init__(self, policy: EnginePolicy | None = None) -> None:
        self.policy = policy if policy is not None else EnginePolicy.from_settings()

    def evaluate(
        self,
        accelerator: AcceleratorSpec,
        model: ModelSpec,
        overhead: SystemOverhead | None = None,
    ) -> PerformanceResult:
        """Evaluate *model* on *accelerator*.

        Raises EvaluationError (caused by the original failure, typically a
        MissingArchitectureField under strict validation). No partial result
        is ever returned.
        """
        if overhead is None:
            overhead = NO_OVERHEAD

        try:
            roofline = analyze_roofline(accelerator, model, self.policy)
            latency = analyze_latency(accelerator, model, overhead)
            memory = analyze_memory(accelerator, model, self.policy)
        except Exception as e:
            raise EvaluationError("performance evaluation", accelerator.name, model.name, e) from e

        logger.debug(
            "%s on %s: %s-bound (AI=%.2f, ratio=%.2f), %.1f tok/s",
            model.name, accelerator.name, roofline.bound_type.value,
            roofline.arithmetic_intensity, roofline.ops_to_byte_ratio,
            latency.throughput_tok_per_sec,
        )

        return PerformanceResult(
            ops_to_byte_ratio=roofline.ops_to_byte_ratio,
            arithmetic_intensity=roofline.arithmetic_intensity,
            bound_type=roofline.bound_type,
            prefill_time_ms=latency.prefill_time_ms,
            per_token_time_ms=latency.per_token_time_ms,
            total_time_ms=latency.total_time_ms,
            throughput_tok_per_sec=latency.throughput_tok_per_sec,
            model_size_gb=memory.model_size_gb,
            kv_cache_per_token_gb=memory.kv_cache_per_token_gb,
            current_kv_cache_gb=memory.current_kv_cache_gb,
            activation_memory_gb=memory.activation_memory_gb,
            system_overhead_gb=memory.system_overhead_gb,
            total_memory_gb=memory.total_memory_gb,
            free_memory_for_kv_gb=memory.free_memory_for_kv_gb,
            memory_utilization_pct=memory.display_utilization_pct,
            max_kv_cache_tokens=memory.max_kv_cache_tokens,
            max_batch_size=memory.max_batch_size,
            memory_warning=memory.warning,
            performance_warning=latency.warning,
        )


def evaluate_performance(
    accelerator: AcceleratorSpec,
    model: ModelSpec,
    overhead: SystemOverhead | None = None,
    policy: EnginePolicy | None = None,
) -> PerformanceResult:
    """One-shot evaluation with a freshly built engine."""
    return PerformanceEngine(policy).evaluate(accelerator, model, overhead)

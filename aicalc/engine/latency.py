"""Prefill and decode latency from peak compute and memory bandwidth."""

from dataclasses import dataclass

from aicalc.engine.memory import model_size_bytes
from aicalc.engine.quantization import get_quantization_info
from aicalc.engine.specs import AcceleratorSpec, ModelSpec, SystemOverhead

# Below this the result carries a performance warning
LOW_THROUGHPUT_TOK_PER_SEC = 5


@dataclass(frozen=True)
class LatencyBreakdown:
    prefill_time_ms: float
    per_token_time_ms: float
    total_time_ms: float
    throughput_tok_per_sec: float
    warning: str | None


def prefill_time_ms(
    accelerator: AcceleratorSpec,
    model: ModelSpec,
    overhead: SystemOverhead,
) -> float:
    """Time to first token: 2 FLOPs per parameter per prompt token, compute-limited."""
    info = get_quantization_info(model.quantization)
    flops = model.prompt_tokens * model.parameter_count_b * 1e9 * 2
    peak = accelerator.compute_tflops * 1e12 * info.compute_multiplier
    return flops * 1000 / peak / (overhead.prefill_efficiency_pct / 100)


def per_token_time_ms(
    accelerator: AcceleratorSpec,
    model: ModelSpec,
    overhead: SystemOverhead,
) -> float:
    """Inter-token latency: every decode step streams all weights once."""
    bandwidth = accelerator.memory_bandwidth_gbps * 1e9
    return model_size_bytes(model) * 1000 / bandwidth / (overhead.decode_efficiency_pct / 100)


def throughput_warning(throughput: float) -> str | None:
    if throughput < LOW_THROUGHPUT_TOK_PER_SEC:
        return (
            f"Very low throughput ({throughput:.1f} token/s). Consider using a more "
            f"powerful accelerator, smaller model, better quantization, or optimizing "
            f"your setup for better performance."
        )
    return None


def analyze_latency(
    accelerator: AcceleratorSpec,
    model: ModelSpec,
    overhead: SystemOverhead,
) -> LatencyBreakdown:
    prefill = prefill_time_ms(accelerator, model, overhead)
    per_token = per_token_time_ms(accelerator, model, overhead)
    total = prefill + per_token * model.output_tokens

    if total > 0:
        throughput = (model.prompt_tokens + model.output_tokens) / total * 1000
    else:
        throughput = 0.0

    return LatencyBreakdown(
        prefill_time_ms=prefill,
        per_token_time_ms=per_token,
        total_time_ms=total,
        throughput_tok_per_sec=throughput,
        warning=throughput_warning(throughput),
    )

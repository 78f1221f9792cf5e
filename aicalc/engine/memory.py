"""Memory footprint model: weights, KV cache, activations and headroom.

All sizes are decimal (1 GB = 1e9 bytes).
"""

import logging
import math
from dataclasses import dataclass

from aicalc.engine.architecture import (
    STAGE_ACTIVATION,
    STAGE_KV_CACHE,
    EnginePolicy,
    KvCacheTokenBasis,
    require_field,
    resolve_kv_head_count,
)
from aicalc.engine.quantization import get_quantization_info
from aicalc.engine.specs import AcceleratorSpec, ModelSpec

logger = logging.getLogger(__name__)

BYTES_PER_GB = 1e9

# Runtime/framework reservation, only modelled under strict validation
FIXED_SYSTEM_OVERHEAD_BYTES = 1e9

# Per-token activation bytes per unit of hidden / intermediate size
ACTIVATION_HIDDEN_FACTOR = 18
ACTIVATION_INTERMEDIATE_FACTOR = 4

HIGH_UTILIZATION_PCT = 90
MODERATE_UTILIZATION_PCT = 80
UTILIZATION_DISPLAY_CAP = 999


@dataclass(frozen=True)
class MemoryBreakdown:
    model_size_gb: float
    kv_cache_per_token_gb: float
    current_kv_cache_gb: float
    activation_memory_gb: float
    system_overhead_gb: float
    total_memory_gb: float
    free_memory_for_kv_gb: float
    utilization_pct: float
    max_kv_cache_tokens: int
    max_batch_size: int
    warning: str | None

    @property
    def display_utilization_pct(self) -> float:
        return min(self.utilization_pct, UTILIZATION_DISPLAY_CAP)


# ---------------------------------------------------------------------------
# Individual terms (bytes)
# ---------------------------------------------------------------------------


def model_size_bytes(model: ModelSpec) -> float:
    info = get_quantization_info(model.quantization)
    return model.parameter_count_b * 1e9 * info.bytes_per_parameter


def kv_cache_bytes_per_token(model: ModelSpec, policy: EnginePolicy) -> float:
    """Key and value tensors for one token across every layer."""
    info = get_quantization_info(model.quantization)
    layers = require_field(model, "layer_count", STAGE_KV_CACHE, policy)
    kv_heads = resolve_kv_head_count(model, STAGE_KV_CACHE, policy)
    head_dim = require_field(model, "head_dimension", STAGE_KV_CACHE, policy)
    return 2 * layers * kv_heads * head_dim * info.bytes_per_parameter


def kv_cache_tokens(model: ModelSpec, policy: EnginePolicy) -> int:
    """Tokens held in the KV cache per sequence; also the sequence length for batching."""
    if policy.kv_cache_token_basis is KvCacheTokenBasis.CONTEXT_LENGTH:
        return model.context_length
    return model.prompt_tokens + model.output_tokens


def activation_memory_bytes(model: ModelSpec, policy: EnginePolicy) -> float:
    if not policy.strict_architecture_validation:
        return 0.0
    hidden = require_field(model, "hidden_size", STAGE_ACTIVATION, policy)
    intermediate = require_field(model, "intermediate_size", STAGE_ACTIVATION, policy)
    tokens = model.prompt_tokens + model.output_tokens
    per_token = ACTIVATION_HIDDEN_FACTOR * hidden + ACTIVATION_INTERMEDIATE_FACTOR * intermediate
    return model.batch_size * tokens * per_token


def system_overhead_bytes(policy: EnginePolicy) -> float:
    return FIXED_SYSTEM_OVERHEAD_BYTES if policy.strict_architecture_validation else 0.0


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------


def memory_warning(total_gb: float, capacity_gb: float, utilization_pct: float) -> str | None:
    """First matching advisory: overflow, then high, then moderate usage."""
    if total_gb > capacity_gb:
        shortfall = total_gb - capacity_gb
        return (
            f"Model requires {total_gb:.1f}GB but accelerator only has {capacity_gb:g}GB. "
            f"Shortfall: {shortfall:.1f}GB. Consider using a smaller model, better "
            f"quantization, or an accelerator with more memory."
        )
    if utilization_pct > HIGH_UTILIZATION_PCT:
        return (
            f"High memory usage ({utilization_pct:.1f}%). May cause performance issues "
            f"or OOM errors. Consider reducing batch size or sequence length."
        )
    if utilization_pct > MODERATE_UTILIZATION_PCT:
        return (
            f"Moderate memory usage ({utilization_pct:.1f}%). "
            f"Monitor for potential memory pressure."
        )
    return None


# ---------------------------------------------------------------------------
# Full analysis
# ---------------------------------------------------------------------------


def analyze_memory(
    accelerator: AcceleratorSpec,
    model: ModelSpec,
    policy: EnginePolicy,
) -> MemoryBreakdown:
    weights = model_size_bytes(model)
    per_token = kv_cache_bytes_per_token(model, policy)
    tokens = kv_cache_tokens(model, policy)
    current_kv = per_token * tokens * model.batch_size
    activations = activation_memory_bytes(model, policy)
    overhead = system_overhead_bytes(policy)

    capacity = accelerator.memory_gb * BYTES_PER_GB
    total = weights + overhead + activations + current_kv
    free_for_kv = max(0.0, capacity - (weights + overhead + activations))

    max_tokens = math.floor(free_for_kv / per_token) if per_token > 0 else 0
    max_batch = max_tokens // tokens if tokens > 0 else 0

    utilization = total / capacity * 100
    total_gb = total / BYTES_PER_GB

    logger.debug(
        "Memory for %s on %s: total=%.2f GB (%.1f%%), max_kv_tokens=%d",
        model.name, accelerator.name, total_gb, utilization, max_tokens,
    )

    return MemoryBreakdown(
        model_size_gb=weights / BYTES_PER_GB,
        kv_cache_per_token_gb=per_token / BYTES_PER_GB,
        current_kv_cache_gb=current_kv / BYTES_PER_GB,
        activation_memory_gb=activations / BYTES_PER_GB,
        system_overhead_gb=overhead / BYTES_PER_GB,
        total_memory_gb=total_gb,
        free_memory_for_kv_gb=free_for_kv / BYTES_PER_GB,
        utilization_pct=utilization,
        max_kv_cache_tokens=max_tokens,
        max_batch_size=max_batch,
        warning=memory_warning(total_gb, accelerator.memory_gb, utilization),
    )

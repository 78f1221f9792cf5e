"""Data model for accelerators, model workloads and evaluation results."""

import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aicalc.engine.quantization import Quantization

# Workload defaults used when a caller does not specify one
DEFAULT_BATCH_SIZE = 1
DEFAULT_PROMPT_TOKENS = 350
DEFAULT_OUTPUT_TOKENS = 150

ARCHITECTURE_FIELDS = (
    "head_dimension",
    "layer_count",
    "head_count",
    "kv_head_count",
    "hidden_size",
    "intermediate_size",
)


class AcceleratorSpec(BaseModel):
    """Peak capabilities of a single accelerator."""

    model_config = ConfigDict(frozen=True)

    name: str
    compute_tflops: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Dense FP16 throughput in TFLOPS"
    )
    memory_bandwidth_gbps: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Memory bandwidth in GB/s"
    )
    memory_gb: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Memory capacity in GB (1e9 bytes)"
    )
    price: float | None = Field(
        None, ge=0, allow_inf_nan=False, description="On-demand price in USD per hour"
    )


class ModelSpec(BaseModel):
    """A model plus the inference workload it is evaluated under.

    Architecture fields are optional. Anything that is not a finite positive
    number (None, NaN, inf, 0, negatives) is stored as None so that the
    engine's architecture policy decides what happens next.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    parameter_count_b: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Parameter count in billions"
    )
    context_length: int = Field(..., ge=0, description="Attention sequence length N")
    batch_size: int = Field(DEFAULT_BATCH_SIZE, ge=1)
    prompt_tokens: int = Field(DEFAULT_PROMPT_TOKENS, ge=0)
    output_tokens: int = Field(DEFAULT_OUTPUT_TOKENS, ge=0)
    quantization: Quantization = Quantization.FP16
    head_dimension: int | None = Field(None, description="Per-head dimension d")
    layer_count: int | None = Field(None, description="Number of transformer layers")
    head_count: int | None = Field(None, description="Number of attention heads")
    kv_head_count: int | None = Field(
        None, description="Number of KV heads (grouped-query attention)"
    )
    hidden_size: int | None = None
    intermediate_size: int | None = Field(None, description="MLP intermediate size")

    @field_validator(*ARCHITECTURE_FIELDS, mode="before")
    @classmethod
    def _absent_unless_positive(cls, value):
        if value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return value
        if not math.isfinite(number) or number <= 0:
            return None
        return value


class SystemOverhead(BaseModel):
    """Real-world efficiency relative to theoretical peak, per phase."""

    model_config = ConfigDict(frozen=True)

    prefill_efficiency_pct: float = Field(100.0, ge=1, le=200, allow_inf_nan=False)
    decode_efficiency_pct: float = Field(100.0, ge=1, le=200, allow_inf_nan=False)

    @classmethod
    def uniform(cls, system_efficiency_pct: float) -> "SystemOverhead":
        """Single system-wide efficiency applied to both phases."""
        return cls(
            prefill_efficiency_pct=system_efficiency_pct,
            decode_efficiency_pct=system_efficiency_pct,
        )


DEFAULT_SYSTEM_OVERHEAD = SystemOverhead(
    prefill_efficiency_pct=80.0, decode_efficiency_pct=80.0
)


class BoundType(str, Enum):
    COMPUTE = "compute"
    MEMORY = "memory"


class PerformanceResult(BaseModel):
    """Everything derived from one accelerator, one model and one overhead."""

    model_config = ConfigDict(frozen=True)

    ops_to_byte_ratio: float
    arithmetic_intensity: float
    bound_type: BoundType

    prefill_time_ms: float
    per_token_time_ms: float
    total_time_ms: float
    throughput_tok_per_sec: float

    model_size_gb: float
    kv_cache_per_token_gb: float
    current_kv_cache_gb: float
    activation_memory_gb: float
    system_overhead_gb: float
    total_memory_gb: float
    free_memory_for_kv_gb: float
    memory_utilization_pct: float = Field(
        ..., description="Display value, capped at 999"
    )
    max_kv_cache_tokens: int
    max_batch_size: int

    memory_warning: str | None = None
    performance_warning: str | None = None

    @property
    def is_memory_bound(self) -> bool:
        return self.bound_type is BoundType.MEMORY

    @property
    def is_compute_bound(self) -> bool:
        return self.bound_type is BoundType.COMPUTE

    @property
    def has_memory_warning(self) -> bool:
        return self.memory_warning is not None

    @property
    def has_performance_warning(self) -> bool:
        return self.performance_warning is not None

"""Roofline classification of the attention workload."""

from dataclasses import dataclass

from aicalc.engine.architecture import STAGE_INTENSITY, EnginePolicy, require_field
from aicalc.engine.quantization import Quantization, get_quantization_info
from aicalc.engine.specs import AcceleratorSpec, BoundType, ModelSpec

MIN_ARITHMETIC_INTENSITY = 0.1


@dataclass(frozen=True)
class RooflineAnalysis:
    ops_to_byte_ratio: float
    arithmetic_intensity: float
    bound_type: BoundType


def ops_to_byte_ratio(accelerator: AcceleratorSpec, quantization: Quantization) -> float:
    """Operations the accelerator can execute per byte it can move."""
    info = get_quantization_info(quantization)
    flops = accelerator.compute_tflops * 1e12 * info.compute_multiplier
    return flops / (accelerator.memory_bandwidth_gbps * 1e9)


def arithmetic_intensity(model: ModelSpec, policy: EnginePolicy) -> float:
    """FLOPs per byte of one attention pass over N tokens, scaled by batch.

    Memory movement is (8N^2 + 8Nd) values and compute is 4N^2d + 3N^2
    operations. The result never drops below 0.1.
    """
    n = model.context_length
    d = require_field(model, "head_dimension", STAGE_INTENSITY, policy)
    info = get_quantization_info(model.quantization)

    memory = (8 * n * n + 8 * n * d) * info.bytes_per_parameter / 2
    if memory == 0:
        return MIN_ARITHMETIC_INTENSITY
    compute = 4 * n * n * d + 3 * n * n
    return max(MIN_ARITHMETIC_INTENSITY, compute / memory * model.batch_size)


def classify_bound(ratio: float, intensity: float) -> BoundType:
    # Equality counts as compute-bound
    return BoundType.MEMORY if intensity < ratio else BoundType.COMPUTE


def analyze_roofline(
    accelerator: AcceleratorSpec,
    model: ModelSpec,
    policy: EnginePolicy,
) -> RooflineAnalysis:
    ratio = ops_to_byte_ratio(accelerator, model.quantization)
    intensity = arithmetic_intensity(model, policy)
    return RooflineAnalysis(
        ops_to_byte_ratio=ratio,
        arithmetic_intensity=intensity,
        bound_type=classify_bound(ratio, intensity),
    )

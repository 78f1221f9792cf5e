"""Tests for the performance engine: the worked 7B example end to end.

The accelerator and model below are shared with the other engine tests.
"""

import pytest

from aicalc.engine.architecture import EnginePolicy, KvCacheTokenBasis
from aicalc.engine.performance import PerformanceEngine, evaluate_performance
from aicalc.engine.quantization import Quantization
from aicalc.engine.specs import (
    AcceleratorSpec,
    BoundType,
    ModelSpec,
    SystemOverhead,
)
from aicalc.errors import EvaluationError, MissingArchitectureField

# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------

ACCELERATOR = AcceleratorSpec(
    name="Test-1000", compute_tflops=1000, memory_bandwidth_gbps=3000, memory_gb=80
)

# 7B FP16 with no architecture details beyond head dimension
BARE_7B = ModelSpec(
    name="bare-7b",
    parameter_count_b=7,
    context_length=4096,
    head_dimension=128,
    batch_size=1,
    prompt_tokens=350,
    output_tokens=150,
)

# Same model with every architecture field filled in
FULL_7B = BARE_7B.model_copy(update={
    "name": "full-7b",
    "layer_count": 32,
    "head_count": 32,
    "kv_head_count": 8,
    "hidden_size": 4096,
    "intermediate_size": 11008,
})

LENIENT = EnginePolicy.lenient()
STRICT = EnginePolicy.strict()


# ===================================================================
# Worked example (lenient, actual tokens)
# ===================================================================


class TestWorkedExample:
    @pytest.fixture
    def result(self):
        return PerformanceEngine(LENIENT).evaluate(ACCELERATOR, BARE_7B)

    def test_roofline(self, result):
        assert result.model_size_gb == pytest.approx(14.0)
        assert result.ops_to_byte_ratio == pytest.approx(333.333, rel=1e-5)
        assert result.arithmetic_intensity == pytest.approx(62.4242, rel=1e-5)
        assert result.bound_type is BoundType.MEMORY
        assert result.is_memory_bound
        assert not result.is_compute_bound

    def test_latency(self, result):
        assert result.prefill_time_ms == pytest.approx(4.9)
        assert result.per_token_time_ms == pytest.approx(4.66667, rel=1e-5)
        assert result.total_time_ms == pytest.approx(704.9)
        assert result.throughput_tok_per_sec == pytest.approx(709.32, rel=1e-4)
        assert not result.has_performance_warning

    def test_memory(self, result):
        assert result.kv_cache_per_token_gb == pytest.approx(524_288 / 1e9)
        assert result.current_kv_cache_gb == pytest.approx(0.262144)
        assert result.activation_memory_gb == 0
        assert result.system_overhead_gb == 0
        assert result.total_memory_gb == pytest.approx(14.262144)
        assert result.free_memory_for_kv_gb == pytest.approx(66.0)
        assert result.max_kv_cache_tokens == 125_885
        assert result.max_batch_size == 251
        assert result.memory_warning is None

    def test_overflow_on_small_accelerator(self):
        small = ACCELERATOR.model_copy(update={"memory_gb": 8})
        result = evaluate_performance(small, BARE_7B, policy=LENIENT)
        assert result.has_memory_warning
        assert result.memory_warning.startswith(
            "Model requires 14.3GB but accelerator only has 8GB. Shortfall: 6.3GB."
        )
        assert result.free_memory_for_kv_gb == 0
        assert result.max_kv_cache_tokens == 0
        assert result.max_batch_size == 0


# ===================================================================
# Strict policy
# ===================================================================


class TestStrictPolicy:
    def test_full_model_includes_overhead_and_activations(self):
        result = PerformanceEngine(STRICT).evaluate(ACCELERATOR, FULL_7B)
        assert result.system_overhead_gb == pytest.approx(1.0)
        # 500 tokens x (18 x 4096 + 4 x 11008) bytes
        assert result.activation_memory_gb == pytest.approx(0.05888)
        # 2 x 32 layers x 8 KV heads x 128 x 2 bytes
        assert result.kv_cache_per_token_gb == pytest.approx(131_072 / 1e9)
        assert result.total_memory_gb == pytest.approx(14 + 1 + 0.05888 + 0.065536)

    def test_missing_head_dimension_names_field_and_stage(self):
        model = FULL_7B.model_copy(update={"head_dimension": None})
        with pytest.raises(EvaluationError) as exc_info:
            PerformanceEngine(STRICT).evaluate(ACCELERATOR, model)
        cause = exc_info.value.cause
        assert isinstance(cause, MissingArchitectureField)
        assert cause.field == "head_dimension"
        assert cause.stage == "arithmetic intensity"
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.accelerator == "Test-1000"

    def test_missing_layers_fails_in_kv_cache(self):
        model = FULL_7B.model_copy(update={"layer_count": None})
        with pytest.raises(EvaluationError) as exc_info:
            PerformanceEngine(STRICT).evaluate(ACCELERATOR, model)
        assert exc_info.value.cause.field == "layer_count"
        assert exc_info.value.cause.stage == "KV cache"

    def test_missing_hidden_size_fails_in_activation_memory(self):
        model = FULL_7B.model_copy(update={"hidden_size": None})
        with pytest.raises(EvaluationError, match="activation memory"):
            PerformanceEngine(STRICT).evaluate(ACCELERATOR, model)

    def test_bare_model_rejected(self):
        with pytest.raises(EvaluationError):
            PerformanceEngine(STRICT).evaluate(ACCELERATOR, BARE_7B)


# ===================================================================
# Behaviour across inputs
# ===================================================================


class TestEngineBehaviour:
    def test_repeated_evaluation_is_identical(self):
        engine = PerformanceEngine(LENIENT)
        assert engine.evaluate(ACCELERATOR, BARE_7B) == engine.evaluate(ACCELERATOR, BARE_7B)

    def test_no_overhead_means_full_efficiency(self):
        engine = PerformanceEngine(LENIENT)
        explicit = engine.evaluate(ACCELERATOR, BARE_7B, SystemOverhead())
        assert engine.evaluate(ACCELERATOR, BARE_7B) == explicit

    def test_decode_efficiency_scales_per_token_time(self):
        engine = PerformanceEngine(LENIENT)
        half = SystemOverhead(prefill_efficiency_pct=100, decode_efficiency_pct=50)
        result = engine.evaluate(ACCELERATOR, BARE_7B, half)
        assert result.per_token_time_ms == pytest.approx(9.33333, rel=1e-5)
        assert result.prefill_time_ms == pytest.approx(4.9)

    def test_zero_tokens_gives_zero_throughput(self):
        model = BARE_7B.model_copy(update={"prompt_tokens": 0, "output_tokens": 0})
        result = PerformanceEngine(LENIENT).evaluate(ACCELERATOR, model)
        assert result.total_time_ms == 0
        assert result.throughput_tok_per_sec == 0
        assert result.has_performance_warning

    def test_low_throughput_warning(self):
        slow = AcceleratorSpec(name="slow", compute_tflops=1, memory_bandwidth_gbps=10, memory_gb=80)
        result = PerformanceEngine(LENIENT).evaluate(slow, BARE_7B)
        assert result.throughput_tok_per_sec < 5
        assert result.performance_warning.startswith("Very low throughput (")

    def test_int4_shrinks_model_and_raises_ratio(self):
        model = BARE_7B.model_copy(update={"quantization": Quantization.INT4})
        result = PerformanceEngine(LENIENT).evaluate(ACCELERATOR, model)
        assert result.model_size_gb == pytest.approx(3.5)
        assert result.ops_to_byte_ratio == pytest.approx(1333.333, rel=1e-5)

    def test_context_length_basis_sizes_kv_by_context(self):
        policy = EnginePolicy.lenient(KvCacheTokenBasis.CONTEXT_LENGTH)
        result = PerformanceEngine(policy).evaluate(ACCELERATOR, BARE_7B)
        assert result.current_kv_cache_gb == pytest.approx(524_288 * 4096 / 1e9)
        assert result.max_batch_size == 125_885 // 4096

    def test_large_batch_becomes_compute_bound(self):
        model = BARE_7B.model_copy(update={"batch_size": 8})
        result = PerformanceEngine(LENIENT).evaluate(ACCELERATOR, model)
        assert result.arithmetic_intensity == pytest.approx(62.4242 * 8, rel=1e-5)
        assert result.is_compute_bound

    def test_engine_reads_policy_from_environment(self, monkeypatch):
        monkeypatch.setenv("AICALC_STRICT_ARCHITECTURE", "false")
        monkeypatch.setenv("AICALC_KV_CACHE_TOKEN_BASIS", "context_length")
        engine = PerformanceEngine()
        assert engine.policy == EnginePolicy(
            strict_architecture_validation=False,
            kv_cache_token_basis=KvCacheTokenBasis.CONTEXT_LENGTH,
        )

"""Tests for the memory footprint model."""

import pytest

from aicalc.engine.architecture import EnginePolicy, KvCacheTokenBasis
from aicalc.engine.memory import (
    activation_memory_bytes,
    analyze_memory,
    kv_cache_bytes_per_token,
    kv_cache_tokens,
    memory_warning,
    model_size_bytes,
    system_overhead_bytes,
)
from aicalc.engine.quantization import Quantization
from aicalc.errors import MissingArchitectureField
from tests.test_performance import ACCELERATOR, BARE_7B, FULL_7B, LENIENT, STRICT


# ===================================================================
# Individual terms
# ===================================================================


class TestTerms:
    @pytest.mark.parametrize("quantization, expected", [
        (Quantization.FP32, 28e9),
        (Quantization.FP16, 14e9),
        (Quantization.INT8, 7e9),
        (Quantization.INT4, 3.5e9),
    ])
    def test_model_size(self, quantization, expected):
        model = BARE_7B.model_copy(update={"quantization": quantization})
        assert model_size_bytes(model) == pytest.approx(expected)

    def test_kv_per_token_uses_kv_heads(self):
        assert kv_cache_bytes_per_token(FULL_7B, STRICT) == 2 * 32 * 8 * 128 * 2

    def test_kv_heads_fall_back_to_head_count(self):
        model = FULL_7B.model_copy(update={"kv_head_count": None})
        assert kv_cache_bytes_per_token(model, STRICT) == 2 * 32 * 32 * 128 * 2

    def test_strict_without_any_head_count_raises(self):
        model = FULL_7B.model_copy(update={"kv_head_count": None, "head_count": None})
        with pytest.raises(MissingArchitectureField) as exc_info:
            kv_cache_bytes_per_token(model, STRICT)
        assert exc_info.value.field == "kv_head_count"
        assert exc_info.value.stage == "KV cache"

    def test_lenient_defaults_fill_missing_fields(self):
        model = BARE_7B.model_copy(update={"head_dimension": None})
        assert kv_cache_bytes_per_token(model, LENIENT) == 2 * 32 * 32 * 128 * 2

    def test_token_basis(self):
        assert kv_cache_tokens(BARE_7B, LENIENT) == 500
        context = EnginePolicy.lenient(KvCacheTokenBasis.CONTEXT_LENGTH)
        assert kv_cache_tokens(BARE_7B, context) == 4096

    def test_activations_and_overhead_only_in_strict_mode(self):
        assert activation_memory_bytes(FULL_7B, LENIENT) == 0
        assert system_overhead_bytes(LENIENT) == 0
        assert activation_memory_bytes(FULL_7B, STRICT) == 500 * (18 * 4096 + 4 * 11008)
        assert system_overhead_bytes(STRICT) == 1e9

    def test_activations_scale_with_batch(self):
        batched = FULL_7B.model_copy(update={"batch_size": 4})
        assert activation_memory_bytes(batched, STRICT) == 4 * activation_memory_bytes(FULL_7B, STRICT)

    def test_activations_need_intermediate_size_in_strict_mode(self):
        model = FULL_7B.model_copy(update={"intermediate_size": None})
        with pytest.raises(MissingArchitectureField, match="intermediate_size"):
            activation_memory_bytes(model, STRICT)


# ===================================================================
# Warnings
# ===================================================================


class TestMemoryWarning:
    def test_overflow_reports_shortfall(self):
        message = memory_warning(14.262144, 8, 178.3)
        assert message.startswith(
            "Model requires 14.3GB but accelerator only has 8GB. Shortfall: 6.3GB."
        )

    def test_overflow_wins_over_high_usage(self):
        assert memory_warning(100, 80, 125).startswith("Model requires")

    def test_high_usage(self):
        assert memory_warning(72.8, 80, 91.0).startswith("High memory usage (91.0%)")

    def test_moderate_usage(self):
        assert memory_warning(68, 80, 85.0) == (
            "Moderate memory usage (85.0%). Monitor for potential memory pressure."
        )

    def test_thresholds_are_exclusive(self):
        assert memory_warning(64, 80, 80.0) is None
        assert memory_warning(72, 80, 90.0).startswith("Moderate")


# ===================================================================
# Full analysis
# ===================================================================


class TestAnalyzeMemory:
    def test_high_usage_band(self):
        acc = ACCELERATOR.model_copy(update={"memory_gb": 15.5})
        breakdown = analyze_memory(acc, BARE_7B, LENIENT)
        assert 90 < breakdown.utilization_pct < 100
        assert breakdown.warning.startswith("High memory usage")

    def test_moderate_usage_band(self):
        acc = ACCELERATOR.model_copy(update={"memory_gb": 17})
        breakdown = analyze_memory(acc, BARE_7B, LENIENT)
        assert breakdown.warning.startswith("Moderate memory usage")

    def test_display_utilization_is_capped(self):
        acc = ACCELERATOR.model_copy(update={"memory_gb": 1})
        breakdown = analyze_memory(acc, BARE_7B, LENIENT)
        assert breakdown.utilization_pct == pytest.approx(1426.2144)
        assert breakdown.display_utilization_pct == 999
        assert breakdown.free_memory_for_kv_gb == 0
        assert breakdown.max_batch_size == 0

    def test_zero_sequence_length_gives_zero_batch(self):
        model = BARE_7B.model_copy(update={"prompt_tokens": 0, "output_tokens": 0})
        breakdown = analyze_memory(ACCELERATOR, model, LENIENT)
        assert breakdown.current_kv_cache_gb == 0
        assert breakdown.max_kv_cache_tokens == 125_885
        assert breakdown.max_batch_size == 0

    def test_batch_multiplies_current_kv(self):
        batched = BARE_7B.model_copy(update={"batch_size": 4})
        single = analyze_memory(ACCELERATOR, BARE_7B, LENIENT)
        breakdown = analyze_memory(ACCELERATOR, batched, LENIENT)
        assert breakdown.current_kv_cache_gb == pytest.approx(4 * single.current_kv_cache_gb)
        # Free memory for KV is independent of the current batch
        assert breakdown.max_kv_cache_tokens == single.max_kv_cache_tokens

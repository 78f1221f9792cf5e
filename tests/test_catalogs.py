"""Tests for the bundled catalogs and the catalog loader."""

import json

import pytest

from aicalc.catalogs.loader import (
    find_accelerator,
    find_preset,
    load_accelerators,
    load_model_presets,
    load_stack_components,
)
from aicalc.engine.architecture import EnginePolicy
from aicalc.engine.performance import PerformanceEngine
from aicalc.engine.specs import ARCHITECTURE_FIELDS
from aicalc.errors import CatalogError
from aicalc.stack.models import StackCategory


# ===================================================================
# Bundled data
# ===================================================================


class TestBundledCatalogs:
    def test_accelerators(self):
        accelerators = load_accelerators()
        names = [a.name for a in accelerators]
        assert len(names) == len(set(names))
        assert {"H100", "A100", "L4", "T4"} <= set(names)

    def test_presets_carry_full_architecture(self):
        for preset in load_model_presets():
            for field in ARCHITECTURE_FIELDS:
                assert getattr(preset.spec, field) is not None, (preset.name, field)

    def test_presets_evaluate_strictly_on_h100(self):
        h100 = find_accelerator(load_accelerators(), "H100")
        engine = PerformanceEngine(EnginePolicy.strict())
        for preset in load_model_presets():
            result = engine.evaluate(h100, preset.spec)
            assert result.throughput_tok_per_sec > 0

    def test_stack_components(self):
        components = load_stack_components()
        ids = [c.id for c in components]
        assert len(ids) == len(set(ids))
        assert "pytorch" in ids
        assert StackCategory.ML_FRAMEWORK in {c.category for c in components}


# ===================================================================
# Lookup
# ===================================================================


class TestLookup:
    def test_find_accelerator_ignores_case(self):
        assert find_accelerator(load_accelerators(), "h100").name == "H100"

    def test_unknown_accelerator_lists_known(self):
        with pytest.raises(KeyError, match="Known: .*H100"):
            find_accelerator(load_accelerators(), "TPUv9")

    def test_find_preset_by_name_or_short_name(self):
        presets = load_model_presets()
        assert find_preset(presets, "granite-3.3-8b").name == "Granite 3.3 8B"
        assert find_preset(presets, "gemma 3 1b").short_name == "gemma-3-1b"

    def test_unknown_preset(self):
        with pytest.raises(KeyError, match="Unknown model preset"):
            find_preset(load_model_presets(), "gpt-5")


# ===================================================================
# Invalid files
# ===================================================================


class TestInvalidCatalogs:
    def test_not_json(self, tmp_path):
        path = tmp_path / "accelerators.json"
        path.write_text("{not json")
        with pytest.raises(CatalogError, match="not valid JSON"):
            load_accelerators(path)

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "accelerators.json"
        path.write_text(json.dumps({"name": "H100"}))
        with pytest.raises(CatalogError, match="expected a JSON array"):
            load_accelerators(path)

    def test_invalid_entry_reports_index(self, tmp_path):
        path = tmp_path / "accelerators.json"
        path.write_text(json.dumps([
            {"name": "ok", "compute_tflops": 1, "memory_bandwidth_gbps": 1, "memory_gb": 1},
            {"name": "bad", "compute_tflops": 0, "memory_bandwidth_gbps": 1, "memory_gb": 1},
        ]))
        with pytest.raises(CatalogError, match="entry 1"):
            load_accelerators(path)

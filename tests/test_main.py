"""Tests for the CLI: argument handling, commands and exit codes."""

import json
from unittest.mock import patch

import pytest

from aicalc.config import get_bool_env
from aicalc.engine.architecture import EnginePolicy, KvCacheTokenBasis
from aicalc.engine.specs import AcceleratorSpec, ModelSpec
from aicalc.errors import FormatBreakingChange
from aicalc.main import build_parser, build_policy, main

# What the Hub returns for a repo whose config lacks attention details
SPARSE_MODEL = ModelSpec(name="org/sparse", parameter_count_b=7, context_length=4096)


class TestPolicySettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AICALC_STRICT_ARCHITECTURE", raising=False)
        monkeypatch.delenv("AICALC_KV_CACHE_TOKEN_BASIS", raising=False)
        assert EnginePolicy.from_settings() == EnginePolicy.strict()

    def test_invalid_basis(self, monkeypatch):
        monkeypatch.setenv("AICALC_KV_CACHE_TOKEN_BASIS", "everything")
        with pytest.raises(ValueError, match="AICALC_KV_CACHE_TOKEN_BASIS"):
            EnginePolicy.from_settings()

    def test_bool_env(self, monkeypatch):
        monkeypatch.setenv("AICALC_FLAG", " Yes ")
        assert get_bool_env("AICALC_FLAG", False) is True
        monkeypatch.setenv("AICALC_FLAG", "maybe")
        with pytest.raises(ValueError, match="AICALC_FLAG"):
            get_bool_env("AICALC_FLAG", False)

    def test_cli_flags_override_environment(self, monkeypatch):
        monkeypatch.delenv("AICALC_STRICT_ARCHITECTURE", raising=False)
        monkeypatch.delenv("AICALC_KV_CACHE_TOKEN_BASIS", raising=False)
        args = build_parser().parse_args(
            ["--lenient", "--kv-basis", "context_length", "recommend"]
        )
        assert build_policy(args) == EnginePolicy.lenient(KvCacheTokenBasis.CONTEXT_LENGTH)


class TestCommands:
    @pytest.fixture(autouse=True)
    def _strict_env(self, monkeypatch):
        monkeypatch.delenv("AICALC_STRICT_ARCHITECTURE", raising=False)
        monkeypatch.delenv("AICALC_KV_CACHE_TOKEN_BASIS", raising=False)

    def test_evaluate_writes_report(self, tmp_path):
        output = tmp_path / "evaluate.json"
        main([
            "evaluate", "--accelerator", "h100", "--preset", "granite-3.3-8b",
            "--quantization", "INT8", "--prompt-tokens", "512", "--output", str(output),
        ])
        report = json.loads(output.read_text())
        assert report["accelerator"]["name"] == "H100"
        assert report["model"]["quantization"] == "INT8"
        assert report["model"]["prompt_tokens"] == 512
        assert report["result"]["throughput_tok_per_sec"] > 0

    def test_compare_ranks_by_throughput(self, tmp_path):
        output = tmp_path / "compare.json"
        main([
            "compare", "--accelerators", "L4", "H100", "--preset", "gemma-3-1b",
            "--output", str(output),
        ])
        ranking = json.loads(output.read_text())["ranking"]
        assert [r["accelerator"] for r in ranking] == ["H100", "L4"]

    def test_matrix_report(self, tmp_path):
        output = tmp_path / "matrix.json"
        main(["matrix", "--max-price", "5", "--output", str(output)])
        report = json.loads(output.read_text())
        prices = [d["price"] for d in report["devices"]]
        assert prices == sorted(prices)
        assert all(p <= 5 for p in prices)
        assert all(c["kind"] != "approximate" for c in report["cells"])

    def test_recommend_from_requirements_file(self, tmp_path):
        requirements = tmp_path / "requirements.json"
        requirements.write_text(json.dumps({"project_type": "research", "team_size": "individual"}))
        output = tmp_path / "stack.json"
        main(["recommend", "--requirements", str(requirements), "--output", str(output)])
        suggestion = json.loads(output.read_text())
        assert 0 < suggestion["overall_score"] <= 100
        assert suggestion["architecture"] == "monolithic"

    def test_unknown_accelerator_exits_2(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["evaluate", "--accelerator", "TPUv9", "--preset", "granite-3.3-8b"])
        assert exc_info.value.code == 2

    def test_sparse_hub_model_fails_strictly(self):
        with patch("aicalc.main.load_model_from_hub", return_value=SPARSE_MODEL):
            with pytest.raises(SystemExit) as exc_info:
                main(["evaluate", "--accelerator", "H100", "--hf-id", "org/sparse"])
        assert exc_info.value.code == 1

    def test_sparse_hub_model_runs_leniently(self, tmp_path):
        output = tmp_path / "lenient.json"
        with patch("aicalc.main.load_model_from_hub", return_value=SPARSE_MODEL) as load:
            main(["--lenient", "evaluate", "--accelerator", "H100", "--hf-id", "org/sparse",
                  "--batch-size", "2", "--output", str(output)])
        load.assert_called_once_with("org/sparse", batch_size=2)
        assert json.loads(output.read_text())["result"]["system_overhead_gb"] == 0


class TestRefresh:
    def test_writes_catalog(self, tmp_path):
        specs = [AcceleratorSpec(name="L4", compute_tflops=121, memory_bandwidth_gbps=300, memory_gb=24)]
        current = [
            AcceleratorSpec(name="L4", compute_tflops=30.3, memory_bandwidth_gbps=300, memory_gb=24),
            AcceleratorSpec(name="MI300X", compute_tflops=1307.4, memory_bandwidth_gbps=5300,
                            memory_gb=192, price=3.49),
        ]
        with (
            patch("aicalc.main.fetch_accelerator_specs", return_value=specs),
            patch("aicalc.main.load_accelerators", return_value=current),
            patch("aicalc.main.fetch_hourly_prices", return_value={("L4", 24.0): 0.7}),
        ):
            main(["refresh-accelerators", "--output-dir", str(tmp_path)])
        rows = json.loads((tmp_path / "accelerators.json").read_text())
        assert rows == [
            {"name": "L4", "compute_tflops": 121.0, "memory_bandwidth_gbps": 300.0,
             "memory_gb": 24.0, "price": 0.7},
            {"name": "MI300X", "compute_tflops": 1307.4, "memory_bandwidth_gbps": 5300.0,
             "memory_gb": 192.0, "price": 3.49},
        ]

    def test_format_break_is_not_retried(self, tmp_path):
        error = FormatBreakingChange("gpuhunt", "missing gpu_memory")
        with (
            patch("aicalc.main.fetch_accelerator_specs", return_value=[]),
            patch("aicalc.main.fetch_hourly_prices", side_effect=error) as prices,
            patch("aicalc.main.time.sleep") as sleep,
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["refresh-accelerators", "--output-dir", str(tmp_path)])
        assert exc_info.value.code == 1
        assert prices.call_count == 1
        sleep.assert_not_called()

    def test_transient_failures_are_retried(self, tmp_path):
        with (
            patch("aicalc.main.fetch_accelerator_specs", return_value=[]),
            patch("aicalc.main.fetch_hourly_prices", side_effect=[RuntimeError("503"), {}]) as prices,
            patch("aicalc.main.time.sleep") as sleep,
        ):
            main(["refresh-accelerators", "--output-dir", str(tmp_path)])
        assert prices.call_count == 2
        sleep.assert_called_once()

"""CLI entry point for the AI model calculator."""

import argparse
import dataclasses
import logging
import sys
import time
from pathlib import Path

from aicalc.catalogs.loader import (
    find_accelerator,
    find_preset,
    load_accelerators,
    load_model_presets,
    load_stack_components,
)
from aicalc.engine.architecture import EnginePolicy, KvCacheTokenBasis
from aicalc.engine.comparison import bottleneck_rows, compare_accelerators
from aicalc.engine.matrix import EstimateKind, MatrixFilters, build_matrix
from aicalc.engine.performance import PerformanceEngine
from aicalc.engine.quantization import Quantization
from aicalc.engine.specs import DEFAULT_SYSTEM_OVERHEAD, ModelSpec, SystemOverhead
from aicalc.errors import EvaluationError, FormatBreakingChange
from aicalc.exporters.json_export import export_accelerators, export_report, result_to_dict
from aicalc.sources.dbgpu_source import fetch_accelerator_specs, keep_unmapped, merge_prices
from aicalc.sources.gpuhunt_source import catalog_prices, fetch_hourly_prices
from aicalc.sources.huggingface import load_model_from_hub
from aicalc.stack.models import ProjectRequirements
from aicalc.stack.recommender import generate_recommendations

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY = 5  # seconds


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def build_policy(args) -> EnginePolicy:
    policy = EnginePolicy.from_settings()
    if args.lenient:
        policy = dataclasses.replace(policy, strict_architecture_validation=False)
    if args.kv_basis:
        policy = dataclasses.replace(policy, kv_cache_token_basis=KvCacheTokenBasis(args.kv_basis))
    return policy


def build_overhead(args) -> SystemOverhead:
    if args.system_efficiency is not None:
        return SystemOverhead.uniform(args.system_efficiency)
    return SystemOverhead(
        prefill_efficiency_pct=args.prefill_efficiency,
        decode_efficiency_pct=args.decode_efficiency,
    )


def build_model(args) -> ModelSpec:
    """Resolve the model from a catalog preset or the Hub, then apply overrides."""
    workload = {
        key: value
        for key, value in (
            ("batch_size", args.batch_size),
            ("prompt_tokens", args.prompt_tokens),
            ("output_tokens", args.output_tokens),
        )
        if value is not None
    }
    if args.hf_id:
        spec = load_model_from_hub(args.hf_id, **workload)
        workload = {}
    else:
        spec = find_preset(load_model_presets(), args.preset).spec

    overrides = dict(workload)
    if args.quantization:
        overrides["quantization"] = Quantization(args.quantization)
    if args.context_length is not None:
        overrides["context_length"] = args.context_length
    if not overrides:
        return spec
    return ModelSpec.model_validate({**spec.model_dump(), **overrides})


def _add_model_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--preset", help="Model preset name or short name")
    source.add_argument("--hf-id", help="HuggingFace repo ID, e.g. ibm-granite/granite-3.3-8b-instruct")
    parser.add_argument("--batch-size", type=int)
    parser.add_argument("--prompt-tokens", type=int)
    parser.add_argument("--output-tokens", type=int)
    parser.add_argument("--context-length", type=int)
    parser.add_argument("--quantization", choices=[q.value for q in Quantization])


def _add_overhead_arguments(parser: argparse.ArgumentParser, default_pct: float) -> None:
    parser.add_argument("--prefill-efficiency", type=float, default=default_pct,
                        help="Prefill efficiency %% (1-200)")
    parser.add_argument("--decode-efficiency", type=float, default=default_pct,
                        help="Decode efficiency %% (1-200)")
    parser.add_argument("--system-efficiency", type=float,
                        help="Single efficiency %% for both phases (overrides the two above)")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def run_evaluate(args) -> None:
    accelerator = find_accelerator(load_accelerators(), args.accelerator)
    model = build_model(args)
    engine = PerformanceEngine(build_policy(args))
    result = engine.evaluate(accelerator, model, build_overhead(args))

    logger.info("=== %s on %s ===", model.name, accelerator.name)
    logger.info(
        "Roofline: %s-bound (intensity %.2f vs ops:byte %.2f)",
        result.bound_type.value, result.arithmetic_intensity, result.ops_to_byte_ratio,
    )
    logger.info(
        "Latency: prefill %.1f ms, %.2f ms/token, total %.1f ms, %.1f tok/s",
        result.prefill_time_ms, result.per_token_time_ms,
        result.total_time_ms, result.throughput_tok_per_sec,
    )
    logger.info(
        "Memory: %.2f GB of %g GB (%.1f%%), max %d KV tokens, max batch %d",
        result.total_memory_gb, accelerator.memory_gb, result.memory_utilization_pct,
        result.max_kv_cache_tokens, result.max_batch_size,
    )
    for warning in (result.memory_warning, result.performance_warning):
        if warning:
            logger.warning(warning)

    if args.output:
        export_report(
            {
                "accelerator": accelerator.model_dump(mode="json"),
                "model": model.model_dump(mode="json"),
                "result": result_to_dict(result),
            },
            args.output,
        )


def run_compare(args) -> None:
    accelerators = load_accelerators()
    if args.accelerators:
        accelerators = [find_accelerator(accelerators, name) for name in args.accelerators]
    model = build_model(args)
    entries = compare_accelerators(
        accelerators, model, build_overhead(args), PerformanceEngine(build_policy(args))
    )

    logger.info("=== %s across %d accelerators ===", model.name, len(entries))
    for rank, entry in enumerate(entries, start=1):
        logger.info(
            "%2d. %-12s %8.1f tok/s  %s-bound%s",
            rank, entry.accelerator.name, entry.result.throughput_tok_per_sec,
            entry.result.bound_type.value,
            "  (does not fit)" if entry.result.total_memory_gb > entry.accelerator.memory_gb else "",
        )

    if args.output:
        export_report(
            {
                "model": model.model_dump(mode="json"),
                "ranking": [
                    {"accelerator": e.accelerator.name, **result_to_dict(e.result)}
                    for e in entries
                ],
                "bottlenecks": bottleneck_rows(entries),
            },
            args.output,
        )


def run_matrix(args) -> None:
    filters = MatrixFilters(
        ttft_range_ms=(0, args.max_ttft),
        itl_range_ms=(0, args.max_itl),
        budget_range=(0, args.max_price),
        input_tokens=args.input_tokens,
    )
    matrix = build_matrix(
        load_accelerators(),
        load_model_presets(),
        filters,
        engine=PerformanceEngine(build_policy(args)),
        overhead=DEFAULT_SYSTEM_OVERHEAD,
        allow_approximate=args.approximate,
    )

    for device in matrix.devices:
        cells = []
        for preset in matrix.models:
            cell = matrix.cell(device.name, preset.name)
            if not cell.can_run:
                cells.append(f"{preset.short_name}: n/a")
                continue
            marker = "~" if cell.kind is EstimateKind.APPROXIMATE else ""
            cells.append(f"{preset.short_name}: {marker}{cell.ttft_ms:.0f}/{marker}{cell.itl_ms:.1f} ms")
        logger.info("%-12s $%.2f/h  %s", device.name, device.price, "  ".join(cells))

    if args.output:
        export_report(
            {
                "filters": filters.model_dump(mode="json"),
                "devices": [d.model_dump(mode="json") for d in matrix.devices],
                "models": [p.name for p in matrix.models],
                "cells": [dataclasses.asdict(c) for c in matrix.cells.values()],
            },
            args.output,
        )


def run_recommend(args) -> None:
    if args.requirements:
        requirements = ProjectRequirements.model_validate_json(args.requirements.read_text())
    else:
        requirements = ProjectRequirements()
    suggestion = generate_recommendations(requirements, load_stack_components())

    logger.info(
        "Overall score %d, architecture %s, risk %s",
        suggestion.overall_score, suggestion.architecture.value,
        suggestion.risk_assessment.overall_risk.value,
    )
    for rec in suggestion.recommendations:
        names = ", ".join(f"{r.component.name} ({r.score:.0f})" for r in rec.recommended)
        logger.info("  %-20s %s", rec.category.value, names)

    if args.output:
        export_report(suggestion.model_dump(mode="json"), args.output)


def run_refresh_accelerators(args) -> None:
    """Rebuild the accelerator catalog from dbgpu specs and gpuhunt prices."""
    logger.info("=== Accelerator Catalog Refresh ===")
    last_error = None
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            specs = keep_unmapped(fetch_accelerator_specs(), load_accelerators())
            specs = merge_prices(specs, catalog_prices(fetch_hourly_prices()))
            path = export_accelerators(specs, args.output_dir)
            logger.info("Refresh complete: %d accelerators -> %s", len(specs), path)
            return
        except FormatBreakingChange:
            # Format breaks won't fix themselves, skip retries
            raise
        except Exception as e:
            last_error = e
            if attempt == MAX_RETRIES:
                raise
            logger.warning(
                "Attempt %d/%d failed: %s. Retrying in %ds...",
                attempt, MAX_RETRIES, last_error, RETRY_DELAY,
            )
            time.sleep(RETRY_DELAY)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="AI Model Calculator")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
    )
    parser.add_argument("--lenient", action="store_true",
                        help="Substitute default architecture values instead of failing")
    parser.add_argument("--kv-basis", choices=[b.value for b in KvCacheTokenBasis],
                        help="Size the KV cache by actual tokens or full context length")
    commands = parser.add_subparsers(dest="command", required=True)

    evaluate = commands.add_parser("evaluate", help="Evaluate one model on one accelerator")
    evaluate.add_argument("--accelerator", required=True)
    _add_model_arguments(evaluate)
    _add_overhead_arguments(evaluate, 100.0)
    evaluate.add_argument("--output", type=Path, help="Write a JSON report here")
    evaluate.set_defaults(func=run_evaluate)

    compare = commands.add_parser("compare", help="Rank accelerators for one model")
    compare.add_argument("--accelerators", nargs="+", help="Subset of catalog names")
    _add_model_arguments(compare)
    _add_overhead_arguments(compare, DEFAULT_SYSTEM_OVERHEAD.prefill_efficiency_pct)
    compare.add_argument("--output", type=Path)
    compare.set_defaults(func=run_compare)

    matrix = commands.add_parser("matrix", help="Device x model latency matrix")
    matrix.add_argument("--input-tokens", type=int, default=512)
    matrix.add_argument("--max-ttft", type=float, default=10000, help="ms")
    matrix.add_argument("--max-itl", type=float, default=1000, help="ms")
    matrix.add_argument("--max-price", type=float, default=100, help="USD per hour")
    matrix.add_argument("--approximate", action="store_true",
                        help="Fall back to labelled rough estimates when a cell cannot be computed")
    matrix.add_argument("--output", type=Path)
    matrix.set_defaults(func=run_matrix)

    recommend = commands.add_parser("recommend", help="Recommend an AI stack")
    recommend.add_argument("--requirements", type=Path, help="ProjectRequirements JSON file")
    recommend.add_argument("--output", type=Path)
    recommend.set_defaults(func=run_recommend)

    refresh = commands.add_parser("refresh-accelerators",
                                  help="Rebuild the accelerator catalog from dbgpu and gpuhunt")
    refresh.add_argument("--output-dir", type=Path)
    refresh.set_defaults(func=run_refresh_accelerators)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        args.func(args)
    except FormatBreakingChange as e:
        logger.error("Breaking format change detected: %s", e)
        sys.exit(1)
    except EvaluationError as e:
        logger.error("%s", e)
        sys.exit(1)
    except (KeyError, ValueError) as e:
        logger.error("Invalid input: %s", e)
        sys.exit(2)
    except Exception:
        logger.exception("Command %s failed", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Accelerator specs sourced from dbgpu (TechPowerUp database)."""

import logging

from dbgpu import GPUDatabase

from aicalc.engine.specs import AcceleratorSpec

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Catalog name → dbgpu specification key (slug)
# ---------------------------------------------------------------------------
CATALOG_TO_DBGPU_KEY: dict[str, str] = {
    "A10G": "a10g",
    "A100": "a100-pcie-40gb",
    "A100_80G": "a100-sxm4-80gb",
    "B200": "b200",
    "H100": "h100-sxm5-80gb",
    "H200": "h200-sxm-141gb",
    "L4": "l4",
    "L40S": "l40s",
    "RTX4090": "geforce-rtx-4090",
    "RTX6000Ada": "rtx-6000-ada-generation",
}

# ---------------------------------------------------------------------------
# Dense tensor-core FP16 TFLOPS per package (vendor datasheets, no sparsity).
# dbgpu only carries non-tensor FP16, which is several times lower; the
# bundled catalog is on this basis.
# ---------------------------------------------------------------------------
DENSE_FP16_TFLOPS: dict[str, float] = {
    "A10G": 125.0,
    "A100": 312.0,
    "A100_80G": 312.0,
    "B200": 2250.0,
    "H100": 989.4,
    "H200": 989.4,
    "L4": 121.0,
    "L40S": 362.1,
    "RTX4090": 165.2,
    "RTX6000Ada": 364.2,
}

# ---------------------------------------------------------------------------
# Dual-die packaging: dbgpu reports per-die specs; multiply by die count.
# ---------------------------------------------------------------------------
MULTI_DIE_CHIPS: dict[str, int] = {
    "GB100": 2,  # B200
    "GB110": 2,  # B300
}


def fetch_accelerator_specs() -> list[AcceleratorSpec]:
    """Fetch specs from dbgpu for every accelerator in CATALOG_TO_DBGPU_KEY.

    Memory and bandwidth come from dbgpu; compute comes from DENSE_FP16_TFLOPS.
    Prices are not part of dbgpu; merge them in with merge_prices().

    Raises KeyError if any accelerator is not found in dbgpu or has no dense
    FP16 figure; there are no silent fallbacks.
    """
    specs_map = GPUDatabase.default().specifications

    results: list[AcceleratorSpec] = []
    for name, dbgpu_key in CATALOG_TO_DBGPU_KEY.items():
        if dbgpu_key not in specs_map:
            raise KeyError(
                f"Accelerator '{name}' not found in dbgpu (key='{dbgpu_key}'). "
                f"Update CATALOG_TO_DBGPU_KEY or upgrade dbgpu."
            )
        if name not in DENSE_FP16_TFLOPS:
            raise KeyError(f"Accelerator '{name}' has no entry in DENSE_FP16_TFLOPS")
        gpu = specs_map[dbgpu_key]

        mem_gb = gpu.memory_size_gb or 0
        bw_gb_s = gpu.memory_bandwidth_gb_s or 0

        die_count = MULTI_DIE_CHIPS.get(gpu.gpu_name, 1)
        if die_count > 1:
            mem_gb *= die_count
            bw_gb_s *= die_count

        fp16_tflops = DENSE_FP16_TFLOPS[name]
        results.append(AcceleratorSpec(
            name=name,
            compute_tflops=fp16_tflops,
            memory_bandwidth_gbps=round(bw_gb_s, 1),
            memory_gb=round(mem_gb, 1),
        ))
        logger.debug(
            "  %s: bw=%.1f GB/s, fp16=%.1f TFLOPS (dbgpu non-tensor %.1f), mem=%.1f GB",
            name, bw_gb_s, fp16_tflops,
            (gpu.half_float_performance_gflop_s or 0) * die_count / 1000, mem_gb,
        )

    logger.info("Fetched specs for %d accelerators from dbgpu", len(results))
    return results


def keep_unmapped(
    refreshed: list[AcceleratorSpec],
    existing: list[AcceleratorSpec],
) -> list[AcceleratorSpec]:
    """Append existing catalog entries that dbgpu does not cover (e.g. MI300X, T4)."""
    names = {spec.name for spec in refreshed}
    kept = [spec for spec in existing if spec.name not in names]
    for spec in kept:
        logger.info("Keeping %s from the current catalog (not in dbgpu mapping)", spec.name)
    return refreshed + kept


def merge_prices(
    specs: list[AcceleratorSpec],
    prices: dict[str, float],
) -> list[AcceleratorSpec]:
    """Attach hourly prices by catalog name.

    Accelerators without an offer keep whatever price they already carry.
    """
    merged = []
    for spec in specs:
        price = prices.get(spec.name, spec.price)
        if price is None:
            logger.warning("No on-demand price found for %s", spec.name)
        merged.append(spec.model_copy(update={"price": price}))
    return merged

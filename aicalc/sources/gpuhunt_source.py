"""On-demand accelerator prices from the gpuhunt catalog."""

import logging

from gpuhunt import Catalog

from aicalc.errors import FormatBreakingChange

logger = logging.getLogger(__name__)

_EXPECTED_ATTRS = ("gpu_name", "gpu_memory", "gpu_count", "price", "provider")

# MIG slices (e.g. 4/8/12 GB A10) are not full accelerators
MIN_VRAM_GB = 16

# ---------------------------------------------------------------------------
# Catalog name → gpuhunt (gpu_name, gpu_memory). gpuhunt reports both A100
# sizes as "A100", so memory is part of the key.
# ---------------------------------------------------------------------------
CATALOG_TO_GPUHUNT: dict[str, tuple[str, float]] = {
    "A10G": ("A10G", 24.0),
    "A100": ("A100", 40.0),
    "A100_80G": ("A100", 80.0),
    "B200": ("B200", 180.0),
    "H100": ("H100", 80.0),
    "H200": ("H200", 141.0),
    "L4": ("L4", 24.0),
    "L40S": ("L40S", 48.0),
    "RTX4090": ("RTX4090", 24.0),
    "RTX6000Ada": ("RTX6000Ada", 48.0),
    "T4": ("T4", 16.0),
}


def fetch_hourly_prices() -> dict[tuple[str, float], float]:
    """Cheapest single-GPU on-demand price per (gpu_name, gpu_memory), in USD per hour."""
    catalog = Catalog(balance_resources=False, auto_reload=True)
    logger.info("Querying gpuhunt catalog for NVIDIA on-demand offerings")

    items = catalog.query(
        gpu_vendor="nvidia",
        spot=False,
        min_gpu_count=1,
    )

    # Detect breaking API changes early
    if items:
        first = items[0]
        missing = [a for a in _EXPECTED_ATTRS if not hasattr(first, a)]
        if missing:
            raise FormatBreakingChange(
                source="gpuhunt",
                details=(
                    f"Query results are missing expected attributes: {missing}. "
                    f"The gpuhunt Catalog API may have changed. "
                    f"Available attributes: {sorted(vars(first).keys())}"
                ),
            )

    # Group by (gpu_name, gpu_memory), keep cheapest
    prices: dict[tuple[str, float], float] = {}
    for item in items:
        if item.gpu_count != 1 or item.gpu_memory < MIN_VRAM_GB:
            continue
        key = (item.gpu_name, float(item.gpu_memory))
        if key not in prices or item.price < prices[key]:
            prices[key] = item.price

    logger.info("Found on-demand prices for %d GPU configs from gpuhunt", len(prices))
    return prices


def catalog_prices(offers: dict[tuple[str, float], float]) -> dict[str, float]:
    """Map gpuhunt prices onto catalog names via CATALOG_TO_GPUHUNT."""
    prices = {}
    for name, key in CATALOG_TO_GPUHUNT.items():
        if key in offers:
            prices[name] = offers[key]
        else:
            logger.debug("  no gpuhunt offer for %s (%s, %.0f GB)", name, *key)
    return prices

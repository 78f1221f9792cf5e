"""Export catalogs and evaluation reports to JSON files."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from aicalc.catalogs.loader import ACCELERATORS_FILE
from aicalc.config import EXPORT_DIR
from aicalc.engine.specs import AcceleratorSpec, PerformanceResult

logger = logging.getLogger(__name__)


def result_to_dict(result: PerformanceResult) -> dict:
    """JSON-ready result including the derived flags."""
    row = result.model_dump(mode="json")
    row["is_memory_bound"] = result.is_memory_bound
    row["is_compute_bound"] = result.is_compute_bound
    row["has_memory_warning"] = result.has_memory_warning
    row["has_performance_warning"] = result.has_performance_warning
    return row


def export_accelerators(
    specs: list[AcceleratorSpec],
    output_dir: Path | None = None,
) -> Path:
    """Write an accelerator catalog that load_accelerators() can read back."""
    if output_dir is None:
        output_dir = EXPORT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    rows = [spec.model_dump(mode="json") for spec in specs]
    rows.sort(key=lambda r: r["name"])

    path = output_dir / ACCELERATORS_FILE
    path.write_text(json.dumps(rows, indent=2) + "\n")
    logger.info("Exported %d accelerators to %s", len(rows), path)
    return path


def export_report(payload: dict, path: Path) -> Path:
    """Write a report with a generated_at timestamp."""
    path.parent.mkdir(parents=True, exist_ok=True)
    report = {"generated_at": datetime.now(UTC).isoformat(), **payload}
    path.write_text(json.dumps(report, indent=2) + "\n")
    logger.info("Exported report to %s", path)
    return path

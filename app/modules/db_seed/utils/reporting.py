"""Report helpers for the seed runner."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from app.modules.db_seed.models import SeedResult


def ensure_report_path(path: Path | None, report_dir: Path) -> Path:
    if path:
        return path
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return report_dir / f"seed_report_{timestamp}.json"


def build_report(results: list[SeedResult], *, dry_run: bool, data_dir: Path) -> dict:
    failed = [result.table for result in results if result.error]
    return {
        "summary": {
            "dry_run": dry_run,
            "data_dir": str(data_dir),
            "seeds_total": len(results),
            "seeds_failed": failed,
            "rows_inserted": sum(result.inserted or 0 for result in results),
        },
        "seeds": {
            result.table: {
                "file": result.file,
                "loaded": result.loaded,
                "inserted": result.inserted,
                "skipped": result.skipped,
                "duplicate_keys": result.duplicate_keys,
                "resolution": (
                    {
                        "total": result.resolution.total,
                        "with_reference": result.resolution.with_reference,
                        "resolved": result.resolution.resolved,
                        "orphan_count": result.resolution.orphan_count,
                        "orphans": result.resolution.orphans,
                    }
                    if result.resolution
                    else None
                ),
                "warnings": result.warnings,
                "error": result.error,
            }
            for result in results
        },
    }


def write_report(report: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(report, indent=2, ensure_ascii=True, default=str), encoding="utf-8"
    )

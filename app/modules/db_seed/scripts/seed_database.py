"""
Brief: Seed declarative JSON datasets into the database.

Each registered target is loaded from the data directory, validated against
its shape contract, upserted on its natural-key column (existing rows are left
untouched) and finished by its after-seed hook, e.g. parent reference
resolution. Targets are seeded independently and in the order given.

Inputs:
- --only: seed names to run (file name, file stem or table). Default: all
- --data-dir: directory with seed JSON files. Default: data_dir from seed_config.yml
- --report-path: optional JSON report path. Default: auto-generated timestamp
- --dry-run: load and validate only; no database connection is made
- Env: DATABASE_URL or DB_URL, DB_CONNECT_TIMEOUT, DB_STATEMENT_TIMEOUT_MS

Outputs:
- Inserts missing rows and updates resolved references
- Report JSON with per-seed counts, duplicate keys and orphaned references
- Logs to stdout/stderr; exit code 0 on success, 1 if any seed failed

Usage (from project root):
- python -m app.modules.db_seed.scripts.seed_database
- python -m app.modules.db_seed.scripts.seed_database --only summary_levels
- python -m app.modules.db_seed.scripts.seed_database --dry-run
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

from app.modules.db_seed.models import RetryPolicy, SeedError, SeedResult, SeedTarget
from app.modules.db_seed.runner import SeedRunner, check_dataset, load_dataset
from app.modules.db_seed.seeds import SEEDS, find_seed
from app.modules.db_seed.utils.reporting import build_report, ensure_report_path, write_report
from database.config import DBSettings
from utils import load_seed_config, resolve_repo_path, setup_logger

LOGGER = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed JSON datasets into the database.")
    parser.add_argument(
        "--only",
        nargs="+",
        default=None,
        help="Seed names to run (default: all registered seeds).",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory with seed JSON files (default: from seed_config.yml).",
    )
    parser.add_argument(
        "--report-path",
        type=Path,
        default=None,
        help="Optional report output path (JSON).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load and validate only; skip DB writes.",
    )
    return parser.parse_args(argv)


def select_targets(names: list[str] | None) -> list[SeedTarget]:
    if not names:
        return list(SEEDS)
    return [find_seed(name) for name in names]


def run_seeds(
    targets: list[SeedTarget],
    *,
    data_dir: Path,
    runner: SeedRunner | None = None,
) -> list[SeedResult]:
    """Seed each target independently; a runner of None validates only."""
    results: list[SeedResult] = []
    for target in targets:
        result = SeedResult(table=target.table, file=target.file)
        try:
            if runner is None:
                records = load_dataset(data_dir, target)
                result.loaded = len(records)
                result.duplicate_keys = check_dataset(target, records)
                LOGGER.info("%s: %d records valid", target.file, len(records))
            else:
                result = runner.seed(target)
        except SeedError as exc:
            if exc.result is not None:
                result = exc.result
            result.error = str(exc)
        results.append(result)
    return results


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    config = load_seed_config()
    data_dir = args.data_dir or resolve_repo_path(config["data_dir"])
    report_path = ensure_report_path(args.report_path, resolve_repo_path(config["report_dir"]))

    try:
        targets = select_targets(args.only)
    except KeyError as exc:
        LOGGER.error("%s", exc.args[0])
        return 1

    LOGGER.info(
        "Starting seed: targets=%s dry_run=%s data_dir=%s",
        ", ".join(target.table for target in targets),
        args.dry_run,
        data_dir,
    )
    if args.dry_run:
        results = run_seeds(targets, data_dir=data_dir)
    else:
        try:
            settings = DBSettings.from_env()
        except RuntimeError as exc:
            LOGGER.error("%s", exc)
            return 1
        retry_policy = RetryPolicy.from_config(config)
        runner = SeedRunner.from_settings(settings, data_dir, retry_policy=retry_policy)
        try:
            runner.connect()
            results = run_seeds(targets, data_dir=data_dir, runner=runner)
        except SeedError as exc:
            LOGGER.error("Seeding aborted: %s", exc)
            return 1
        finally:
            runner.disconnect()
            runner.engine.dispose()

    write_report(build_report(results, dry_run=args.dry_run, data_dir=data_dir), report_path)
    LOGGER.info("Report written to %s", report_path)
    return 1 if any(result.error for result in results) else 0


if __name__ == "__main__":
    setup_logger()
    raise SystemExit(main())

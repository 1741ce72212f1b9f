"""Registered seed targets."""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Connection

from app.database.models import SummaryLevel
from app.modules.db_seed.models import Record, ResolutionReport, SeedTarget
from app.modules.db_seed.resolution import resolve_references


def create_summary_level_indexes(connection: Connection, records: list[Record]) -> None:
    connection.execute(
        text(
            "CREATE INDEX IF NOT EXISTS idx_summary_levels_summary_level "
            "ON summary_levels (code)"
        )
    )
    connection.execute(
        text(
            "CREATE INDEX IF NOT EXISTS idx_summary_levels_parent_summary_level "
            "ON summary_levels (parent_summary_level)"
        )
    )


def link_summary_level_parents(connection: Connection) -> ResolutionReport:
    return resolve_references(
        connection,
        "summary_levels",
        natural_ref_column="parent_summary_level",
        natural_key_column="code",
        surrogate_ref_column="parent_summary_level_id",
        entity="Geography",
        label_columns=("name",),
    )


SUMMARY_LEVELS = SeedTarget(
    file="summary_levels.json",
    table="summary_levels",
    conflict_column="code",
    data_path="summary_levels",
    schema=SummaryLevel,
    before_seed=create_summary_level_indexes,
    after_seed=link_summary_level_parents,
)

SEEDS: list[SeedTarget] = [SUMMARY_LEVELS]


def find_seed(name: str) -> SeedTarget:
    """Look a target up by file name, file stem or table name."""
    for target in SEEDS:
        if name in (target.file, target.file.rsplit(".", 1)[0], target.table):
            return target
    known = ", ".join(target.table for target in SEEDS)
    raise KeyError(f"Unknown seed {name!r} (known: {known})")

"""Reference resolution tests against SQLite."""

from __future__ import annotations

import logging

import pytest
from sqlalchemy import text

from app.modules.db_seed import resolution as resolution_module
from app.modules.db_seed.models import ResolutionWarning, SeedCancelledError, StoreError
from app.modules.db_seed.resolution import resolve_references
from app.modules.db_seed.seeds import link_summary_level_parents
from app.modules.db_seed.upsert import upsert_records
from conftest import COUNTY, NATION, STATE, driver_error, fetch_levels, level, make_engine

RESOLVER_LOGGER = "app.modules.db_seed.resolution"


def insert_levels(connection, records) -> None:
    upsert_records(connection, "summary_levels", "code", records)


def test_parents_resolve_to_surrogate_ids(engine, connection, caplog) -> None:
    insert_levels(connection, [NATION, STATE, COUNTY])
    caplog.set_level(logging.INFO, logger=RESOLVER_LOGGER)

    report = link_summary_level_parents(connection)

    rows = fetch_levels(engine)
    assert rows["010"]["parent_summary_level_id"] is None
    assert rows["040"]["parent_summary_level_id"] == rows["010"]["id"]
    assert rows["050"]["parent_summary_level_id"] == rows["040"]["id"]

    assert (report.total, report.with_reference, report.resolved) == (3, 2, 2)
    assert report.orphans == []
    assert report.warning is None
    assert "Geography levels: 3 total, 2/2 with parents" in caplog.text
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_orphan_is_reported_and_left_null(engine, connection, caplog) -> None:
    insert_levels(connection, [level("Orphan", "999", "888")])
    caplog.set_level(logging.INFO, logger=RESOLVER_LOGGER)

    report = link_summary_level_parents(connection)

    assert fetch_levels(engine)["999"]["parent_summary_level_id"] is None
    assert report.orphans == [
        {"code": "999", "parent_summary_level": "888", "name": "Orphan"}
    ]
    assert (report.total, report.with_reference, report.resolved) == (1, 1, 0)
    assert isinstance(report.warning, ResolutionWarning)
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "Orphaned records" in warnings[0].getMessage()
    assert "Orphan" in warnings[0].getMessage()


def test_orphans_listed_alongside_resolved_rows(engine, connection) -> None:
    insert_levels(
        connection,
        [
            NATION,
            STATE,
            COUNTY,
            level("Orphan1", "888", "777"),
            level("Orphan2", "999", "777"),
        ],
    )

    report = link_summary_level_parents(connection)

    assert [orphan["code"] for orphan in report.orphans] == ["888", "999"]
    assert (report.total, report.with_reference, report.resolved) == (5, 4, 2)
    rows = fetch_levels(engine)
    assert rows["050"]["parent_code"] == "040"
    assert rows["888"]["parent_summary_level_id"] is None


def test_resolution_is_independent_of_insert_order(tmp_path) -> None:
    parents_first = make_engine(tmp_path / "parents_first.db")
    children_first = make_engine(tmp_path / "children_first.db")
    try:
        for engine, records in (
            (parents_first, [NATION, STATE, COUNTY]),
            (children_first, [COUNTY, STATE, NATION]),
        ):
            with engine.connect() as conn:
                insert_levels(conn, records)
                link_summary_level_parents(conn)

        def parent_codes(engine):
            return {code: row["parent_code"] for code, row in fetch_levels(engine).items()}

        assert parent_codes(parents_first) == parent_codes(children_first) == {
            "010": None,
            "040": "010",
            "050": "040",
        }
        rows = fetch_levels(children_first)
        assert rows["050"]["parent_summary_level_id"] == rows["040"]["id"]
    finally:
        parents_first.dispose()
        children_first.dispose()


def test_stale_surrogate_reference_is_cleared(engine, connection) -> None:
    insert_levels(connection, [NATION, STATE])
    connection.execute(
        text("UPDATE summary_levels SET parent_summary_level_id = id WHERE code = '010'")
    )
    connection.execute(
        text("UPDATE summary_levels SET parent_summary_level = '999' WHERE code = '040'")
    )
    connection.commit()

    report = link_summary_level_parents(connection)

    rows = fetch_levels(engine)
    assert rows["010"]["parent_summary_level_id"] is None
    assert rows["040"]["parent_summary_level_id"] is None
    assert [orphan["code"] for orphan in report.orphans] == ["040"]


def test_resolution_runs_again_without_changes(engine, connection) -> None:
    insert_levels(connection, [NATION, STATE, COUNTY])
    first = link_summary_level_parents(connection)
    before = fetch_levels(engine)

    second = link_summary_level_parents(connection)

    assert fetch_levels(engine) == before
    assert (second.total, second.resolved) == (first.total, first.resolved)


def test_entity_defaults_to_table_name(connection, caplog) -> None:
    insert_levels(connection, [NATION])
    caplog.set_level(logging.INFO, logger=RESOLVER_LOGGER)

    report = resolve_references(
        connection,
        "summary_levels",
        natural_ref_column="parent_summary_level",
        natural_key_column="code",
        surrogate_ref_column="parent_summary_level_id",
    )

    assert report.summary == "summary_levels levels: 1 total, 0/0 with parents"
    assert report.summary in caplog.text


def test_unknown_column_is_store_error(connection) -> None:
    with pytest.raises(StoreError) as exc_info:
        resolve_references(
            connection,
            "summary_levels",
            natural_ref_column="parent_code",
            natural_key_column="code",
            surrogate_ref_column="parent_summary_level_id",
        )
    assert "parent_code" in str(exc_info.value)


def test_every_orphan_is_listed_and_log_is_capped(connection, caplog) -> None:
    orphans = [level(f"Orphan {n}", f"{n:03d}", "ZZZ") for n in range(100, 160)]
    insert_levels(connection, orphans)
    caplog.set_level(logging.INFO, logger=RESOLVER_LOGGER)

    report = link_summary_level_parents(connection)

    assert (report.with_reference, report.resolved) == (60, 0)
    assert report.orphan_count == 60
    assert [orphan["code"] for orphan in report.orphans] == [r["code"] for r in orphans]
    assert "60 orphaned" in str(report.warning)
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "(and 10 more)" in warnings[0].getMessage()


def test_cancelled_reflection_is_seed_cancelled_error(connection, monkeypatch) -> None:
    def cancelled_reflection(conn, table_name):
        raise driver_error("57014")

    monkeypatch.setattr(resolution_module, "reflect_table", cancelled_reflection)

    with pytest.raises(SeedCancelledError) as exc_info:
        link_summary_level_parents(connection)

    assert exc_info.value.sqlstate == "57014"
    assert exc_info.value.table == "summary_levels"


def test_updated_at_moves_only_when_reference_changes(connection) -> None:
    insert_levels(connection, [NATION, STATE])
    old = "2000-01-01 00:00:00"

    def stamps():
        rows = connection.execute(text("SELECT code, updated_at FROM summary_levels"))
        return {code: str(updated_at) for code, updated_at in rows}

    connection.execute(text("UPDATE summary_levels SET updated_at = :old"), {"old": old})
    connection.commit()

    link_summary_level_parents(connection)

    after_first = stamps()
    assert after_first["010"] == old
    assert after_first["040"] != old

    connection.execute(text("UPDATE summary_levels SET updated_at = :old"), {"old": old})
    connection.commit()

    link_summary_level_parents(connection)

    assert stamps() == {"010": old, "040": old}

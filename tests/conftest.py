from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import aliased

from database.base import Base
from database.models import SummaryLevel


def level(
    name: str,
    code: str,
    parent: str | None,
    *,
    get_variable: str | None = None,
    on_spine: bool = True,
) -> dict[str, Any]:
    """Build a summary level record the way the seed files spell them."""
    return {
        "name": name,
        "description": f"{name} level",
        "get_variable": get_variable or name.upper(),
        "query_name": name.lower(),
        "on_spine": on_spine,
        "code": code,
        "parent_summary_level": parent,
    }


NATION = level("Nation", "010", None)
STATE = level("State", "040", "010")
COUNTY = level("County", "050", "040")


class FakeDriverError(Exception):
    """Driver exception carrying a SQLSTATE the way psycopg reports it."""

    def __init__(self, sqlstate: str) -> None:
        super().__init__(f"driver error {sqlstate}")
        self.sqlstate = sqlstate


def driver_error(sqlstate: str) -> OperationalError:
    return OperationalError("INSERT INTO summary_levels ...", {}, FakeDriverError(sqlstate))


def make_engine(path: Path) -> Engine:
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    return engine


def fetch_levels(engine: Engine) -> dict[str, dict[str, Any]]:
    """code -> row, with the resolved parent's code alongside."""
    parent = aliased(SummaryLevel)
    stmt = (
        select(
            SummaryLevel.id,
            SummaryLevel.code,
            SummaryLevel.name,
            SummaryLevel.parent_summary_level,
            SummaryLevel.parent_summary_level_id,
            parent.code.label("parent_code"),
        )
        .outerjoin(parent, SummaryLevel.parent_summary_level_id == parent.id)
        .order_by(SummaryLevel.code)
    )
    with engine.connect() as conn:
        return {row["code"]: dict(row) for row in conn.execute(stmt).mappings()}


def write_seed_file(data_dir: Path, filename: str, records: list[dict[str, Any]]) -> Path:
    data_dir.mkdir(parents=True, exist_ok=True)
    path = data_dir / filename
    path.write_text(json.dumps({"summary_levels": records}), encoding="utf-8")
    return path


@pytest.fixture()
def engine(tmp_path: Path) -> Engine:
    engine = make_engine(tmp_path / "seed.db")
    yield engine
    engine.dispose()


@pytest.fixture()
def connection(engine: Engine):
    with engine.connect() as conn:
        yield conn


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "seeds"
    path.mkdir()
    return path

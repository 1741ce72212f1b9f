"""Table reflection helpers for the seed runner."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import MetaData, Table
from sqlalchemy.engine import Connection
from sqlalchemy.exc import NoSuchTableError

from app.modules.db_seed.models import StoreError


def reflect_table(connection: Connection, table_name: str) -> Table:
    try:
        return Table(table_name, MetaData(), autoload_with=connection)
    except NoSuchTableError as exc:
        raise StoreError(f"Table {table_name!r} does not exist", table=table_name) from exc


def require_columns(table: Table, columns: Iterable[str]) -> None:
    missing = sorted({name for name in columns if name not in table.c})
    if missing:
        raise StoreError(
            f"{table.name} has no column(s): {', '.join(missing)}",
            table=table.name,
        )

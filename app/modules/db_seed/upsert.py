"""Insert-or-skip of dataset records keyed on a natural-key column."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Sequence
from typing import Any, Callable

from sqlalchemy import Table, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.sql.dml import Insert

from app.modules.db_seed.models import Record, RetryPolicy, StoreError
from app.modules.db_seed.utils.db_errors import is_cancellation, is_transient, to_store_error
from app.modules.db_seed.utils.schema_utils import reflect_table, require_columns

LOGGER = logging.getLogger(__name__)

DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def build_upsert(table: Table, conflict_column: str, dialect_name: str) -> Insert | None:
    """INSERT ... ON CONFLICT (conflict_column) DO NOTHING, where the dialect has one."""
    insert_fn = DIALECT_INSERTS.get(dialect_name)
    if insert_fn is None:
        return None
    return insert_fn(table).on_conflict_do_nothing(index_elements=[conflict_column])


def backoff_delay(policy: RetryPolicy, attempt: int) -> float:
    delay = min(policy.max_delay, policy.base_delay * (2 ** (attempt - 1)))
    if policy.jitter > 0:
        delay += random.uniform(0, policy.jitter)
    return delay


def _insert_guarded(
    connection: Connection,
    table: Table,
    conflict_column: str,
    record: Record,
) -> int:
    # No native conflict clause: check first, and let a savepoint absorb the
    # unique violation when a concurrent run wins the race.
    key_col = table.c[conflict_column]
    exists = connection.execute(
        select(key_col).where(key_col == record.get(conflict_column)).limit(1)
    ).first()
    if exists:
        return 0
    nested = connection.begin_nested()
    try:
        connection.execute(table.insert(), record)
    except IntegrityError:
        nested.rollback()
        still_exists = connection.execute(
            select(key_col).where(key_col == record.get(conflict_column)).limit(1)
        ).first()
        if still_exists:
            return 0
        raise
    nested.commit()
    return 1


def insert_batch(
    connection: Connection,
    table: Table,
    conflict_column: str,
    records: Sequence[Record],
) -> int:
    """Insert every record in source order; returns the number actually inserted."""
    stmt = build_upsert(table, conflict_column, connection.dialect.name)
    inserted = 0
    for record in records:
        if stmt is None:
            inserted += _insert_guarded(connection, table, conflict_column, record)
            continue
        result = connection.execute(stmt, dict(record))
        inserted += max(result.rowcount, 0)
    return inserted


def upsert_records(
    connection: Connection,
    table_name: str,
    conflict_column: str,
    records: Sequence[Record],
    *,
    retry_policy: RetryPolicy | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> int:
    """
    Insert records, skipping any whose conflict column value already exists.

    Existing rows are never modified, so re-running the same dataset leaves the
    table unchanged. The batch is committed as one transaction; deadlocks and
    serialization failures roll it back and retry it with exponential backoff.
    Any other store failure, or exhausting the attempts, raises StoreError.
    """
    policy = retry_policy or RetryPolicy()
    if not records:
        LOGGER.info("Skipping %s (no records).", table_name)
        return 0

    columns = {conflict_column}
    for record in records:
        columns.update(record.keys())

    LOGGER.info("Upserting %d records into %s on %s", len(records), table_name, conflict_column)
    for attempt in range(1, policy.max_attempts + 1):
        try:
            table = reflect_table(connection, table_name)
            require_columns(table, columns)
            inserted = insert_batch(connection, table, conflict_column, records)
            connection.commit()
        except DBAPIError as exc:
            connection.rollback()
            if is_cancellation(exc) or not is_transient(exc) or attempt >= policy.max_attempts:
                raise to_store_error(
                    exc, table=table_name, action=f"Upsert into {table_name}"
                ) from exc
            wait = backoff_delay(policy, attempt)
            LOGGER.warning(
                "Transient conflict upserting %s (%s). Retrying in %.2f seconds (%d/%d).",
                table_name,
                exc.orig.__class__.__name__ if exc.orig is not None else exc.__class__.__name__,
                wait,
                attempt,
                policy.max_attempts,
            )
            sleep(wait)
            continue
        except StoreError:
            connection.rollback()
            raise
        LOGGER.info(
            "%s: %d inserted, %d already present",
            table_name,
            inserted,
            len(records) - inserted,
        )
        return inserted
    raise RuntimeError("Unexpected upsert retry loop termination.")

"""Resolve natural-key references into surrogate-key foreign keys."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import case, func, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError

from app.modules.db_seed.models import MAX_LOGGED_ORPHANS, ResolutionReport
from app.modules.db_seed.utils.db_errors import to_store_error
from app.modules.db_seed.utils.schema_utils import reflect_table, require_columns

LOGGER = logging.getLogger(__name__)


def resolve_references(
    connection: Connection,
    table_name: str,
    *,
    natural_ref_column: str,
    natural_key_column: str,
    surrogate_ref_column: str,
    id_column: str = "id",
    entity: str | None = None,
    label_columns: Sequence[str] = ("name",),
    touched_column: str | None = "updated_at",
) -> ResolutionReport:
    """
    Point every row's surrogate reference at the row its natural reference names.

    A single correlated UPDATE does the work inside the database, so the result
    does not depend on the order rows were inserted in. A row whose reference
    is NULL or matches no natural key ends up with a NULL surrogate reference
    and, in the second case, is reported as an orphan. Every orphan is listed
    in the report; only the log line is capped.

    When the table has `touched_column`, it is set to now() on rows whose
    surrogate reference actually changes.
    """
    entity = entity or table_name
    try:
        table = reflect_table(connection, table_name)
        require_columns(
            table,
            [natural_ref_column, natural_key_column, surrogate_ref_column, id_column, *label_columns],
        )

        ref_col = table.c[natural_ref_column]
        key_col = table.c[natural_key_column]
        surrogate_col = table.c[surrogate_ref_column]

        parent = table.alias("parent")
        parent_id = (
            select(parent.c[id_column])
            .where(parent.c[natural_key_column] == ref_col)
            .limit(1)
            .scalar_subquery()
        )
        values = {surrogate_ref_column: parent_id}
        if touched_column and touched_column in table.c:
            values[touched_column] = case(
                (surrogate_col.is_distinct_from(parent_id), func.now()),
                else_=table.c[touched_column],
            )
        connection.execute(update(table).values(values))

        counts = connection.execute(
            select(
                func.count(),
                func.count(ref_col),
                func.count(surrogate_col),
            ).select_from(table)
        ).one()

        orphan_columns = [key_col, ref_col]
        orphan_columns.extend(
            table.c[name]
            for name in label_columns
            if name not in (natural_key_column, natural_ref_column)
        )
        orphan_rows = connection.execute(
            select(*orphan_columns)
            .where(ref_col.is_not(None), surrogate_col.is_(None))
            .order_by(key_col)
        ).mappings().all()
        connection.commit()
    except DBAPIError as exc:
        connection.rollback()
        raise to_store_error(
            exc, table=table_name, action=f"Reference resolution on {table_name}"
        ) from exc

    report = ResolutionReport(
        entity=entity,
        total=counts[0],
        with_reference=counts[1],
        resolved=counts[2],
        orphans=[dict(row) for row in orphan_rows],
    )
    LOGGER.info(report.summary)
    if report.orphans:
        shown = report.orphans[:MAX_LOGGED_ORPHANS]
        more = report.orphan_count - len(shown)
        LOGGER.warning(
            "Orphaned records: %s%s",
            shown,
            f" (and {more} more)" if more else "",
        )
    return report

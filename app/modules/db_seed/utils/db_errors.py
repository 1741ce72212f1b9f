"""Classify driver errors by SQLSTATE."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError

from app.modules.db_seed.models import SeedCancelledError, StoreError

DEADLOCK_DETECTED = "40P01"
SERIALIZATION_FAILURE = "40001"
QUERY_CANCELED = "57014"

TRANSIENT_SQLSTATES = frozenset({DEADLOCK_DETECTED, SERIALIZATION_FAILURE})


def get_sqlstate(exc: BaseException) -> str | None:
    """SQLSTATE of a driver error (psycopg 3 `sqlstate`, psycopg2 `pgcode`)."""
    orig = exc.orig if isinstance(exc, DBAPIError) else exc
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    diag = getattr(orig, "diag", None)
    code = getattr(diag, "sqlstate", None)
    return str(code) if code else None


def is_transient(exc: BaseException) -> bool:
    return get_sqlstate(exc) in TRANSIENT_SQLSTATES


def is_cancellation(exc: BaseException) -> bool:
    return get_sqlstate(exc) == QUERY_CANCELED


def to_store_error(exc: DBAPIError, *, table: str | None, action: str) -> StoreError:
    sqlstate = get_sqlstate(exc)
    detail = str(exc.orig) if exc.orig is not None else str(exc)
    error_cls = SeedCancelledError if sqlstate == QUERY_CANCELED else StoreError
    return error_cls(f"{action} failed: {detail}", table=table, sqlstate=sqlstate)

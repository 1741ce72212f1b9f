from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from database.config import DBSettings


def build_connect_args(settings: DBSettings) -> dict[str, Any]:
    """Driver connect arguments; only PostgreSQL understands the timeouts."""
    if make_url(settings.database_url).get_backend_name() != "postgresql":
        return {}
    connect_args: dict[str, Any] = {}
    if settings.connect_timeout:
        connect_args["connect_timeout"] = settings.connect_timeout
    if settings.statement_timeout_ms:
        connect_args["options"] = f"-c statement_timeout={settings.statement_timeout_ms}"
    return connect_args


def create_db_engine(*, settings: DBSettings) -> Engine:
    """
    Create a synchronous SQLAlchemy engine.

    The seeder owns one connection per run, so a small pool with pre-ping is
    all it needs.
    """
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        connect_args=build_connect_args(settings),
    )

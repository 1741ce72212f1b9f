"""Seed orchestration: hooks, validation, upsert and reference resolution."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError

from app.modules.db_seed.models import (
    Record,
    ResolutionReport,
    RetryPolicy,
    RunnerState,
    SeedError,
    SeedResult,
    SeedTarget,
    ValidationError,
)
from app.modules.db_seed.upsert import upsert_records
from app.modules.db_seed.utils.db_errors import to_store_error
from app.modules.db_seed.validation import (
    find_duplicate_keys,
    resolve_data_path,
    validate_records,
)
from database.config import DBSettings
from database.session import create_db_engine

LOGGER = logging.getLogger(__name__)


def load_dataset(data_dir: Path, target: SeedTarget) -> list[Record]:
    path = Path(data_dir) / target.file
    if not path.exists():
        raise SeedError(f"Seed file not found: {path}")
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(target.file, None, [f"invalid JSON: {exc}"]) from exc
    return resolve_data_path(document, target.data_path, dataset=target.file)


def check_dataset(target: SeedTarget, records: list[Record]) -> dict[str, list[int]]:
    """Validate records against the target contract; returns duplicate natural keys."""
    validate_records(records, target.schema, dataset=target.file)
    duplicates = find_duplicate_keys(records, target.conflict_column)
    if duplicates:
        LOGGER.warning(
            "%s has %d duplicate %s value(s); later occurrences are skipped: %s",
            target.file,
            len(duplicates),
            target.conflict_column,
            ", ".join(sorted(duplicates)[:10]),
        )
    return duplicates


class SeedRunner:
    """
    Seeds datasets over one exclusively owned connection.

    Each `seed` call runs, in order: the target's before-seed hook, shape
    validation, the natural-key upsert and the after-seed hook. A failing stage
    stops the run and re-raises; rows committed by earlier stages stay, which is
    safe because running the same seed again only inserts what is missing.
    """

    def __init__(
        self,
        engine: Engine,
        data_dir: Path,
        *,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        self.engine = engine
        self.data_dir = Path(data_dir)
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._connection: Connection | None = None
        self.state = RunnerState.IDLE

    @classmethod
    def from_settings(cls, settings: DBSettings, data_dir: Path, **kwargs: Any) -> "SeedRunner":
        return cls(create_db_engine(settings=settings), data_dir, **kwargs)

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            raise SeedError("SeedRunner is not connected; call connect() first.")
        return self._connection

    def connect(self) -> None:
        if self._connection is not None:
            return
        try:
            self._connection = self.engine.connect()
        except DBAPIError as exc:
            self.state = RunnerState.FAILED
            raise to_store_error(exc, table=None, action="Connect") from exc
        self.state = RunnerState.CONNECTED
        LOGGER.info(
            "Connected to %s",
            self.engine.url.render_as_string(hide_password=True),
        )

    def disconnect(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.close()
        finally:
            self._connection = None
            self.state = RunnerState.DISCONNECTED
            LOGGER.info("Disconnected.")

    def __enter__(self) -> "SeedRunner":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    def _run_hook(self, target: SeedTarget, hook_name: str, *args: Any) -> Any:
        hook = getattr(target, hook_name)
        if hook is None:
            return None
        LOGGER.debug("Running %s for %s", hook_name, target.table)
        try:
            outcome = hook(self.connection, *args)
            self.connection.commit()
        except DBAPIError as exc:
            self.connection.rollback()
            raise to_store_error(exc, table=target.table, action=f"{hook_name} hook") from exc
        except Exception:
            self.connection.rollback()
            raise
        return outcome

    def seed(self, target: SeedTarget, records: list[Record] | None = None) -> SeedResult:
        """Seed one target; `records` overrides reading the target's file."""
        connection = self.connection
        result = SeedResult(table=target.table, file=target.file)
        LOGGER.info("Seeding %s from %s", target.table, target.file)
        try:
            if records is None:
                records = load_dataset(self.data_dir, target)
            result.loaded = len(records)

            self._run_hook(target, "before_seed", records)

            self.state = RunnerState.VALIDATING
            result.duplicate_keys = check_dataset(target, records)

            self.state = RunnerState.SEEDING
            result.inserted = upsert_records(
                connection,
                target.table,
                target.conflict_column,
                records,
                retry_policy=self.retry_policy,
                sleep=self._sleep,
            )

            self.state = RunnerState.RESOLVING
            outcome = self._run_hook(target, "after_seed")
            if isinstance(outcome, ResolutionReport):
                result.resolution = outcome
                if outcome.warning is not None:
                    result.warnings.append(str(outcome.warning))
        except BaseException as exc:
            self.state = RunnerState.FAILED
            LOGGER.error("Seeding %s failed: %s", target.table, exc)
            if isinstance(exc, SeedError):
                exc.result = result
            raise
        self.state = RunnerState.CONNECTED
        LOGGER.info(
            "Seeded %s: %d loaded, %d inserted, %d skipped",
            target.table,
            result.loaded,
            result.inserted,
            result.skipped,
        )
        return result

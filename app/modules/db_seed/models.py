"""Data structures and errors for the seed runner."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Type

from pydantic import BaseModel

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

MAX_LOGGED_ORPHANS = 50

Record = dict[str, Any]
BeforeSeedHook = Callable[["Connection", list[Record]], Any]
AfterSeedHook = Callable[["Connection"], Any]


class SeedError(Exception):
    """Base class for failures that abort a seed.

    `result` carries what the failed seed had counted before it stopped.
    """

    result: Optional["SeedResult"] = None


class ValidationError(SeedError):
    """A dataset record does not match its shape contract."""

    def __init__(
        self,
        dataset: str,
        record_index: int | None,
        problems: list[str],
    ) -> None:
        self.dataset = dataset
        self.record_index = record_index
        self.problems = problems
        where = (
            f" at record {record_index}" if record_index is not None else ""
        )
        super().__init__(
            f"{dataset} validation failed{where}: {'; '.join(problems)}"
        )


class StoreError(SeedError):
    """The database rejected or failed a statement."""

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        sqlstate: str | None = None,
    ) -> None:
        self.table = table
        self.sqlstate = sqlstate
        detail = f" [SQLSTATE {sqlstate}]" if sqlstate else ""
        super().__init__(f"{message}{detail}")


class SeedCancelledError(StoreError):
    """A statement was cancelled (timeout or operator request); never retried."""


class ResolutionWarning(UserWarning):
    """Natural references that matched no row. Reported, never raised."""


class RunnerState(str, enum.Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    VALIDATING = "validating"
    SEEDING = "seeding"
    RESOLVING = "resolving"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


@dataclass(frozen=True)
class SeedTarget:
    file: str
    table: str
    conflict_column: str
    data_path: str
    schema: Optional[Type[BaseModel]] = None
    before_seed: Optional[BeforeSeedHook] = None
    after_seed: Optional[AfterSeedHook] = None


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.1
    max_delay: float = 2.0
    jitter: float = 0.1

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RetryPolicy":
        retry = config.get("retry") or {}
        return cls(
            max_attempts=max(1, int(retry.get("max_attempts", cls.max_attempts))),
            base_delay=float(retry.get("base_delay", cls.base_delay)),
            max_delay=float(retry.get("max_delay", cls.max_delay)),
            jitter=float(retry.get("jitter", cls.jitter)),
        )


@dataclass
class ResolutionReport:
    entity: str
    total: int = 0
    with_reference: int = 0
    resolved: int = 0
    orphans: list[Record] = field(default_factory=list)

    @property
    def orphan_count(self) -> int:
        return len(self.orphans)

    @property
    def summary(self) -> str:
        return (
            f"{self.entity} levels: {self.total} total, "
            f"{self.resolved}/{self.with_reference} with parents"
        )

    @property
    def warning(self) -> ResolutionWarning | None:
        if not self.orphans:
            return None
        return ResolutionWarning(
            f"{self.entity}: {self.orphan_count} orphaned record(s) with unresolved references"
        )


@dataclass
class SeedResult:
    table: str
    file: str
    loaded: int = 0
    # None until the upsert stage has run
    inserted: int | None = None
    duplicate_keys: dict[str, list[int]] = field(default_factory=dict)
    resolution: ResolutionReport | None = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def skipped(self) -> int | None:
        if self.inserted is None:
            return None
        return self.loaded - self.inserted

"""Structural checks run before any seed row is written."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.modules.db_seed.models import Record, ValidationError


def resolve_data_path(document: Any, data_path: str, *, dataset: str = "dataset") -> list[Record]:
    """Return the array found at a dot-separated path inside a parsed document."""
    current = document
    walked: list[str] = []
    for segment in (part for part in data_path.split(".") if part):
        walked.append(segment)
        if not isinstance(current, Mapping) or segment not in current:
            raise ValidationError(
                dataset, None, [f"data path '{'.'.join(walked)}' not found"]
            )
        current = current[segment]
    if not isinstance(current, list):
        raise ValidationError(
            dataset,
            None,
            [f"data path '{data_path}' must point to an array, got {type(current).__name__}"],
        )
    return current


def describe_errors(exc: PydanticValidationError) -> list[str]:
    problems: list[str] = []
    for err in exc.errors():
        loc = err.get("loc", ())
        field_name = ".".join(str(item) for item in loc) if loc else "<record>"
        message = err.get("msg", "invalid value")
        if err.get("type") != "missing" and "input" in err:
            message = f"{message} (got {err['input']!r})"
        problems.append(f"{field_name}: {message}")
    return problems


def validate_records(
    records: Sequence[Any],
    contract: Type[BaseModel] | None,
    *,
    dataset: str = "dataset",
) -> None:
    """
    Check every record against the shape contract.

    Raises ValidationError for the first offending record, listing all of its
    field problems. An empty dataset is valid.
    """
    if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
        raise ValidationError(
            dataset, None, [f"expected a list of records, got {type(records).__name__}"]
        )
    for idx, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise ValidationError(
                dataset, idx, [f"expected object, got {type(record).__name__}"]
            )
        if contract is None:
            continue
        try:
            contract.model_validate(dict(record))
        except PydanticValidationError as exc:
            raise ValidationError(dataset, idx, describe_errors(exc)) from exc


def find_duplicate_keys(records: Sequence[Record], key_column: str) -> dict[str, list[int]]:
    key_map: dict[str, list[int]] = {}
    for idx, record in enumerate(records):
        value = record.get(key_column)
        if value is None:
            continue
        key_map.setdefault(str(value), []).append(idx)
    return {key: idxs for key, idxs in key_map.items() if len(idxs) > 1}

"""Pydantic shape contracts for seed datasets."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Seed files are JSON, so every scalar already arrives with its real type.
# Strict mode keeps "true" from passing as a boolean and 10 from passing as
# the code "010".


class BaseSeedModel(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid")


class SummaryLevel(BaseSeedModel):
    name: str
    description: str | None = Field(...)
    get_variable: str
    query_name: str
    on_spine: bool
    code: str = Field(min_length=3, max_length=3)
    parent_summary_level: str | None = Field(...)

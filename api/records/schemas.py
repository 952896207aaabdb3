"""
Pydantic schemas for record endpoints.

Request models are strict: unknown fields and mistyped values are rejected,
and every violation is reported together.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .matching import MAX_FILTERS

NAME_MAX_CHARS = 64

FilterValue = Annotated[str, Field(min_length=1)]


class StrictRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class MatchRequest(StrictRequest):
    value: float = Field(..., gt=0, allow_inf_nan=False)
    products: list[FilterValue] = Field(default_factory=list, max_length=MAX_FILTERS)


class ByValueRequest(StrictRequest):
    value: float = Field(..., gt=0, allow_inf_nan=False)


class CategoryIntersectionRequest(StrictRequest):
    categories: list[FilterValue] = Field(..., min_length=1, max_length=MAX_FILTERS)


class CreateRecordRequest(StrictRequest):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_CHARS)
    description: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

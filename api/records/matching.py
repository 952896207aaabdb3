"""
Record matching engine (pure logic, no SQL).

Pipeline for a value match:
  tolerance band -> base candidates (max total_value per record_id)
  -> intersect with each product filter -> rank by total_value.

Pipeline for a category match:
  one fetch of (record_id, category) rows -> group -> keep supersets
  of the requested categories -> rank by record_id.

Everything here is request-scoped: candidate sets are plain dicts built from
the rows of one request and thrown away afterwards.
"""

from __future__ import annotations

import asyncio
import math
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from core.errors import ValidationError

DEFAULT_TOLERANCE = 0.1
MAX_FILTERS = 3

# record_id -> total_value
CandidateSet = dict[str, float]


@dataclass(frozen=True)
class ValueBand:
    low: float
    high: float

    def contains(self, value: float | None) -> bool:
        if value is None:
            return False
        return self.low <= value <= self.high


@dataclass(frozen=True)
class RankedRecord:
    row_number: int
    record_id: str
    total_value: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "record_id": self.record_id,
            "total_value": self.total_value,
        }


def tolerance_band(value: float, tolerance: float = DEFAULT_TOLERANCE) -> ValueBand:
    """
    Inclusive band [value * (1 - tolerance), value * (1 + tolerance)].
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("value must be a positive number")
    if not math.isfinite(value) or value <= 0:
        raise ValidationError("value must be a positive number")
    return ValueBand(low=value * (1 - tolerance), high=value * (1 + tolerance))


def check_filter_count(values: Sequence[str], *, name: str, minimum: int = 0) -> None:
    if len(values) > MAX_FILTERS:
        raise ValidationError(f"{name} may have at most {MAX_FILTERS} items")
    if len(values) < minimum:
        raise ValidationError(f"{name} must be a non-empty array (max {MAX_FILTERS})")
    blank = [i for i, v in enumerate(values) if not isinstance(v, str) or not v]
    if blank:
        raise ValidationError(
            f"{name} must contain non-empty strings",
            [f"{name}.{i}: must be a non-empty string" for i in blank],
        )


def aggregate_max(
    rows: Iterable[Mapping[str, Any]],
    *,
    key: str = "record_id",
    value: str = "total_value",
) -> CandidateSet:
    """
    Collapse rows to one entry per `key`, keeping the largest `value` seen.

    Null values never win over a number; a key that only ever had nulls
    reports 0.
    """
    best: dict[str, float | None] = {}
    for row in rows:
        rid = str(row[key])
        current = row.get(value)
        if rid not in best:
            best[rid] = current
            continue
        previous = best[rid]
        if current is not None and (previous is None or current > previous):
            best[rid] = current
    return {rid: (v if v is not None else 0) for rid, v in best.items()}


def distinct_rows(
    rows: Iterable[Mapping[str, Any]],
    *,
    fields: Sequence[str] = ("record_id", "total_value"),
) -> list[dict[str, Any]]:
    """
    First occurrence wins for each composite key; input order is preserved.
    """
    seen: set[tuple[Any, ...]] = set()
    kept: list[dict[str, Any]] = []
    for row in rows:
        composite = tuple(row.get(f) for f in fields)
        if composite in seen:
            continue
        seen.add(composite)
        kept.append(dict(row))
    return kept


async def intersect_attributes(
    base: Mapping[str, float],
    values: Sequence[str],
    fetch_ids: Callable[[str], Awaitable[Iterable[str]]],
    *,
    fan_out: bool = False,
) -> CandidateSet:
    """
    AND the base candidates with "attribute == value" for every value.

    Sequential mode stops fetching as soon as the working set is empty.
    Fan-out mode fetches every id set concurrently and intersects once all
    have returned; if one fetch fails the others are cancelled. Neither mode
    fetches anything when `base` is empty.
    Surviving ids keep the value recorded in `base`.
    """
    check_filter_count(values, name="products")
    working = set(base)
    if not working:
        return {}

    if fan_out and values:
        async def fetch_set(value: str) -> set[str]:
            return set(await fetch_ids(value))

        # One failed fetch cancels its siblings; the caller sees that error.
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(fetch_set(v)) for v in values]
        except BaseExceptionGroup as failures:
            raise failures.exceptions[0] from failures
        for task in tasks:
            working &= task.result()
            if not working:
                return {}
    else:
        for v in values:
            working &= set(await fetch_ids(v))
            if not working:
                return {}

    return {rid: val for rid, val in base.items() if rid in working}


def intersect_categories(
    rows: Iterable[Mapping[str, Any]],
    categories: Sequence[str],
) -> list[str]:
    """
    Ids whose observed category set contains every requested category,
    sorted ascending.
    """
    check_filter_count(categories, name="categories", minimum=1)
    need = set(categories)
    observed: dict[str, set[str]] = defaultdict(set)
    for row in rows:
        observed[str(row["record_id"])].add(str(row["category"]))
    return sorted(rid for rid, seen in observed.items() if need <= seen)


def rank_by_value(entries: Mapping[str, float]) -> list[RankedRecord]:
    # Ties on total_value fall back to record_id ascending.
    ordered = sorted(entries.items(), key=lambda item: (-item[1], item[0]))
    return [
        RankedRecord(row_number=i + 1, record_id=rid, total_value=val)
        for i, (rid, val) in enumerate(ordered)
    ]


def number_rows(rows: Sequence[Mapping[str, Any]]) -> list[RankedRecord]:
    """
    Assign row numbers to rows that are already in their final order.
    """
    return [
        RankedRecord(
            row_number=i + 1,
            record_id=str(row["record_id"]),
            total_value=row.get("total_value") if row.get("total_value") is not None else 0,
        )
        for i, row in enumerate(rows)
    ]


def rank_ids(ids: Sequence[str]) -> list[dict[str, Any]]:
    return [{"row_number": i + 1, "record_id": rid} for i, rid in enumerate(ids)]

"""
Keyset (cursor) pagination shared by the list endpoints.

Each listing declares its own `Keyset`: the sort key columns (the last one
unique, so the key is a strict order), the direction, and how each key part
is read from and written to a client cursor. The shared helpers below are
parameterized by that declaration, so an ascending-by-id listing and a
descending-by-timestamp listing never share a hard-coded comparison.

Paging uses the over-fetch trick: ask the store for `limit + 1` rows past the
cursor boundary; if more than `limit` come back there is another page and
`next_cursor` is the sort key of the last row kept.

Assumption: rows matching the listing's filters are not mutated between page
fetches. Under concurrent writes a page may skip or repeat rows.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from core.errors import ValidationError

BIGINT_MIN = -(2**63)
BIGINT_MAX = 2**63 - 1

# Joins the parts of a composite cursor, e.g. "2024-05-01T12:00:00Z_42".
CURSOR_SEPARATOR = "_"


def parse_bigint(raw: str) -> int:
    value = int(raw)
    if not BIGINT_MIN <= value <= BIGINT_MAX:
        raise ValueError(f"{raw} is outside the bigint range")
    return value


def parse_timestamp(raw: str) -> datetime:
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_timestamp(value: datetime) -> str:
    """
    UTC ISO-8601 with a `Z` suffix, so the cursor holds no `+`.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _as_is(value: Any) -> Any:
    return value


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class KeyPart:
    column: str
    sql_type: str
    parse: Callable[[str], Any]
    format: Callable[[Any], Any] = _as_is


@dataclass(frozen=True)
class Keyset:
    parts: tuple[KeyPart, ...]
    direction: Direction

    @property
    def comparator(self) -> str:
        # Exclusive boundary: strictly past the last emitted row.
        return ">" if self.direction is Direction.ASC else "<"

    def key(self, row: Mapping[str, Any]) -> tuple[Any, ...]:
        return tuple(row[part.column] for part in self.parts)

    def order_sql(self) -> str:
        order = self.direction.value.upper()
        return ", ".join(f"{part.column} {order}" for part in self.parts)

    def boundary_sql(self, first_param: int) -> str:
        """
        Predicate over params `$first_param...`, one per key part. It is true
        for every row when the cursor params are NULL.
        """
        params = [f"${first_param + i}::{part.sql_type}" for i, part in enumerate(self.parts)]
        if len(self.parts) == 1:
            return f"({params[0]} IS NULL OR {self.parts[0].column} {self.comparator} {params[0]})"
        columns = ", ".join(part.column for part in self.parts)
        return f"({params[0]} IS NULL OR ({columns}) {self.comparator} ({', '.join(params)}))"

    def boundary_args(self, boundary: tuple[Any, ...] | None) -> tuple[Any, ...]:
        if boundary is None:
            return (None,) * len(self.parts)
        return tuple(boundary)

    def decode(self, raw: str | None) -> tuple[Any, ...] | None:
        raw = (raw or "").strip()
        if not raw:
            return None
        pieces = raw.split(CURSOR_SEPARATOR) if len(self.parts) > 1 else [raw]
        if len(pieces) != len(self.parts):
            raise ValidationError(
                "cursor is not a valid page boundary",
                [f"cursor: expected {len(self.parts)} parts, got {len(pieces)}"],
            )
        try:
            return tuple(part.parse(piece) for part, piece in zip(self.parts, pieces))
        except (TypeError, ValueError) as exc:
            raise ValidationError("cursor is not a valid page boundary", [f"cursor: {exc}"]) from exc

    def encode(self, row: Mapping[str, Any]) -> Any:
        values = [part.format(row[part.column]) for part in self.parts]
        if len(values) == 1:
            return values[0]
        return CURSOR_SEPARATOR.join(str(v) for v in values)


@dataclass(frozen=True)
class Page:
    rows: list[dict[str, Any]]
    next_cursor: Any


def clamp_limit(limit: int | None, *, default: int, maximum: int, minimum: int = 1) -> int:
    if limit is None:
        limit = default
    return min(max(int(limit), minimum), max(maximum, minimum))


def trim_page(rows: list[dict[str, Any]], *, limit: int, keyset: Keyset) -> Page:
    if len(rows) <= limit:
        return Page(rows=list(rows), next_cursor=None)
    page = list(rows[:limit])
    return Page(rows=page, next_cursor=keyset.encode(page[-1]))


async def fetch_page(
    fetch: Callable[[tuple[Any, ...] | None, int], Awaitable[list[dict[str, Any]]]],
    keyset: Keyset,
    *,
    cursor: str | None,
    limit: int,
) -> Page:
    """
    Decode `cursor`, fetch one page (plus one extra row) and trim it.

    `fetch(boundary, fetch_limit)` must return rows ordered by the keyset and
    strictly past `boundary`, a tuple with one value per key part (or from
    the start when `boundary` is None).
    """
    boundary = keyset.decode(cursor)
    rows = await fetch(boundary, limit + 1)
    return trim_page(rows, limit=limit, keyset=keyset)

"""
Record persistence (raw SQL).

Postgres implementation of `RecordStore`. All SQL touching the `records`
table lives here.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from core.db import Database, like_pattern

from .matching import ValueBand
from .store import RECORDS_KEYSET

RECORD_COLUMNS = "id, record_id, name, description, total_value, sell, prnk, product, category"


class RecordRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def fetch_in_band(self, band: ValueBand) -> list[dict[str, Any]]:
        return await self._db.fetch_all(
            """
            SELECT record_id, total_value, sell
            FROM records
            WHERE prnk = 1
              AND sell >= $1
              AND sell <= $2
            ORDER BY total_value DESC NULLS LAST, record_id ASC
            """,
            band.low,
            band.high,
        )

    async def fetch_ids_for_product(self, product: str) -> list[str]:
        rows = await self._db.fetch_all(
            """
            SELECT DISTINCT record_id
            FROM records
            WHERE product = $1
            """,
            product,
        )
        return [str(row["record_id"]) for row in rows]

    async def fetch_category_rows(self, categories: Sequence[str]) -> list[dict[str, Any]]:
        return await self._db.fetch_all(
            """
            SELECT record_id, category
            FROM records
            WHERE category = ANY($1::text[])
            """,
            list(categories),
        )

    async def list_records(self, *, search: str, boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        return await self._db.fetch_all(
            f"""
            SELECT {RECORD_COLUMNS}
            FROM records
            WHERE prnk = 1
              AND ($1::text IS NULL OR name ILIKE $1 ESCAPE '\\')
              AND {RECORDS_KEYSET.boundary_sql(2)}
            ORDER BY {RECORDS_KEYSET.order_sql()}
            LIMIT $3
            """,
            like_pattern(search),
            *RECORDS_KEYSET.boundary_args(boundary),
            fetch_limit,
        )

    async def count_records(self, *, search: str, selected_only: bool) -> int:
        count = await self._db.fetch_value(
            """
            SELECT count(*)
            FROM records
            WHERE ($1::text IS NULL OR name ILIKE $1 ESCAPE '\\')
              AND (NOT $2::boolean OR prnk = 1)
            """,
            like_pattern(search),
            selected_only,
        )
        return int(count or 0)

    async def insert_record(self, *, name: str, description: str | None) -> dict[str, Any]:
        row = await self._db.fetch_one(
            f"""
            INSERT INTO records (name, description)
            VALUES ($1, $2)
            RETURNING {RECORD_COLUMNS}
            """,
            name,
            description,
        )
        if row is None:
            raise RuntimeError("Failed to insert record.")
        return row

"""
Subcategory persistence (raw SQL).
"""

from __future__ import annotations

from typing import Any

from core.db import Database, like_pattern
from core.pagination import Direction, KeyPart, Keyset, format_timestamp, parse_bigint, parse_timestamp

# GET /api/v1/subcategories pages newest first; id breaks created_at ties.
SUBCATEGORIES_KEYSET = Keyset(
    parts=(
        KeyPart("created_at", "timestamptz", parse_timestamp, format_timestamp),
        KeyPart("id", "bigint", parse_bigint),
    ),
    direction=Direction.DESC,
)

SUBCATEGORY_COLUMNS = "id, name, category, subcategory, created_at"


class SubcategoryRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def list_subcategories(self, *, search: str, boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        return await self._db.fetch_all(
            f"""
            SELECT {SUBCATEGORY_COLUMNS}
            FROM subcategories
            WHERE ($1::text IS NULL OR name ILIKE $1 ESCAPE '\\')
              AND {SUBCATEGORIES_KEYSET.boundary_sql(2)}
            ORDER BY {SUBCATEGORIES_KEYSET.order_sql()}
            LIMIT $4
            """,
            like_pattern(search),
            *SUBCATEGORIES_KEYSET.boundary_args(boundary),
            fetch_limit,
        )

    async def insert_subcategory(self, *, name: str) -> dict[str, Any]:
        row = await self._db.fetch_one(
            f"""
            INSERT INTO subcategories (name)
            VALUES ($1)
            RETURNING {SUBCATEGORY_COLUMNS}
            """,
            name,
        )
        if row is None:
            raise RuntimeError("Failed to insert subcategory.")
        return row

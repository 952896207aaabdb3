"""
The record store the matching engine reads from.

`RecordRepository` (Postgres) is the production implementation; tests plug
in an in-memory one. Rows are plain dicts keyed by column name.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from core.pagination import Direction, KeyPart, Keyset, parse_bigint

from .matching import ValueBand

# GET /api/v1/records pages by row id, ascending.
RECORDS_KEYSET = Keyset(parts=(KeyPart("id", "bigint", parse_bigint),), direction=Direction.ASC)


class RecordStore(Protocol):
    async def fetch_in_band(self, band: ValueBand) -> list[dict[str, Any]]:
        """
        Selector-flag rows whose `sell` lies in `band`, as
        `record_id, total_value, sell`, ordered by total_value desc then
        record_id asc.
        """
        ...

    async def fetch_ids_for_product(self, product: str) -> list[str]:
        ...

    async def fetch_category_rows(self, categories: Sequence[str]) -> list[dict[str, Any]]:
        """
        `record_id, category` rows whose category is one of `categories`.
        """
        ...

    async def list_records(self, *, search: str, boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        ...

    async def count_records(self, *, search: str, selected_only: bool) -> int:
        ...

    async def insert_record(self, *, name: str, description: str | None) -> dict[str, Any]:
        ...

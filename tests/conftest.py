from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from core.errors import ConflictError
from core.pagination import Direction, Keyset
from core.settings import Settings
from main import create_app
from records.matching import ValueBand
from records.store import RECORDS_KEYSET
from subcategories.repository import SUBCATEGORIES_KEYSET

API_KEY = "test-key"


def rows_past_boundary(
    rows: Sequence[dict[str, Any]], keyset: Keyset, boundary: tuple[Any, ...] | None, limit: int
) -> list[dict[str, Any]]:
    """
    What the keyset SQL returns: rows strictly past `boundary` in keyset
    order, at most `limit` of them.
    """
    descending = keyset.direction is Direction.DESC
    hits = [
        r
        for r in rows
        if boundary is None
        or (keyset.key(r) < boundary if descending else keyset.key(r) > boundary)
    ]
    return [dict(r) for r in sorted(hits, key=keyset.key, reverse=descending)[:limit]]


class InMemoryRecordStore:
    """
    Dict-backed stand-in for the Postgres record repository.

    Every call is appended to `calls` so tests can assert which fetches ran.
    Set `fail_with` to make calls raise: every call, or only the operations
    named in `fail_on` when that is non-empty.
    """

    def __init__(self, rows: Sequence[dict[str, Any]] | None = None) -> None:
        self.rows = [dict(r) for r in rows or []]
        self.calls: list[tuple[str, Any]] = []
        self.fail_with: Exception | None = None
        self.fail_on: set[str] = set()

    def _record(self, op: str, arg: Any) -> None:
        self.calls.append((op, arg))
        if self.fail_with is not None and (not self.fail_on or op in self.fail_on):
            raise self.fail_with

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]

    async def fetch_in_band(self, band: ValueBand) -> list[dict[str, Any]]:
        self._record("fetch_in_band", band)
        hits = [
            {"record_id": r["record_id"], "total_value": r.get("total_value"), "sell": r.get("sell")}
            for r in self.rows
            if r.get("prnk") == 1 and band.contains(r.get("sell"))
        ]
        return sorted(
            hits,
            key=lambda r: (r["total_value"] is None, -(r["total_value"] or 0), r["record_id"]),
        )

    async def fetch_ids_for_product(self, product: str) -> list[str]:
        self._record("fetch_ids_for_product", product)
        return sorted({r["record_id"] for r in self.rows if r.get("product") == product})

    async def fetch_category_rows(self, categories: Sequence[str]) -> list[dict[str, Any]]:
        self._record("fetch_category_rows", list(categories))
        return [
            {"record_id": r["record_id"], "category": r["category"]}
            for r in self.rows
            if r.get("category") in categories
        ]

    async def list_records(self, *, search: str, boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        self._record("list_records", (search, boundary, fetch_limit))
        term = search.strip().lower()
        hits = [
            r
            for r in self.rows
            if r.get("prnk") == 1
            and (not term or term in str(r.get("name") or "").lower())
        ]
        return rows_past_boundary(hits, RECORDS_KEYSET, boundary, fetch_limit)

    async def count_records(self, *, search: str, selected_only: bool) -> int:
        self._record("count_records", (search, selected_only))
        term = search.strip().lower()
        return sum(
            1
            for r in self.rows
            if (not term or term in str(r.get("name") or "").lower())
            and (not selected_only or r.get("prnk") == 1)
        )

    async def insert_record(self, *, name: str, description: str | None) -> dict[str, Any]:
        self._record("insert_record", name)
        if any(r.get("name") == name for r in self.rows):
            raise ConflictError('duplicate key value violates unique constraint "records_name_key"')
        row = {
            "id": max((r["id"] for r in self.rows), default=0) + 1,
            "record_id": None,
            "name": name,
            "description": description,
            "total_value": None,
            "sell": None,
            "prnk": None,
            "product": None,
            "category": None,
        }
        self.rows.append(row)
        return dict(row)


class InMemorySubcategoryStore:
    def __init__(self, rows: Sequence[dict[str, Any]] | None = None) -> None:
        self.rows = [dict(r) for r in rows or []]

    async def list_subcategories(self, *, search: str, boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        term = search.strip().lower()
        hits = [
            r
            for r in self.rows
            if (not term or term in r["name"].lower())
        ]
        return rows_past_boundary(hits, SUBCATEGORIES_KEYSET, boundary, fetch_limit)

    async def insert_subcategory(self, *, name: str) -> dict[str, Any]:
        if any(r["name"] == name for r in self.rows):
            raise ConflictError('duplicate key value violates unique constraint "subcategories_name_key"')
        row = {
            "id": len(self.rows) + 1,
            "name": name,
            "category": None,
            "subcategory": None,
            "created_at": datetime(2030, 1, 1, tzinfo=timezone.utc),
        }
        self.rows.append(row)
        return dict(row)


def record_row(row_id: int, record_id: str, **fields: Any) -> dict[str, Any]:
    row = {
        "id": row_id,
        "record_id": record_id,
        "name": f"record-{row_id}",
        "description": None,
        "total_value": None,
        "sell": None,
        "prnk": 1,
        "product": None,
        "category": None,
    }
    row.update(fields)
    return row


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_keys=frozenset({API_KEY, "other-key"}))


@pytest.fixture()
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def subcategory_store() -> InMemorySubcategoryStore:
    base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return InMemorySubcategoryStore(
        [
            {
                "id": i,
                "name": f"sub-{i}",
                "category": "c1",
                "subcategory": f"s{i}",
                "created_at": base + timedelta(minutes=i),
            }
            for i in range(1, 6)
        ]
    )


@pytest.fixture()
def client(settings, record_store, subcategory_store) -> TestClient:
    app = create_app(settings, record_store=record_store, subcategory_store=subcategory_store)
    return TestClient(app, headers={"x-api-key": API_KEY})

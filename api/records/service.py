"""
Record service (orchestration).

This is where we:
- validate the request-level numbers that pydantic can't see (tolerance band)
- call the record store (repository) and feed rows through `matching`
- shape the JSON returned by the router
"""

from __future__ import annotations

import logging
from typing import Any

from core import pagination
from core.errors import ConflictError
from core.settings import Settings

from . import matching, schemas
from .store import RECORDS_KEYSET, RecordStore

logger = logging.getLogger(__name__)


async def list_records(
    store: RecordStore,
    settings: Settings,
    *,
    search: str = "",
    cursor: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    page_size = pagination.clamp_limit(
        limit,
        default=settings.records_page_default,
        maximum=settings.records_page_max,
    )

    async def fetch(boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        return await store.list_records(search=search, boundary=boundary, fetch_limit=fetch_limit)

    page = await pagination.fetch_page(fetch, RECORDS_KEYSET, cursor=cursor, limit=page_size)
    return {"records": page.rows, "nextCursor": page.next_cursor}


async def count_records(store: RecordStore, *, search: str = "", selected_only: bool = False) -> dict[str, int]:
    count = await store.count_records(search=search, selected_only=selected_only)
    return {"count": count}


async def create_record(store: RecordStore, payload: schemas.CreateRecordRequest) -> dict[str, Any]:
    # Uniqueness of `name` is enforced by the store.
    try:
        row = await store.insert_record(name=payload.name, description=payload.description)
    except ConflictError as exc:
        raise ConflictError("Record name already exists") from exc
    logger.info("record_created id=%s name=%s", row.get("id"), payload.name)
    return row


async def match_by_value(
    store: RecordStore,
    settings: Settings,
    payload: schemas.MatchRequest,
) -> dict[str, Any]:
    """
    Records priced within the tolerance band of `value` that also carry every
    requested product, ranked by total_value.
    """
    band = matching.tolerance_band(payload.value, settings.match_tolerance)
    matching.check_filter_count(payload.products, name="products")

    base = matching.aggregate_max(await store.fetch_in_band(band))
    if not base:
        logger.info("match_complete value=%s products=%s base=0 results=0", payload.value, len(payload.products))
        return {"results": []}

    survivors = await matching.intersect_attributes(
        base,
        payload.products,
        store.fetch_ids_for_product,
        fan_out=settings.match_fan_out,
    )
    ranked = matching.rank_by_value(survivors)
    logger.info(
        "match_complete value=%s products=%s base=%s results=%s",
        payload.value,
        len(payload.products),
        len(base),
        len(ranked),
    )
    return {"results": [r.as_dict() for r in ranked]}


async def list_by_value(
    store: RecordStore,
    settings: Settings,
    payload: schemas.ByValueRequest,
) -> dict[str, Any]:
    band = matching.tolerance_band(payload.value, settings.match_tolerance)
    rows = matching.distinct_rows(await store.fetch_in_band(band))
    results = [r.as_dict() for r in matching.number_rows(rows)]
    return {"results": results, "number_of_results": len(results)}


async def intersect_by_category(
    store: RecordStore,
    payload: schemas.CategoryIntersectionRequest,
) -> dict[str, Any]:
    categories = list(payload.categories)
    matching.check_filter_count(categories, name="categories", minimum=1)

    rows = await store.fetch_category_rows(categories)
    if not rows:
        return {"results": [], "number_of_results": 0}

    hits = matching.intersect_categories(rows, categories)
    logger.info("category_intersection categories=%s rows=%s results=%s", len(categories), len(rows), len(hits))
    return {"results": matching.rank_ids(hits), "number_of_results": len(hits)}

"""
Subcategory service.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from core import pagination
from core.errors import ConflictError
from core.settings import Settings

from . import schemas
from .repository import SUBCATEGORIES_KEYSET

logger = logging.getLogger(__name__)


class SubcategoryStore(Protocol):
    async def list_subcategories(self, *, search: str, boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        ...

    async def insert_subcategory(self, *, name: str) -> dict[str, Any]:
        ...


async def list_subcategories(
    store: SubcategoryStore,
    settings: Settings,
    *,
    search: str = "",
    cursor: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    page_size = pagination.clamp_limit(
        limit,
        default=settings.subcategories_page_default,
        maximum=settings.subcategories_page_max,
    )

    async def fetch(boundary: Any, fetch_limit: int) -> list[dict[str, Any]]:
        return await store.list_subcategories(search=search, boundary=boundary, fetch_limit=fetch_limit)

    page = await pagination.fetch_page(fetch, SUBCATEGORIES_KEYSET, cursor=cursor, limit=page_size)
    return {"items": page.rows, "nextCursor": page.next_cursor}


async def create_subcategory(store: SubcategoryStore, payload: schemas.CreateSubcategoryRequest) -> dict[str, Any]:
    try:
        row = await store.insert_subcategory(name=payload.name)
    except ConflictError as exc:
        raise ConflictError("Subcategory name already exists") from exc
    logger.info("subcategory_created id=%s name=%s", row.get("id"), payload.name)
    return row

"""
Subcategory API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status

from auth import dependencies as auth_dependencies
from core.settings import Settings, get_settings
from core.validation import parse_body

from . import schemas, service

router = APIRouter(prefix="/api/v1/subcategories")


def get_subcategory_store(request: Request) -> service.SubcategoryStore:
    return request.app.state.subcategory_store


@router.get("")
async def list_subcategories(
    q: str = Query(default="", max_length=500),
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    store: service.SubcategoryStore = Depends(get_subcategory_store),
    settings: Settings = Depends(get_settings),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    """
    Newest first; `cursor` is `<created_at in UTC, Z suffix>_<id>` of the last
    item seen.
    """
    return await service.list_subcategories(store, settings, search=q, cursor=cursor, limit=limit)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_subcategory(
    request: Request,
    store: service.SubcategoryStore = Depends(get_subcategory_store),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    payload = await parse_body(request, schemas.CreateSubcategoryRequest)
    return await service.create_subcategory(store, payload)

"""
Record API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status

from auth import dependencies as auth_dependencies
from core.settings import Settings, get_settings
from core.validation import parse_body

from . import schemas, service
from .store import RecordStore

router = APIRouter(prefix="/api/v1/records")

TRUTHY = {"1", "true"}


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


@router.get("")
async def list_records(
    q: str = Query(default="", max_length=500),
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    """
    Selector-flag records ordered by id; follow `nextCursor` for more.
    """
    return await service.list_records(store, settings, search=q, cursor=cursor, limit=limit)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_record(
    request: Request,
    store: RecordStore = Depends(get_record_store),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    payload = await parse_body(request, schemas.CreateRecordRequest)
    return await service.create_record(store, payload)


@router.get("/count")
async def count_records(
    q: str = Query(default="", max_length=500),
    prnk_only: str = Query(default="", alias="prnkOnly"),
    store: RecordStore = Depends(get_record_store),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    return await service.count_records(store, search=q, selected_only=prnk_only.strip().lower() in TRUTHY)


@router.post("/match")
async def match_records(
    request: Request,
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    payload = await parse_body(request, schemas.MatchRequest)
    return await service.match_by_value(store, settings, payload)


@router.post("/by-value")
async def records_by_value(
    request: Request,
    store: RecordStore = Depends(get_record_store),
    settings: Settings = Depends(get_settings),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    payload = await parse_body(request, schemas.ByValueRequest)
    return await service.list_by_value(store, settings, payload)


@router.post("/intersect-by-category")
async def intersect_by_category(
    request: Request,
    store: RecordStore = Depends(get_record_store),
    _: str = Depends(auth_dependencies.require_api_key),
) -> dict:
    payload = await parse_body(request, schemas.CategoryIntersectionRequest)
    return await service.intersect_by_category(store, payload)

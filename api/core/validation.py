"""
Request body parsing shared by the POST endpoints.

Bodies are read leniently (anything that is not a JSON object counts as `{}`)
and then validated strictly, so a garbled body reports the missing fields
instead of a parse error.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

import pydantic
from fastapi import Request

from core.errors import ValidationError, describe_violations

Model = TypeVar("Model", bound=pydantic.BaseModel)


async def read_json_object(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _summary(error: dict[str, Any]) -> str:
    field = ".".join(str(part) for part in error.get("loc", ())) or "body"
    if error.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {error.get('msg', 'invalid value')}"


def validate_payload(model: type[Model], payload: dict[str, Any]) -> Model:
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as exc:
        errors = list(exc.errors())
        raise ValidationError(_summary(errors[0]), describe_violations(errors)) from exc


async def parse_body(request: Request, model: type[Model]) -> Model:
    return validate_payload(model, await read_json_object(request))

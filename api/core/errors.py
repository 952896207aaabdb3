"""
Error taxonomy shared by all features, plus the FastAPI handlers that render
it as `{"error": "..."}` JSON.

Services raise these; routers never build error responses by hand.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class AuthError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, violations: list[str] | None = None) -> None:
        super().__init__(message)
        self.violations = list(violations or [])

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        if self.violations:
            body["violations"] = self.violations
        return body


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(ApiError):
    # Store failures; the driver message is passed through and never retried.
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def describe_violations(errors: list[dict[str, Any]]) -> list[str]:
    """
    Flatten pydantic error dicts into "field: message" strings.
    """
    described: list[str] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query")]
        where = ".".join(loc) or "body"
        described.append(f"{where}: {err.get('msg', 'invalid value')}")
    return described


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.warning("upstream_error path=%s error=%s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = ValidationError("invalid request parameters", describe_violations(list(exc.errors())))
    return JSONResponse(status_code=err.status_code, content=err.payload())


def install_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)

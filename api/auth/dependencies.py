"""
Auth dependencies for protected FastAPI routes.

Callers authenticate with a shared API key in the `x-api-key` header. The
accepted keys come from `Settings.api_keys`.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, Header

from core.errors import AuthError
from core.settings import Settings, get_settings


def _is_accepted(key: str, accepted: frozenset[str]) -> bool:
    # No early exit: every accepted key is compared.
    matched = False
    for candidate in accepted:
        if secrets.compare_digest(key.encode("utf-8"), candidate.encode("utf-8")):
            matched = True
    return matched


async def require_api_key(
    x_api_key: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    key = x_api_key or ""
    if not key or not _is_accepted(key, settings.api_keys):
        raise AuthError("Invalid or missing API key")
    return key

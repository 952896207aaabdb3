"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. The app creates one on startup from
`Settings` and closes it on shutdown (see `api/main.py`); repositories get it
passed in.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Driver failures never leak out of this module: unique violations become
`ConflictError`, everything else from the store becomes `UpstreamError`
carrying the driver message.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from core.errors import ConflictError, UpstreamError
from core.settings import Settings


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


def like_pattern(search: str) -> str | None:
    """
    Case-insensitive substring pattern for `ILIKE ... ESCAPE '\\'`, or None
    when there is no search term. LIKE wildcards in the term match literally.
    """
    term = (search or "").strip()
    if not term:
        return None
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class Database:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._settings.require_database_url(),
                min_size=self._settings.db_pool_min_size,
                max_size=self._settings.db_pool_max_size,
                command_timeout=self._settings.db_command_timeout,
            )
        except (asyncpg.PostgresError, OSError) as exc:
            raise UpstreamError(f"Failed to connect to database: {exc}") from exc

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        try:
            row = await self.pool().fetchrow(sql, *args)
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(str(exc)) from exc
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise UpstreamError(str(exc)) from exc
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        try:
            rows = await self.pool().fetch(sql, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise UpstreamError(str(exc)) from exc
        return [_record_to_dict(r) for r in rows]

    async def fetch_value(self, sql: str, *args: Any) -> Any:
        try:
            return await self.pool().fetchval(sql, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise UpstreamError(str(exc)) from exc

    async def execute(self, sql: str, *args: Any) -> None:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
        """
        try:
            await self.pool().execute(sql, *args)
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(str(exc)) from exc
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise UpstreamError(str(exc)) from exc

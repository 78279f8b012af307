"""
Async database access helpers (raw SQL) using asyncpg.

The pool is created by the composition root on startup and owned by the
service container (see `api/core/container.py`). Helpers take the pool or
a single acquired connection as their first argument; both expose the
same `fetchrow` / `fetch` / `execute` methods.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from typing import Any, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

Executor = Union[asyncpg.Pool, asyncpg.Connection]


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url(raw_url: str) -> str:
    url = (raw_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def create_pool(raw_url: str) -> asyncpg.Pool:
    """
    Create the process-wide pool without opening a connection.

    `min_size=0` defers the first connection to the first acquire, so an
    unreachable database surfaces inside provisioning (where it is
    contained) instead of aborting startup.
    """
    return await asyncpg.create_pool(
        dsn=database_url(raw_url),
        min_size=0,
        max_size=5,
        command_timeout=30,
    )


async def close_pool(pool: asyncpg.Pool | None) -> None:
    if pool is None:
        return None
    await pool.close()


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(conn: Executor, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(conn: Executor, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def fetch_value(conn: Executor, sql: str, *args: Any) -> Any:
    return await conn.fetchval(sql, *args)


async def execute(conn: Executor, sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    await conn.execute(sql, *args)

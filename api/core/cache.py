"""
Optional cache backend (Redis) acquisition.

The cache is not required for the API to run. `acquire()` makes exactly one
connection attempt during startup and returns a `BackendHandle` that is
either live or explicitly unavailable; it never raises. Features built on
the cache (basket) must check `handle.available` and disable themselves
for the rest of the process lifetime when it is False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DISABLED_FEATURE = "Cart functionality will be disabled."


@dataclass(frozen=True)
class BackendHandle:
    client: Any = None
    reason: str | None = None

    @property
    def available(self) -> bool:
        return self.client is not None


UNAVAILABLE = BackendHandle(reason="not configured")


async def acquire(connection_string: str | None, *, timeout_s: float = 3.0) -> BackendHandle:
    """
    Connect to the cache described by `connection_string`, or degrade.

    - empty / whitespace: warning, `UNAVAILABLE`
    - connection or URL error: warning with the cause, unavailable handle
    - otherwise: live handle wrapping a `redis.asyncio.Redis` client
    """
    url = (connection_string or "").strip()
    if not url:
        logger.warning("cache_disabled reason=not_configured %s", DISABLED_FEATURE)
        return UNAVAILABLE

    client = None
    try:
        client = aioredis.from_url(
            url,
            socket_connect_timeout=timeout_s,
            socket_timeout=timeout_s,
            decode_responses=True,
        )
        await client.ping()
    except (RedisError, OSError, ValueError) as exc:
        logger.warning("cache_disabled reason=connect_failed error=%s %s", exc, DISABLED_FEATURE)
        await _close_quietly(client)
        return BackendHandle(reason=str(exc) or exc.__class__.__name__)

    logger.info("cache_connected")
    return BackendHandle(client=client)


async def close_handle(handle: BackendHandle) -> None:
    if not handle.available:
        return None
    await handle.client.aclose()


async def _close_quietly(client: Any) -> None:
    if client is None:
        return None
    try:
        await client.aclose()
    except (RedisError, OSError) as exc:
        logger.debug("cache_close_failed error=%s", exc)

"""
Service container and FastAPI dependency providers.

Lifetimes:
- singleton: everything held by `Container` (settings, origin policy,
  database pool, cache handle). Built once in the app lifespan and kept
  on `app.state.container`.
- scoped: `Container.scope()` lends one pooled connection for a unit of
  work and returns it to the pool afterwards. Requests get theirs through
  the `get_connection` dependency; startup provisioning uses it directly.
- transient: stateless objects built per resolution, requested with
  `Depends(..., use_cache=False)` (see `basket/router.py`).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import asyncpg
from fastapi import Depends, Request

from .cache import BackendHandle
from .config import Settings
from .origins import OriginRuleSet


@dataclass(frozen=True)
class Container:
    settings: Settings
    origin_policy: OriginRuleSet
    pool: asyncpg.Pool
    cache: BackendHandle

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[asyncpg.Connection]:
        async with self.pool.acquire() as conn:
            yield conn


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Service container is not initialized. Start the app through its lifespan.")
    return container


async def get_connection(container: Container = Depends(get_container)) -> AsyncIterator[asyncpg.Connection]:
    async with container.scope() as conn:
        yield conn

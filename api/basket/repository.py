"""
Basket storage in the optional cache (Redis).

Baskets are stored as JSON under `basket:<id>` and expire after the
configured TTL. Only constructed when the cache handle is live.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from .schemas import CustomerBasket

logger = logging.getLogger(__name__)

KEY_PREFIX = "basket:"


def basket_key(basket_id: str) -> str:
    return f"{KEY_PREFIX}{basket_id}"


class BasketRepository:
    def __init__(self, client: Any, *, ttl_s: int) -> None:
        self._client = client
        self._ttl_s = ttl_s

    async def get(self, basket_id: str) -> CustomerBasket | None:
        raw = await self._client.get(basket_key(basket_id))
        if not raw:
            return None
        try:
            return CustomerBasket.model_validate_json(raw)
        except ValidationError:
            # Unreadable values read as an empty basket; the next save replaces them.
            logger.warning("basket_unreadable basket_id=%s", basket_id)
            return None

    async def save(self, basket: CustomerBasket) -> CustomerBasket:
        await self._client.set(basket_key(basket.id), basket.model_dump_json(), ex=self._ttl_s)
        return basket

    async def delete(self, basket_id: str) -> bool:
        removed = await self._client.delete(basket_key(basket_id))
        return bool(removed)

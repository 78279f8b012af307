"""
Basket endpoints.

The basket lives in the optional cache. When the cache was not acquired
at startup every endpoint answers 503 instead of failing, and the rest of
the API keeps working.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from redis.exceptions import RedisError

from core.container import Container, get_container

from .repository import BasketRepository
from .schemas import CustomerBasket

logger = logging.getLogger(__name__)

router = APIRouter()


def get_basket_repository(container: Container = Depends(get_container)) -> BasketRepository:
    if not container.cache.available:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cart functionality is disabled.",
        )
    return BasketRepository(
        container.cache.client,
        ttl_s=container.settings.basket_ttl_days * 24 * 60 * 60,
    )


def _storage_unreachable(exc: RedisError) -> HTTPException:
    logger.warning("basket_storage_error error=%s", exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Cart storage is unreachable.",
    )


@router.get("/basket/{basket_id}")
async def get_basket(
    basket_id: str,
    baskets: BasketRepository = Depends(get_basket_repository, use_cache=False),
) -> CustomerBasket:
    try:
        basket = await baskets.get(basket_id)
    except RedisError as exc:
        raise _storage_unreachable(exc) from exc
    return basket or CustomerBasket(id=basket_id)


@router.post("/basket")
async def update_basket(
    basket: CustomerBasket,
    baskets: BasketRepository = Depends(get_basket_repository, use_cache=False),
) -> CustomerBasket:
    try:
        return await baskets.save(basket)
    except RedisError as exc:
        raise _storage_unreachable(exc) from exc


@router.delete("/basket/{basket_id}")
async def delete_basket(
    basket_id: str,
    baskets: BasketRepository = Depends(get_basket_repository, use_cache=False),
) -> dict:
    try:
        removed = await baskets.delete(basket_id)
    except RedisError as exc:
        raise _storage_unreachable(exc) from exc
    return {"ok": removed}

"""
Basket API schemas (request/response models).
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class BasketItem(BaseModel):
    product_id: int = Field(..., ge=1)
    product_name: str = Field(..., min_length=1, max_length=200)
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1, le=10_000)


class CustomerBasket(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    items: list[BasketItem] = Field(default_factory=list)

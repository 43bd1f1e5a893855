"""
Pydantic models for the MongoDB 'adopted_products' collection.

Each document is a business owner's snapshot of one admin product in one weight.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StockStatus(str, Enum):
    IN_STOCK = "inStock"
    OUT_OF_STOCK = "outOfStock"


VALID_STOCK_STATUSES = frozenset(s.value for s in StockStatus)


class AdoptRequest(BaseModel):
    """Adoption body. Stock fields are checked by the adoption service so all problems are reported together."""

    selected_weights: list[str] = Field(default_factory=list)
    stock_status: Any = StockStatus.IN_STOCK.value
    product_quantity: Any = 0


class AdoptedProductUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    stock_status: str | None = None
    product_quantity: float | None = None
    selected_weight: str | None = None

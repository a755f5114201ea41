# dealhub/schemas/orders.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class LineItemOut(BaseModel):
    id: int
    order_id: int
    deal_id: int
    quantity: int
    price: Decimal
    total_price: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class LineItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class LineItemDeleteOut(BaseModel):
    deleted: bool
    detail: str


class DecrementOut(BaseModel):
    # line_item is null once the row is gone
    destroyed: bool
    line_item: Optional[LineItemOut] = None


class OrderOut(BaseModel):
    id: int
    state: str
    user_id: int | None

    placed_at: datetime | None
    delivered_at: datetime | None
    cancelled_at: datetime | None
    last_transition_by_user_id: int | None

    line_items: List[LineItemOut] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True

# dealhub/schemas/coupons.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CouponOut(BaseModel):
    id: int
    code: str
    line_item_id: int
    redeemed_by_user_id: int | None
    redeemed_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class CouponRedeemRequest(BaseModel):
    code: str

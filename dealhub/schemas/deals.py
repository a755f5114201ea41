# dealhub/schemas/deals.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DealCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # presence is checked by the deal rules, not here
    title: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None

    start_at: Optional[datetime] = None
    expire_at: Optional[datetime] = None
    price: Optional[Decimal] = None

    minimum_purchases_required: Optional[int] = None
    maximum_purchases_allowed: Optional[int] = None
    maximum_purchases_per_customer: Optional[int] = None

    # collection membership goes through the collection endpoints
    category_id: Optional[int] = None

    location_ids: List[int] = Field(default_factory=list)


class DealUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None

    start_at: Optional[datetime] = None
    expire_at: Optional[datetime] = None
    price: Optional[Decimal] = None

    minimum_purchases_required: Optional[int] = None
    maximum_purchases_allowed: Optional[int] = None
    maximum_purchases_per_customer: Optional[int] = None

    category_id: Optional[int] = None

    # None leaves locations as they are
    location_ids: Optional[List[int]] = None
    remove_image_ids: List[int] = Field(default_factory=list)


class DealImageOut(BaseModel):
    id: int
    filename: str
    content_type: str
    byte_size: int

    class Config:
        from_attributes = True


class LocationRef(BaseModel):
    id: int
    name: str
    city: str

    class Config:
        from_attributes = True


class DealOut(BaseModel):
    id: int
    title: str
    description: str | None
    instructions: str | None

    start_at: datetime
    expire_at: datetime
    price: Decimal

    minimum_purchases_required: int | None
    maximum_purchases_allowed: int | None
    maximum_purchases_per_customer: int | None

    published_at: datetime | None
    category_id: int
    collection_id: int | None

    images: List[DealImageOut] = Field(default_factory=list)
    locations: List[LocationRef] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DealStatsOut(BaseModel):
    deal_id: int
    quantity_sold: int
    quantity_left: int | None
    percentage_sold: int | None
    minimum_criteria_met: bool


class SettlementOut(BaseModel):
    deal_id: int
    quantity_sold: int
    minimum_criteria_met: bool
    outcome: str
    orders: int
    coupons: int


class DealDeleteOut(BaseModel):
    deleted: bool
    detail: str

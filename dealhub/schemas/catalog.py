# dealhub/schemas/catalog.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str | None = Field(default=None, max_length=255)


class CategoryOut(BaseModel):
    id: int
    name: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=255)


class LocationOut(BaseModel):
    id: int
    name: str
    city: str

    class Config:
        from_attributes = True


class CollectionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


class CollectionOut(BaseModel):
    id: int
    title: str
    published_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class CollectionDealIn(BaseModel):
    deal_id: int

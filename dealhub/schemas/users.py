from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role_name: str
    is_activated: bool
    verified_at: Optional[datetime] = None
    created_at: datetime


class PasswordResetRequest(BaseModel):
    email: str


class PasswordResetIn(BaseModel):
    password: str
    password_confirmation: Optional[str] = None

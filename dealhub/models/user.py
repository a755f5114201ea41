from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from dealhub.core.db import Base, UTCDateTime, utcnow
from dealhub.domain.user_rules import Role


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # stored lower-cased; uniqueness is case-insensitive
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[int] = mapped_column(Integer, nullable=False, default=int(Role.CUSTOMER))

    verified_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    verification_token: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    password_reset_token: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    password_reset_sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    @property
    def is_activated(self) -> bool:
        return self.verified_at is not None

    @property
    def role_name(self) -> str:
        return Role(self.role).name.lower()

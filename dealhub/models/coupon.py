# dealhub/models/coupon.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealhub.core.db import Base, UTCDateTime, utcnow


class Coupon(Base):
    __tablename__ = "coupons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # assigned once, on creation
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    line_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("line_items.id", ondelete="CASCADE"), nullable=False
    )

    redeemed_by_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    redeemed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    line_item = relationship("LineItem", back_populates="coupons")

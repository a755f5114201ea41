# dealhub/models/line_item.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealhub.core.db import Base, UTCDateTime, utcnow


class LineItem(Base):
    __tablename__ = "line_items"
    __table_args__ = (
        UniqueConstraint("deal_id", "order_id", name="uq_line_items_deal_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    deal_id: Mapped[int] = mapped_column(Integer, ForeignKey("deals.id"), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # unit price captured when the deal was first added
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="line_items")
    deal = relationship("Deal", back_populates="line_items", lazy="selectin")
    coupons: Mapped[List["Coupon"]] = relationship(
        "Coupon", back_populates="line_item", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def total_price(self) -> Decimal:
        return self.price * self.quantity

# dealhub/models/deal.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealhub.core.db import Base, UTCDateTime, utcnow
from dealhub.domain.deal_rules import DealState
from dealhub.domain.status import DealStatus, deal_status
from dealhub.models.location import deals_locations


class Deal(Base):
    __tablename__ = "deals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    start_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expire_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    minimum_purchases_required: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    maximum_purchases_allowed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    maximum_purchases_per_customer: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # null means draft
    published_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    category_id: Mapped[int] = mapped_column(Integer, ForeignKey("categories.id"), nullable=False)
    collection_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("collections.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )

    category = relationship("Category", back_populates="deals", lazy="selectin")
    collection = relationship("Collection", back_populates="deals", lazy="selectin")

    locations: Mapped[List["Location"]] = relationship(
        "Location", secondary=deals_locations, lazy="selectin"
    )
    images: Mapped[List["DealImage"]] = relationship(
        "DealImage",
        back_populates="deal",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DealImage.id",
    )
    line_items: Mapped[List["LineItem"]] = relationship("LineItem", back_populates="deal")

    def to_state(self) -> DealState:
        return DealState(
            title=self.title,
            start_at=self.start_at,
            expire_at=self.expire_at,
            price=self.price,
            minimum_purchases_required=self.minimum_purchases_required,
            maximum_purchases_allowed=self.maximum_purchases_allowed,
            maximum_purchases_per_customer=self.maximum_purchases_per_customer,
            published_at=self.published_at,
            category_id=self.category_id,
            collection_id=self.collection_id,
            created_at=self.created_at,
        )

    def status(self, now: datetime) -> DealStatus:
        return deal_status(published_at=self.published_at, expire_at=self.expire_at, now=now)

    @property
    def is_published(self) -> bool:
        return self.published_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expire_at < now

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db, utcnow
from dealhub.domain.status import DealStatus
from dealhub.schemas.deals import DealOut
from dealhub.services.deals import get_deal, list_public_deals

router = APIRouter(prefix="/deals", tags=["Deals"])


@router.get("", response_model=list[DealOut])
async def list_live_deals(
    q: Optional[str] = Query(default=None, max_length=255),
    category_id: Optional[int] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await list_public_deals(db, search=q, category_id=category_id)


@router.get("/{deal_id}", response_model=DealOut)
async def get_live_deal(deal_id: int, db: AsyncSession = Depends(get_db)):
    deal = await get_deal(db, deal_id)
    # drafts stay hidden
    if deal.status(utcnow()) is DealStatus.DRAFT:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal

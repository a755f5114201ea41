# dealhub/routers/admin_orders.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.deps import require_admin
from dealhub.domain.status import OrderEvent
from dealhub.schemas.orders import OrderOut
from dealhub.services.orders import apply_order_event, get_order, list_orders

router = APIRouter(prefix="/admin/orders", tags=["Admin - Orders"])


@router.get("", response_model=list[OrderOut])
async def list_all_orders(
    user_id: Optional[int] = Query(default=None),
    state: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_orders(db, user_id=user_id, state=state, limit=limit, offset=offset)


@router.get("/{order_id}", response_model=OrderOut)
async def get_one(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await get_order(db, order_id)


@router.post("/{order_id}/deliver", response_model=OrderOut)
async def deliver(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    order = await get_order(db, order_id)
    return await apply_order_event(db, order=order, event=OrderEvent.DELIVER, actor=admin_user)


@router.post("/{order_id}/cancel", response_model=OrderOut)
async def cancel(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    order = await get_order(db, order_id)
    return await apply_order_event(db, order=order, event=OrderEvent.CANCEL, actor=admin_user)

# dealhub/routers/line_items.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.deps import current_cart, get_current_user
from dealhub.models.line_item import LineItem
from dealhub.models.order import Order
from dealhub.models.user import User
from dealhub.schemas.orders import DecrementOut, LineItemDeleteOut, LineItemOut, LineItemUpdate
from dealhub.services.deals import get_deal
from dealhub.services.orders import (
    add_deal,
    decrement_line_item,
    destroy_line_item,
    get_line_item,
    list_line_items,
    update_line_item,
)

router = APIRouter(prefix="/line-items", tags=["Cart"])


async def _owned_line_item(db: AsyncSession, line_item_id: int, user: User, cart: Order) -> LineItem:
    """An item of the session cart, of one of the user's placed orders, or any item for admins."""
    line_item = await get_line_item(db, line_item_id)
    if user.is_admin or line_item.order_id == cart.id:
        return line_item
    order = await db.get(Order, line_item.order_id)
    if order is None or order.user_id != user.id:
        raise HTTPException(status_code=404, detail="Line item not found")
    return line_item


@router.post("", response_model=LineItemOut, status_code=201)
async def create(
    deal_id: int = Query(...),
    db: AsyncSession = Depends(get_db),
    cart: Order = Depends(current_cart),
):
    deal = await get_deal(db, deal_id)
    return await add_deal(db, order=cart, deal=deal)


@router.post("/{line_item_id}/decrement", response_model=DecrementOut)
async def decrement(
    line_item_id: int,
    db: AsyncSession = Depends(get_db),
    cart: Order = Depends(current_cart),
):
    line_item = await decrement_line_item(db, order=cart, line_item_id=line_item_id)
    return {"destroyed": line_item is None, "line_item": line_item}


@router.get("", response_model=list[LineItemOut])
async def index(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cart: Order = Depends(current_cart),
):
    return await list_line_items(db, user=current_user, cart_id=cart.id)


@router.get("/{line_item_id}", response_model=LineItemOut)
async def show(
    line_item_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cart: Order = Depends(current_cart),
):
    return await _owned_line_item(db, line_item_id, current_user, cart)


@router.patch("/{line_item_id}", response_model=LineItemOut)
async def update(
    line_item_id: int,
    body: LineItemUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cart: Order = Depends(current_cart),
):
    line_item = await _owned_line_item(db, line_item_id, current_user, cart)
    return await update_line_item(db, line_item, quantity=body.quantity)


@router.delete("/{line_item_id}", response_model=LineItemDeleteOut)
async def delete(
    line_item_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    cart: Order = Depends(current_cart),
):
    line_item = await _owned_line_item(db, line_item_id, current_user, cart)
    if await destroy_line_item(db, line_item):
        return {"deleted": True, "detail": "Line item deleted"}
    return {"deleted": False, "detail": "Line item belongs to a placed order"}

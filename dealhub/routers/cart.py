from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.deps import current_cart, get_current_user
from dealhub.models.order import Order
from dealhub.models.user import User
from dealhub.schemas.orders import OrderOut
from dealhub.services.orders import checkout

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=OrderOut)
async def show_cart(cart: Order = Depends(current_cart)):
    return cart


@router.post("/checkout", response_model=OrderOut)
async def place_order(
    request: Request,
    db: AsyncSession = Depends(get_db),
    cart: Order = Depends(current_cart),
    current_user: User = Depends(get_current_user),
):
    return await checkout(db, order=cart, user=current_user, session=request.session)

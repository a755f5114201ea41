# dealhub/services/orders.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import MutableMapping, Optional

from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import utcnow
from dealhub.domain.errors import CartError, Errors
from dealhub.domain.status import DealStatus, OrderEvent, OrderState, next_order_state
from dealhub.models.deal import Deal
from dealhub.models.line_item import LineItem
from dealhub.models.order import Order
from dealhub.models.user import User

logger = logging.getLogger(__name__)

CART_SESSION_KEY = "order_id"

DEAL_UNAVAILABLE = "Deal is not available for purchase"
CART_EMPTY = "Cart is empty"


def _cart_error(message: str, field: str | None = None) -> CartError:
    errors = Errors()
    if field:
        errors.add(field, message)
    else:
        errors.add_base(message)
    return CartError(errors, message)


# -------------------------
# Cart
# -------------------------
async def get_cart(db: AsyncSession, session: MutableMapping) -> Order:
    """The in-progress order behind the session, created on first use."""
    order: Optional[Order] = None

    order_id = session.get(CART_SESSION_KEY)
    if order_id is not None:
        order = await db.get(Order, int(order_id))
        if order is not None and order.state != OrderState.IN_PROGRESS.value:
            order = None

    if order is None:
        order = Order(state=OrderState.IN_PROGRESS.value)
        db.add(order)
        await db.commit()
        await db.refresh(order)
        session[CART_SESSION_KEY] = order.id
        logger.info("Cart order %s opened", order.id)

    return order


async def _find_line_item(db: AsyncSession, order_id: int, deal_id: int) -> LineItem | None:
    res = await db.execute(
        select(LineItem).where(LineItem.order_id == order_id, LineItem.deal_id == deal_id)
    )
    return res.scalar_one_or_none()


def _check_customer_cap(deal: Deal, quantity: int) -> None:
    cap = deal.maximum_purchases_per_customer
    if cap and quantity > cap:
        raise _cart_error(f"cannot exceed {cap} per customer", "quantity")


async def add_deal(
    db: AsyncSession,
    *,
    order: Order,
    deal: Deal,
    now: datetime | None = None,
) -> LineItem:
    """Put one more unit of ``deal`` in the cart; one row per (deal, order)."""
    now = now or utcnow()
    if deal.status(now) is not DealStatus.PUBLISHED:
        raise _cart_error(DEAL_UNAVAILABLE)

    line_item = await _find_line_item(db, order.id, deal.id)
    _check_customer_cap(deal, (line_item.quantity if line_item else 0) + 1)

    try:
        if line_item:
            line_item.quantity += 1
        else:
            line_item = LineItem(order_id=order.id, deal_id=deal.id, quantity=1, price=deal.price)
            db.add(line_item)
        await db.commit()
    except IntegrityError:
        # a concurrent request inserted the row first; bump that one
        await db.rollback()
        line_item = await _find_line_item(db, order.id, deal.id)
        if line_item is None:
            raise
        _check_customer_cap(deal, line_item.quantity + 1)
        line_item.quantity += 1
        await db.commit()

    await db.refresh(line_item)
    logger.info("Deal %s in order %s now x%s", deal.id, order.id, line_item.quantity)
    return line_item


async def get_line_item(db: AsyncSession, line_item_id: int) -> LineItem:
    line_item = await db.get(LineItem, line_item_id)
    if not line_item:
        raise HTTPException(status_code=404, detail="Line item not found")
    return line_item


async def list_line_items(
    db: AsyncSession, *, user: User, cart_id: Optional[int] = None
) -> list[LineItem]:
    stmt = select(LineItem).order_by(LineItem.id.asc())
    if not user.is_admin:
        stmt = stmt.join(Order, Order.id == LineItem.order_id).where(
            or_(Order.user_id == user.id, Order.id == cart_id)
        )
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def decrement_line_item(db: AsyncSession, *, order: Order, line_item_id: int) -> LineItem | None:
    """Drop one unit; the row is destroyed when quantity reaches zero."""
    line_item = await get_line_item(db, line_item_id)
    if line_item.order_id != order.id:
        raise HTTPException(status_code=404, detail="Line item not found")

    try:
        line_item.quantity -= 1
        if line_item.quantity <= 0:
            await db.delete(line_item)
            await db.commit()
            return None
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(line_item)
    return line_item


async def update_line_item(db: AsyncSession, line_item: LineItem, *, quantity: int) -> LineItem:
    order = await db.get(Order, line_item.order_id)
    if order is None or order.state != OrderState.IN_PROGRESS.value:
        raise _cart_error("Only items of an open cart can be changed")

    _check_customer_cap(line_item.deal, quantity)

    try:
        line_item.quantity = quantity
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(line_item)
    return line_item


async def destroy_line_item(db: AsyncSession, line_item: LineItem) -> bool:
    order = await db.get(Order, line_item.order_id)
    if order is None or order.state != OrderState.IN_PROGRESS.value:
        return False
    try:
        await db.delete(line_item)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return True


# -------------------------
# State transitions
# -------------------------
def transition_order(
    order: Order,
    event: OrderEvent,
    *,
    actor: User | None,
    now: datetime,
) -> Order:
    """Move ``order`` along the state table (no commit)."""
    order.state = next_order_state(order.state, event).value

    if event is OrderEvent.CHECKOUT:
        order.placed_at = now
    elif event is OrderEvent.DELIVER:
        order.delivered_at = now
    elif event is OrderEvent.CANCEL:
        order.cancelled_at = now

    order.last_transition_by_user_id = actor.id if actor else None
    return order


async def checkout(
    db: AsyncSession,
    *,
    order: Order,
    user: User,
    session: MutableMapping | None = None,
    now: datetime | None = None,
) -> Order:
    now = now or utcnow()
    await db.refresh(order)

    if not order.line_items:
        raise _cart_error(CART_EMPTY)

    errors = Errors()
    for li in order.line_items:
        if li.deal.status(now) is not DealStatus.PUBLISHED:
            errors.add_base(f"{li.deal.title} is no longer available")
    if errors:
        raise CartError(errors)

    try:
        order.user_id = user.id
        transition_order(order, OrderEvent.CHECKOUT, actor=user, now=now)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if session is not None:
        session.pop(CART_SESSION_KEY, None)

    await db.refresh(order)
    logger.info("Order %s checked out by user %s", order.id, user.id)
    return order


async def get_order(db: AsyncSession, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def list_orders(
    db: AsyncSession,
    *,
    user_id: Optional[int] = None,
    state: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Order]:
    stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if user_id is not None:
        stmt = stmt.where(Order.user_id == user_id)
    if state is not None:
        stmt = stmt.where(Order.state == state)
    res = await db.execute(stmt.limit(limit).offset(offset))
    return list(res.scalars().all())


async def apply_order_event(
    db: AsyncSession,
    *,
    order: Order,
    event: OrderEvent,
    actor: User,
    now: datetime | None = None,
) -> Order:
    try:
        transition_order(order, event, actor=actor, now=now or utcnow())
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(order)
    logger.info("Order %s -> %s by user %s", order.id, order.state, actor.id)
    return order

"""
Settlement of expired deals.

Settlement works per line item. A deal that reached its minimum sells: each
of its paid line items without coupons gets one coupon per unit, and the
orders still `completed` are delivered. Otherwise those orders are
cancelled. An order already delivered by another of its deals keeps its
state. The system admin account is recorded as the actor.
"""
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import utcnow
from dealhub.domain import deal_rules
from dealhub.domain.errors import TokenConflictError
from dealhub.domain.status import OrderEvent, OrderState
from dealhub.models.coupon import Coupon
from dealhub.models.deal import Deal
from dealhub.models.line_item import LineItem
from dealhub.models.order import Order
from dealhub.models.user import User
from dealhub.services.coupons import issue_coupons, schedule_coupon_emails
from dealhub.services.deals import SOLD_ORDER_STATES, list_expired_today, quantity_sold
from dealhub.services.orders import transition_order
from dealhub.services.users import get_sys_admin

logger = logging.getLogger(__name__)


async def _unsettled_line_items(db: AsyncSession, deal_id: int) -> list[LineItem]:
    # an order holding several deals may already be delivered by another one
    res = await db.execute(
        select(LineItem)
        .join(Order, Order.id == LineItem.order_id)
        .where(
            LineItem.deal_id == deal_id,
            Order.state.in_(SOLD_ORDER_STATES),
            ~LineItem.coupons.any(),
        )
        .order_by(LineItem.id.asc())
    )
    return list(res.scalars().all())


async def settle_deal(
    db: AsyncSession,
    deal: Deal,
    *,
    background_tasks: BackgroundTasks,
    actor: User | None = None,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    actor = actor or await get_sys_admin(db)

    sold = await quantity_sold(db, deal.id)
    met = deal_rules.minimum_criteria_met(sold, deal.minimum_purchases_required)
    line_items = await _unsettled_line_items(db, deal.id)

    coupons: list[Coupon] = []
    moved = 0

    try:
        for li in line_items:
            if met:
                coupons.extend(await issue_coupons(db, line_item=li))
            order = await db.get(Order, li.order_id)
            if order.state == OrderState.COMPLETED.value:
                event = OrderEvent.DELIVER if met else OrderEvent.CANCEL
                transition_order(order, event, actor=actor, now=now)
                moved += 1
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    schedule_coupon_emails(background_tasks, coupons)

    outcome = "delivered" if met else "cancelled"
    logger.info(
        "Deal %s settled: %s %s orders, %s coupons (sold %s)",
        deal.id, outcome, moved, len(coupons), sold,
    )
    return {
        "deal_id": deal.id,
        "quantity_sold": sold,
        "minimum_criteria_met": met,
        "outcome": outcome,
        "orders": moved,
        "coupons": len(coupons),
    }


async def settle_expired_deals(
    db: AsyncSession,
    *,
    background_tasks: BackgroundTasks,
    now: datetime | None = None,
) -> list[dict]:
    """Settle every published deal that expired today; one failing deal does not stop the rest."""
    now = now or utcnow()
    actor_id = (await get_sys_admin(db)).id
    deal_ids = [d.id for d in await list_expired_today(db, now=now) if d.published_at is not None]

    results = []
    for deal_id in deal_ids:
        # a failed deal rolls the session back and expires what it loaded
        deal = await db.get(Deal, deal_id)
        actor = await db.get(User, actor_id)
        try:
            results.append(
                await settle_deal(db, deal, background_tasks=background_tasks, actor=actor, now=now)
            )
        except (TokenConflictError, SQLAlchemyError):
            logger.exception("Settlement of deal %s failed", deal_id)
    return results

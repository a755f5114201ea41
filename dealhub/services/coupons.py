# dealhub/services/coupons.py
from __future__ import annotations

import logging

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.config import settings
from dealhub.core.db import utcnow
from dealhub.domain.errors import TokenConflictError
from dealhub.domain.tokens import generate_unique_token, new_token
from dealhub.models.coupon import Coupon
from dealhub.models.line_item import LineItem
from dealhub.models.order import Order
from dealhub.models.user import User
from dealhub.tasks.email_tasks import send_coupon_email

logger = logging.getLogger(__name__)


async def _code_taken(db: AsyncSession, code: str) -> bool:
    res = await db.execute(select(Coupon.id).where(Coupon.code == code).limit(1))
    return res.scalar_one_or_none() is not None


async def _generate_coupon_code(db: AsyncSession, generator=new_token) -> str:
    return await generate_unique_token(
        lambda code: _code_taken(db, code),
        max_attempts=settings.TOKEN_MAX_ATTEMPTS,
        generator=generator,
    )


async def create_coupon(db: AsyncSession, *, line_item: LineItem, generator=new_token) -> Coupon:
    """
    Add one coupon for ``line_item`` to the session (no commit).

    The unique index on ``coupons.code`` has the last word: a concurrent
    insert of the same code is retried with a fresh one, within the same
    attempt budget as the lookup loop.
    """
    for _ in range(settings.TOKEN_MAX_ATTEMPTS):
        code = await _generate_coupon_code(db, generator)
        coupon = Coupon(code=code, line_item_id=line_item.id)
        try:
            async with db.begin_nested():
                db.add(coupon)
                await db.flush()
        except IntegrityError:
            logger.warning("Coupon code collision on insert; retrying")
            continue
        return coupon

    raise TokenConflictError("Could not store a unique coupon code")


async def issue_coupons(db: AsyncSession, *, line_item: LineItem, generator=new_token) -> list[Coupon]:
    """One coupon per unit of quantity (no commit)."""
    created: list[Coupon] = []
    for _ in range(line_item.quantity):
        created.append(await create_coupon(db, line_item=line_item, generator=generator))
    return created


def schedule_coupon_emails(background_tasks: BackgroundTasks, coupons: list[Coupon]) -> None:
    # only after the coupons are committed
    for c in coupons:
        background_tasks.add_task(send_coupon_email, c.id)


async def list_coupons_for_user(db: AsyncSession, *, user_id: int) -> list[Coupon]:
    res = await db.execute(
        select(Coupon)
        .join(LineItem, LineItem.id == Coupon.line_item_id)
        .join(Order, Order.id == LineItem.order_id)
        .where(Order.user_id == user_id)
        .order_by(Coupon.created_at.desc(), Coupon.id.desc())
    )
    return list(res.scalars().all())


async def redeem_coupon(db: AsyncSession, *, code: str, user: User) -> Coupon:
    res = await db.execute(select(Coupon).where(Coupon.code == code).with_for_update())
    coupon = res.scalar_one_or_none()

    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    if coupon.redeemed_at is not None:
        raise HTTPException(status_code=400, detail="Coupon already redeemed")

    try:
        coupon.redeemed_by_user_id = user.id
        coupon.redeemed_at = utcnow()
        await db.commit()
        await db.refresh(coupon)
        return coupon
    except Exception:
        await db.rollback()
        raise

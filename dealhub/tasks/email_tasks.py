"""
Deferred email jobs, scheduled through FastAPI BackgroundTasks.

Each job opens its own session; the request session is closed by the time
the job runs.
"""
import logging

import httpx
from sqlalchemy import select

from dealhub.core.config import settings
from dealhub.core.db import session_scope
from dealhub.integrations.mail_client import MailApiClient, MailApiError
from dealhub.models.coupon import Coupon
from dealhub.models.line_item import LineItem
from dealhub.models.order import Order
from dealhub.models.user import User

logger = logging.getLogger(__name__)


async def send_coupon_email(coupon_id: int) -> None:
    """Tell the buyer a coupon was issued."""
    async with session_scope() as db:
        res = await db.execute(
            select(Coupon, LineItem, Order, User)
            .join(LineItem, LineItem.id == Coupon.line_item_id)
            .join(Order, Order.id == LineItem.order_id)
            .join(User, User.id == Order.user_id)
            .where(Coupon.id == coupon_id)
        )
        row = res.first()

    if row is None:
        logger.warning("Coupon %s has no buyer to notify", coupon_id)
        return

    coupon, line_item, _order, user = row
    text = (
        f"Hi {user.name},\n\n"
        f"Your coupon for \"{line_item.deal.title}\" is ready: {coupon.code}\n"
    )
    await _deliver(to=user.email, subject="Your coupon code", text=text, ref=f"coupon {coupon_id}")


async def send_verification_email(user_id: int) -> None:
    async with session_scope() as db:
        user = await db.get(User, user_id)

    if user is None or not user.verification_token:
        logger.warning("User %s has nothing to verify", user_id)
        return

    link = f"{settings.FRONTEND_URL}/verify/{user.verification_token}"
    text = f"Hi {user.name},\n\nPlease confirm your email address: {link}\n"
    await _deliver(to=user.email, subject="Verify your email", text=text, ref=f"user {user_id}")


async def send_password_reset_email(user_id: int) -> None:
    async with session_scope() as db:
        user = await db.get(User, user_id)

    if user is None or not user.password_reset_token:
        logger.warning("User %s has no pending password reset", user_id)
        return

    link = f"{settings.FRONTEND_URL}/password-reset/{user.password_reset_token}"
    text = (
        f"Hi {user.name},\n\n"
        f"Reset your password within {settings.PASSWORD_RESET_TTL_HOURS} hours: {link}\n"
    )
    await _deliver(to=user.email, subject="Password reset", text=text, ref=f"user {user_id}")


async def _deliver(*, to: str, subject: str, text: str, ref: str) -> None:
    try:
        await MailApiClient().send(to=to, subject=subject, text=text)
        logger.info("Email '%s' dispatched for %s", subject, ref)
    except (MailApiError, httpx.HTTPError) as e:
        logger.error("Failed to send '%s' for %s: %s", subject, ref, e)

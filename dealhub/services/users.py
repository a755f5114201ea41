# dealhub/services/users.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.config import settings
from dealhub.core.db import utcnow
from dealhub.core.security import hash_password, verify_password
from dealhub.domain.errors import Errors, UserValidationError
from dealhub.domain.tokens import generate_unique_token
from dealhub.domain.user_rules import Role, UserDraft, check_password, normalize_email, validate_user
from dealhub.models.user import User
from dealhub.tasks.email_tasks import send_password_reset_email, send_verification_email

logger = logging.getLogger(__name__)

RESET_EXPIRED = "Password reset has expired"


async def _email_taken(db: AsyncSession, email: str | None) -> bool:
    if not email:
        return False
    res = await db.execute(select(User.id).where(func.lower(User.email) == email.lower()).limit(1))
    return res.scalar_one_or_none() is not None


async def _verification_token_taken(db: AsyncSession, token: str) -> bool:
    res = await db.execute(
        select(User.id).where(func.lower(User.verification_token) == token.lower()).limit(1)
    )
    return res.scalar_one_or_none() is not None


async def _reset_token_taken(db: AsyncSession, token: str) -> bool:
    res = await db.execute(select(User.id).where(User.password_reset_token == token).limit(1))
    return res.scalar_one_or_none() is not None


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def register_user(
    db: AsyncSession,
    *,
    name: str | None,
    email: str | None,
    password: str | None,
    background_tasks: BackgroundTasks,
    password_confirmation: str | None = None,
    role: Role = Role.CUSTOMER,
    verification_token: str | None = None,
) -> User:
    """
    Create a user. A verification token passed in is kept as is; otherwise a
    fresh unique one is drawn. Customers get a verification email afterwards.
    """
    email = normalize_email(email)
    draft = UserDraft(
        name=name,
        email=email,
        password=password,
        password_confirmation=password_confirmation,
    )
    errors = validate_user(draft, email_taken=await _email_taken(db, email))

    if verification_token:
        if await _verification_token_taken(db, verification_token):
            errors.add("verification_token", "has already been taken")
    if errors:
        raise UserValidationError(errors)

    if not verification_token:
        verification_token = await generate_unique_token(
            lambda t: _verification_token_taken(db, t),
            max_attempts=settings.TOKEN_MAX_ATTEMPTS,
        )

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=int(role),
        verification_token=verification_token,
    )

    try:
        db.add(user)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        errors = Errors()
        errors.add("email", "has already been taken")
        raise UserValidationError(errors)

    await db.refresh(user)

    if user.is_customer:
        background_tasks.add_task(send_verification_email, user.id)

    logger.info("User %s registered as %s", user.id, user.role_name)
    return user


async def verify_email(db: AsyncSession, user: User, *, now: datetime | None = None) -> User:
    """Mark the email verified with a plain UPDATE; no validation runs."""
    now = now or utcnow()
    await db.execute(
        update(User)
        .where(User.id == user.id)
        .values(verified_at=now, verification_token=None)
    )
    await db.commit()
    await db.refresh(user)
    logger.info("User %s verified email", user.id)
    return user


async def verify_email_token(db: AsyncSession, token: str) -> User:
    res = await db.execute(select(User).where(User.verification_token == token))
    user = res.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="Verification token not found")
    return await verify_email(db, user)


async def authenticate(db: AsyncSession, *, email: str, password: str) -> User | None:
    res = await db.execute(select(User).where(User.email == normalize_email(email)))
    user = res.scalar_one_or_none()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


async def request_password_reset(
    db: AsyncSession,
    *,
    email: str,
    background_tasks: BackgroundTasks,
    now: datetime | None = None,
) -> None:
    # silent when the address is unknown
    res = await db.execute(select(User).where(User.email == normalize_email(email)))
    user = res.scalar_one_or_none()
    if not user:
        return

    user.password_reset_token = await generate_unique_token(
        lambda t: _reset_token_taken(db, t),
        max_attempts=settings.TOKEN_MAX_ATTEMPTS,
    )
    user.password_reset_sent_at = now or utcnow()
    await db.commit()

    background_tasks.add_task(send_password_reset_email, user.id)


def password_reset_expired(user: User, now: datetime) -> bool:
    if user.password_reset_sent_at is None:
        return True
    ttl = timedelta(hours=settings.PASSWORD_RESET_TTL_HOURS)
    return user.password_reset_sent_at < now - ttl


async def reset_password(
    db: AsyncSession,
    *,
    token: str,
    password: str,
    password_confirmation: str | None = None,
    now: datetime | None = None,
) -> User:
    now = now or utcnow()
    res = await db.execute(select(User).where(User.password_reset_token == token))
    user = res.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="Password reset token not found")

    errors = Errors()
    if password_reset_expired(user, now):
        errors.add_base(RESET_EXPIRED)
    if not password:
        errors.add("password", "can't be blank")
    check_password(password, password_confirmation, errors)
    if errors:
        raise UserValidationError(errors)

    user.password_hash = hash_password(password)
    user.password_reset_token = None
    user.password_reset_sent_at = None
    await db.commit()
    await db.refresh(user)
    logger.info("User %s reset password", user.id)
    return user


async def get_sys_admin(db: AsyncSession) -> User:
    """The admin account that batch jobs act as."""
    res = await db.execute(select(User).where(User.email == normalize_email(settings.SYS_ADMIN_EMAIL)))
    user = res.scalar_one_or_none()
    if user and user.is_admin:
        return user

    res = await db.execute(
        select(User).where(User.role == int(Role.ADMIN)).order_by(User.id.asc()).limit(1)
    )
    user = res.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=503, detail="System admin user not configured")
    return user

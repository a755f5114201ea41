"""
Tests for user service
"""
from datetime import timedelta

import pytest
from fastapi import BackgroundTasks

from dealhub.core.db import utcnow
from dealhub.core.security import verify_password
from dealhub.domain.errors import UserValidationError
from dealhub.domain.user_rules import Role
from dealhub.services.users import (
    authenticate,
    get_sys_admin,
    register_user,
    request_password_reset,
    reset_password,
    verify_email,
)
from dealhub.tasks.email_tasks import send_password_reset_email, send_verification_email
from tests.helpers import PASSWORD, make_user


class TestRegistration:
    @pytest.mark.asyncio
    async def test_customer_gets_token_and_email(self, db_session):
        tasks = BackgroundTasks()
        user = await register_user(
            db_session,
            name="Ann",
            email="Ann@Example.com",
            password="secret1",
            background_tasks=tasks,
        )

        assert user.email == "ann@example.com"
        assert user.verification_token
        assert not user.is_activated
        assert [t.func for t in tasks.tasks] == [send_verification_email]
        assert tasks.tasks[0].args == (user.id,)

    @pytest.mark.asyncio
    async def test_given_token_is_kept(self, db_session):
        user = await register_user(
            db_session,
            name="Ann",
            email="ann@example.com",
            password="secret1",
            background_tasks=BackgroundTasks(),
            verification_token="preset-token",
        )
        assert user.verification_token == "preset-token"

    @pytest.mark.asyncio
    async def test_admin_gets_no_email(self, db_session):
        tasks = BackgroundTasks()
        await register_user(
            db_session,
            name="Root",
            email="root@example.com",
            password="secret1",
            role=Role.ADMIN,
            background_tasks=tasks,
        )
        assert tasks.tasks == []

    @pytest.mark.asyncio
    async def test_email_taken_ignoring_case(self, db_session):
        await make_user(db_session, email="ann@example.com")

        with pytest.raises(UserValidationError) as exc_info:
            await register_user(
                db_session,
                name="Ann",
                email="ANN@example.com",
                password="secret1",
                background_tasks=BackgroundTasks(),
            )
        assert exc_info.value.errors["email"] == ["has already been taken"]

    @pytest.mark.asyncio
    async def test_short_password(self, db_session):
        with pytest.raises(UserValidationError) as exc_info:
            await register_user(
                db_session,
                name="Ann",
                email="ann@example.com",
                password="abc",
                background_tasks=BackgroundTasks(),
            )
        assert exc_info.value.errors["password"] == ["is too short (minimum is 6 characters)"]


class TestVerification:
    @pytest.mark.asyncio
    async def test_verify_email_clears_token(self, db_session):
        user = await register_user(
            db_session,
            name="Ann",
            email="ann@example.com",
            password="secret1",
            background_tasks=BackgroundTasks(),
        )

        user = await verify_email(db_session, user)

        assert user.is_activated
        assert user.verification_token is None


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_reset_within_window(self, db_session):
        user = await make_user(db_session, email="ann@example.com")
        tasks = BackgroundTasks()

        await request_password_reset(db_session, email="ann@example.com", background_tasks=tasks)
        await db_session.refresh(user)
        assert user.password_reset_token
        assert [t.func for t in tasks.tasks] == [send_password_reset_email]

        user = await reset_password(
            db_session,
            token=user.password_reset_token,
            password="newpass1",
            password_confirmation="newpass1",
        )
        assert user.password_reset_token is None
        assert verify_password("newpass1", user.password_hash)

    @pytest.mark.asyncio
    async def test_expired_reset(self, db_session):
        user = await make_user(db_session, email="ann@example.com")
        sent_at = utcnow() - timedelta(hours=3)
        await request_password_reset(
            db_session, email="ann@example.com", background_tasks=BackgroundTasks(), now=sent_at
        )
        await db_session.refresh(user)

        with pytest.raises(UserValidationError) as exc_info:
            await reset_password(db_session, token=user.password_reset_token, password="newpass1")
        assert exc_info.value.errors["base"] == ["Password reset has expired"]

    @pytest.mark.asyncio
    async def test_unknown_email_is_silent(self, db_session):
        tasks = BackgroundTasks()
        await request_password_reset(db_session, email="nobody@example.com", background_tasks=tasks)
        assert tasks.tasks == []


class TestLookups:
    @pytest.mark.asyncio
    async def test_authenticate(self, db_session):
        await make_user(db_session, email="ann@example.com")

        assert await authenticate(db_session, email="ANN@example.com", password=PASSWORD)
        assert await authenticate(db_session, email="ann@example.com", password="wrong") is None

    @pytest.mark.asyncio
    async def test_sys_admin(self, db_session, admin):
        assert (await get_sys_admin(db_session)).id == admin.id

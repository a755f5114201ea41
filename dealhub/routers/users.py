from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.deps import get_current_user
from dealhub.models.user import User
from dealhub.schemas.users import PasswordResetIn, PasswordResetRequest, UserCreate, UserOut
from dealhub.services.users import register_user, request_password_reset, reset_password, verify_email_token

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserOut, status_code=201)
async def register(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    return await register_user(
        db,
        name=body.name,
        email=body.email,
        password=body.password,
        password_confirmation=body.password_confirmation,
        background_tasks=background_tasks,
    )


@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.get("/verify/{token}", response_model=UserOut)
async def verify(token: str, db: AsyncSession = Depends(get_db)):
    return await verify_email_token(db, token)


@router.post("/password-reset", status_code=202)
async def password_reset_request(
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    await request_password_reset(db, email=body.email, background_tasks=background_tasks)
    # same answer whether or not the address is known
    return {"detail": "If the address is registered, a reset link is on its way"}


@router.post("/password-reset/{token}", response_model=UserOut)
async def password_reset(
    token: str,
    body: PasswordResetIn,
    db: AsyncSession = Depends(get_db),
):
    return await reset_password(
        db,
        token=token,
        password=body.password,
        password_confirmation=body.password_confirmation,
    )

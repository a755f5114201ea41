from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.security import TokenError, create_access_token, create_refresh_token, decode_token
from dealhub.models.user import User
from dealhub.schemas.auth import RefreshRequest, TokenPair
from dealhub.services.users import authenticate

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_pair(user: User) -> dict:
    return {
        "access_token": create_access_token(user_id=user.id, role=user.role_name),
        "refresh_token": create_refresh_token(user_id=user.id),
        "token_type": "bearer",
    }


@router.post("/login", response_model=TokenPair)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    # the OAuth2 form calls it username; it is the email address
    user = await authenticate(db, email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _token_pair(user)


@router.post("/refresh", response_model=TokenPair)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    try:
        payload = decode_token(body.refresh_token)
    except TokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Not a refresh token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid user id in token")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return _token_pair(user)

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.deps import get_current_user, require_admin
from dealhub.models.user import User
from dealhub.schemas.coupons import CouponOut, CouponRedeemRequest
from dealhub.services.coupons import list_coupons_for_user, redeem_coupon

router = APIRouter(tags=["Coupons"])


@router.get("/coupons", response_model=list[CouponOut])
async def my_coupons(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await list_coupons_for_user(db, user_id=current_user.id)


@router.post("/admin/coupons/redeem", response_model=CouponOut)
async def redeem(
    body: CouponRedeemRequest,
    db: AsyncSession = Depends(get_db),
    admin_user: User = Depends(require_admin),
):
    return await redeem_coupon(db, code=body.code, user=admin_user)

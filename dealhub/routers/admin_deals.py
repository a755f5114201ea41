# dealhub/routers/admin_deals.py
from __future__ import annotations

import json
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.deps import require_admin
from dealhub.schemas.deals import (
    DealCreate,
    DealDeleteOut,
    DealOut,
    DealStatsOut,
    DealUpdate,
    SettlementOut,
)
from dealhub.services.deals import (
    PendingImage,
    create_deal,
    deal_stats,
    destroy_deal,
    get_deal,
    list_deals,
    publish_deal,
    unpublish_deal,
    update_deal,
)
from dealhub.services.settlement import settle_deal, settle_expired_deals

router = APIRouter(prefix="/admin/deals", tags=["Admin - Deals"])


def _parse_payload(payload: str, schema: type[BaseModel]):
    try:
        return schema.model_validate_json(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=json.loads(e.json()))


async def _read_images(images: List[UploadFile]) -> list[PendingImage]:
    out: list[PendingImage] = []
    for f in images:
        data = await f.read()
        out.append(
            PendingImage(
                filename=f.filename or "image",
                content_type=f.content_type or "application/octet-stream",
                data=data,
            )
        )
    return out


@router.get("", response_model=list[DealOut])
async def list_all_deals(
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_deals(db)


@router.post("", response_model=DealOut, status_code=201)
async def create(
    payload: str = Form(...),
    images: List[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    body = _parse_payload(payload, DealCreate)
    return await create_deal(
        db,
        data=body.model_dump(exclude={"location_ids"}),
        images=await _read_images(images),
        location_ids=body.location_ids,
    )


# registered before /{deal_id} routes so the literal path wins
@router.post("/settle-expired", response_model=list[SettlementOut])
async def settle_expired(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await settle_expired_deals(db, background_tasks=background_tasks)


@router.get("/{deal_id}", response_model=DealOut)
async def get_one(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await get_deal(db, deal_id)


@router.patch("/{deal_id}", response_model=DealOut)
async def update(
    deal_id: int,
    background_tasks: BackgroundTasks,
    payload: str = Form("{}"),
    images: List[UploadFile] = File(default=[]),
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    deal = await get_deal(db, deal_id)
    body = _parse_payload(payload, DealUpdate)
    changes = body.model_dump(exclude_unset=True, exclude={"location_ids", "remove_image_ids"})

    return await update_deal(
        db,
        deal,
        changes=changes,
        background_tasks=background_tasks,
        images=await _read_images(images),
        remove_image_ids=body.remove_image_ids,
        location_ids=body.location_ids,
    )


@router.delete("/{deal_id}", response_model=DealDeleteOut)
async def delete(
    deal_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    deal = await get_deal(db, deal_id)
    if await destroy_deal(db, deal, background_tasks=background_tasks):
        return {"deleted": True, "detail": "Deal deleted"}
    return {"deleted": False, "detail": "Deal has line items and cannot be deleted"}


@router.post("/{deal_id}/publish", response_model=Optional[datetime])
async def publish(
    deal_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    deal = await get_deal(db, deal_id)
    return await publish_deal(db, deal, background_tasks=background_tasks)


@router.post("/{deal_id}/unpublish", response_model=Optional[datetime])
async def unpublish(
    deal_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    deal = await get_deal(db, deal_id)
    return await unpublish_deal(db, deal, background_tasks=background_tasks)


@router.get("/{deal_id}/stats", response_model=DealStatsOut)
async def stats(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    deal = await get_deal(db, deal_id)
    return await deal_stats(db, deal)


@router.post("/{deal_id}/settle", response_model=SettlementOut)
async def settle(
    deal_id: int,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    deal = await get_deal(db, deal_id)
    return await settle_deal(db, deal, background_tasks=background_tasks)

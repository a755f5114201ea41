# dealhub/routers/admin_catalog.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import get_db
from dealhub.core.deps import require_admin
from dealhub.schemas.catalog import (
    CategoryCreate,
    CategoryOut,
    CollectionCreate,
    CollectionDealIn,
    CollectionOut,
    LocationCreate,
    LocationOut,
)
from dealhub.schemas.deals import DealOut
from dealhub.services.catalog import (
    add_deal_to_collection,
    create_category,
    create_collection,
    create_location,
    get_collection,
    list_categories,
    list_collections,
    list_locations,
    publish_collection,
)
from dealhub.services.deals import get_deal, list_available_for_collection

router = APIRouter(prefix="/admin", tags=["Admin - Catalog"])


# -------------------------
# Categories
# -------------------------
@router.post("/categories", response_model=CategoryOut, status_code=201)
async def new_category(
    body: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await create_category(db, name=body.name)


@router.get("/categories", response_model=list[CategoryOut])
async def categories(
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_categories(db)


# -------------------------
# Locations
# -------------------------
@router.post("/locations", response_model=LocationOut, status_code=201)
async def new_location(
    body: LocationCreate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await create_location(db, name=body.name, city=body.city)


@router.get("/locations", response_model=list[LocationOut])
async def locations(
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_locations(db)


# -------------------------
# Collections
# -------------------------
@router.post("/collections", response_model=CollectionOut, status_code=201)
async def new_collection(
    body: CollectionCreate,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await create_collection(db, title=body.title)


@router.get("/collections", response_model=list[CollectionOut])
async def collections(
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    return await list_collections(db)


@router.get("/collections/{collection_id}/available-deals", response_model=list[DealOut])
async def available_deals(
    collection_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    collection = await get_collection(db, collection_id)
    return await list_available_for_collection(db, collection.id)


@router.post("/collections/{collection_id}/deals", response_model=DealOut)
async def add_deal(
    collection_id: int,
    body: CollectionDealIn,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    collection = await get_collection(db, collection_id)
    deal = await get_deal(db, body.deal_id)
    return await add_deal_to_collection(db, collection=collection, deal=deal)


@router.post("/collections/{collection_id}/publish", response_model=CollectionOut)
async def publish(
    collection_id: int,
    db: AsyncSession = Depends(get_db),
    admin_user=Depends(require_admin),
):
    collection = await get_collection(db, collection_id)
    return await publish_collection(db, collection=collection)

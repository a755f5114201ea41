# dealhub/services/catalog.py
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import utcnow
from dealhub.domain.errors import DealValidationError, DomainValidationError, Errors
from dealhub.models.category import Category
from dealhub.models.collection import Collection
from dealhub.models.deal import Deal
from dealhub.models.location import Location
from dealhub.services.deals import list_available_for_collection, stage_update

logger = logging.getLogger(__name__)


# -------------------------
# Categories
# -------------------------
async def create_category(db: AsyncSession, *, name: str | None) -> Category:
    name = (name or "").strip() or None
    if name:
        res = await db.execute(
            select(Category.id).where(func.lower(Category.name) == name.lower()).limit(1)
        )
        if res.scalar_one_or_none() is not None:
            errors = Errors()
            errors.add("name", "has already been taken")
            raise DomainValidationError(errors)

    cat = Category(name=name)
    db.add(cat)
    await db.commit()
    await db.refresh(cat)
    return cat


async def list_categories(db: AsyncSession) -> list[Category]:
    res = await db.execute(select(Category).order_by(Category.name.asc()))
    return list(res.scalars().all())


# -------------------------
# Locations
# -------------------------
async def create_location(db: AsyncSession, *, name: str, city: str) -> Location:
    loc = Location(name=name.strip(), city=city.strip())
    db.add(loc)
    await db.commit()
    await db.refresh(loc)
    return loc


async def list_locations(db: AsyncSession) -> list[Location]:
    res = await db.execute(select(Location).order_by(Location.city.asc(), Location.name.asc()))
    return list(res.scalars().all())


# -------------------------
# Collections
# -------------------------
async def get_collection(db: AsyncSession, collection_id: int) -> Collection:
    collection = await db.get(Collection, collection_id)
    if not collection:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


async def create_collection(db: AsyncSession, *, title: str) -> Collection:
    collection = Collection(title=title.strip())
    db.add(collection)
    await db.commit()
    await db.refresh(collection)
    return collection


async def list_collections(db: AsyncSession) -> list[Collection]:
    res = await db.execute(select(Collection).order_by(Collection.created_at.desc()))
    return list(res.scalars().all())


async def _collection_deals(db: AsyncSession, collection_id: int) -> list[Deal]:
    res = await db.execute(
        select(Deal).where(Deal.collection_id == collection_id).order_by(Deal.id.asc())
    )
    return list(res.scalars().all())


async def add_deal_to_collection(
    db: AsyncSession,
    *,
    collection: Collection,
    deal: Deal,
    now: datetime | None = None,
) -> Deal:
    available = {d.id for d in await list_available_for_collection(db, collection.id)}
    if deal.id not in available:
        raise HTTPException(status_code=400, detail="Deal is not available for this collection")

    await stage_update(db, deal, changes={"collection_id": collection.id}, now=now)
    await db.commit()
    await db.refresh(deal)
    return deal


async def publish_collection(
    db: AsyncSession,
    *,
    collection: Collection,
    now: datetime | None = None,
) -> Collection:
    """Publish every deal of the collection together, or none of them."""
    now = now or utcnow()
    deals = await _collection_deals(db, collection.id)
    if not deals:
        raise HTTPException(status_code=400, detail="Collection has no deals")

    errors = Errors()
    staged = 0
    for deal in deals:
        try:
            await stage_update(
                db,
                deal,
                changes={"published_at": now},
                published_from_collection=True,
                now=now,
            )
            staged += 1
        except DealValidationError as e:
            for message in e.errors.full_messages():
                errors.add_base(f"{deal.title}: {message}")

    if errors:
        if staged:
            await db.rollback()
        raise DealValidationError(errors)

    try:
        collection.published_at = now
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(collection)
    logger.info("Collection %s published with %s deals", collection.id, len(deals))
    return collection

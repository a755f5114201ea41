# dealhub/services/deals.py
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import datetime, timedelta

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealhub.core.db import utcnow
from dealhub.domain import deal_rules
from dealhub.domain.deal_rules import DealContext, DealState
from dealhub.domain.errors import DealValidationError, Errors
from dealhub.domain.status import OrderState
from dealhub.integrations.storage import get_storage
from dealhub.models.category import Category
from dealhub.models.deal import Deal
from dealhub.models.deal_image import DealImage
from dealhub.models.line_item import LineItem
from dealhub.models.location import Location
from dealhub.models.order import Order
from dealhub.tasks.storage_tasks import purge_blobs

logger = logging.getLogger(__name__)

STATE_FIELDS = {f.name for f in fields(DealState)} - {"created_at"}
TEXT_FIELDS = {"description", "instructions"}
# placed and paid; a delivered order stays sold once settlement moves it on
SOLD_ORDER_STATES = (OrderState.COMPLETED.value, OrderState.DELIVERED.value)


@dataclass
class PendingImage:
    filename: str
    content_type: str
    data: bytes

    @property
    def byte_size(self) -> int:
        return len(self.data)


# -------------------------
# Lookups
# -------------------------
async def get_deal(db: AsyncSession, deal_id: int) -> Deal:
    deal = await db.get(Deal, deal_id)
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal


async def list_deals(db: AsyncSession) -> list[Deal]:
    res = await db.execute(select(Deal).order_by(Deal.created_at.desc(), Deal.id.desc()))
    return list(res.scalars().all())


async def _title_taken(db: AsyncSession, title: str | None, exclude_id: int | None) -> bool:
    if not title:
        return False
    stmt = select(Deal.id).where(func.lower(Deal.title) == title.strip().lower())
    if exclude_id is not None:
        stmt = stmt.where(Deal.id != exclude_id)
    res = await db.execute(stmt.limit(1))
    return res.scalar_one_or_none() is not None


async def _category_exists(db: AsyncSession, category_id: int | None) -> bool:
    if category_id is None:
        return False
    return await db.get(Category, category_id) is not None


async def _load_locations(db: AsyncSession, location_ids: list[int], errors: Errors) -> list[Location]:
    wanted = list(dict.fromkeys(location_ids))
    if not wanted:
        return []
    res = await db.execute(select(Location).where(Location.id.in_(wanted)))
    found = list(res.scalars().all())
    if len(found) != len(wanted):
        errors.add("location_ids", "contains unknown locations")
    return found


def _raise_if(errors: Errors, deal_title: str | None) -> None:
    if errors:
        logger.info("Deal %r rejected: %s", deal_title, errors.full_messages())
        raise DealValidationError(errors)


def _store_images(pending: list[PendingImage], written: list[str]) -> list[DealImage]:
    storage = get_storage()
    out: list[DealImage] = []
    for p in pending:
        key = storage.put(p.data)
        written.append(key)
        out.append(
            DealImage(
                filename=p.filename,
                content_type=p.content_type,
                byte_size=p.byte_size,
                storage_key=key,
            )
        )
    return out


def _discard_blobs(keys: list[str]) -> None:
    storage = get_storage()
    for key in keys:
        storage.delete(key)


# -------------------------
# Create
# -------------------------
async def create_deal(
    db: AsyncSession,
    *,
    data: dict,
    images: list[PendingImage] | None = None,
    location_ids: list[int] | None = None,
    now: datetime | None = None,
) -> Deal:
    """
    Validate and insert a deal with its images and locations in one transaction.

    After the insert the stored creation time is compared with start_at; if
    the clock moved past start_at in between, the insert is rolled back.
    """
    now = now or utcnow()
    images = images or []

    new = DealState(**{k: v for k, v in data.items() if k in STATE_FIELDS})

    errors = Errors()
    locations = await _load_locations(db, location_ids or [], errors)
    ctx = DealContext(
        title_taken=await _title_taken(db, new.title, None),
        category_exists=await _category_exists(db, new.category_id),
        location_count=len(locations),
        image_sizes=[p.byte_size for p in images],
    )
    errors.merge(deal_rules.validate_transition(None, new, now, ctx))
    _raise_if(errors, new.title)

    written: list[str] = []
    try:
        deal = Deal(**{k: v for k, v in data.items() if k in STATE_FIELDS | TEXT_FIELDS})
        deal.locations = locations
        deal.images = _store_images(images, written)
        db.add(deal)
        await db.flush()

        late = deal_rules.check_start_after_creation(deal.start_at, deal.created_at)
        if late:
            raise DealValidationError(late)

        await db.commit()
    except Exception:
        await db.rollback()
        _discard_blobs(written)
        raise

    await db.refresh(deal)
    logger.info("Deal %s created: %r", deal.id, deal.title)
    return deal


# -------------------------
# Update
# -------------------------
async def stage_update(
    db: AsyncSession,
    deal: Deal,
    *,
    changes: dict,
    images: list[PendingImage] | None = None,
    remove_image_ids: list[int] | None = None,
    location_ids: list[int] | None = None,
    published_from_collection: bool = False,
    now: datetime | None = None,
    written: list[str] | None = None,
) -> list[str]:
    """
    Validate an update and apply it to ``deal`` without committing.

    Nothing on ``deal`` is touched when validation fails. Returns the
    storage keys of removed images, to be purged once the caller commits.
    """
    now = now or utcnow()
    images = images or []
    remove_ids = set(remove_image_ids or [])
    written = written if written is not None else []

    old = deal.to_state()
    new = old.with_changes(**{k: v for k, v in changes.items() if k in STATE_FIELDS})

    errors = Errors()
    if location_ids is not None:
        locations = await _load_locations(db, location_ids, errors)
    else:
        locations = list(deal.locations)

    kept_images = [img for img in deal.images if img.id not in remove_ids]
    ctx = DealContext(
        title_taken=await _title_taken(db, new.title, deal.id),
        category_exists=await _category_exists(db, new.category_id),
        location_count=len(locations),
        image_sizes=[img.byte_size for img in kept_images] + [p.byte_size for p in images],
        published_from_collection=published_from_collection,
    )
    errors.merge(deal_rules.validate_transition(old, new, now, ctx))
    _raise_if(errors, new.title)

    for key, value in changes.items():
        if key in STATE_FIELDS or key in TEXT_FIELDS:
            setattr(deal, key, value)

    if location_ids is not None:
        deal.locations = locations

    # images marked for removal: row goes now, blob is purged after commit
    removed_keys = [img.storage_key for img in deal.images if img.id in remove_ids]
    deal.images = kept_images + _store_images(images, written)

    return removed_keys


async def update_deal(
    db: AsyncSession,
    deal: Deal,
    *,
    changes: dict,
    background_tasks: BackgroundTasks,
    images: list[PendingImage] | None = None,
    remove_image_ids: list[int] | None = None,
    location_ids: list[int] | None = None,
    published_from_collection: bool = False,
    now: datetime | None = None,
) -> Deal:
    written: list[str] = []
    try:
        removed_keys = await stage_update(
            db,
            deal,
            changes=changes,
            images=images,
            remove_image_ids=remove_image_ids,
            location_ids=location_ids,
            published_from_collection=published_from_collection,
            now=now,
            written=written,
        )
        await db.commit()
    except DealValidationError:
        # rejected before anything was applied
        raise
    except Exception:
        await db.rollback()
        _discard_blobs(written)
        raise

    if removed_keys:
        background_tasks.add_task(purge_blobs, removed_keys)

    await db.refresh(deal)
    logger.info("Deal %s updated", deal.id)
    return deal


async def publish_deal(
    db: AsyncSession,
    deal: Deal,
    *,
    background_tasks: BackgroundTasks,
    now: datetime | None = None,
) -> datetime | None:
    now = now or utcnow()
    deal = await update_deal(
        db, deal, changes={"published_at": now}, background_tasks=background_tasks, now=now
    )
    logger.info("Deal %s published at %s", deal.id, deal.published_at)
    return deal.published_at


async def unpublish_deal(
    db: AsyncSession,
    deal: Deal,
    *,
    background_tasks: BackgroundTasks,
    now: datetime | None = None,
) -> datetime | None:
    deal = await update_deal(
        db, deal, changes={"published_at": None}, background_tasks=background_tasks, now=now
    )
    logger.info("Deal %s unpublished", deal.id)
    return deal.published_at


# -------------------------
# Destroy
# -------------------------
async def destroy_deal(db: AsyncSession, deal: Deal, *, background_tasks: BackgroundTasks) -> bool:
    res = await db.execute(select(LineItem.id).where(LineItem.deal_id == deal.id).limit(1))
    if res.scalar_one_or_none() is not None:
        logger.info("Deal %s kept: it has line items", deal.id)
        return False

    keys = [img.storage_key for img in deal.images]
    try:
        await db.delete(deal)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    if keys:
        background_tasks.add_task(purge_blobs, keys)
    logger.info("Deal %s deleted", deal.id)
    return True


# -------------------------
# Sales figures
# -------------------------
async def quantity_sold(db: AsyncSession, deal_id: int) -> int:
    res = await db.execute(
        select(func.coalesce(func.sum(LineItem.quantity), 0))
        .select_from(LineItem)
        .join(Order, Order.id == LineItem.order_id)
        .where(
            LineItem.deal_id == deal_id,
            Order.state.in_(SOLD_ORDER_STATES),
        )
    )
    return int(res.scalar_one())


async def deal_stats(db: AsyncSession, deal: Deal) -> dict:
    sold = await quantity_sold(db, deal.id)

    try:
        left = deal_rules.quantity_left(deal.maximum_purchases_allowed, sold)
    except TypeError:
        left = None
    try:
        percentage = deal_rules.percentage_sold(sold, deal.maximum_purchases_allowed)
    except ZeroDivisionError:
        percentage = None

    return {
        "deal_id": deal.id,
        "quantity_sold": sold,
        "quantity_left": left,
        "percentage_sold": percentage,
        "minimum_criteria_met": deal_rules.minimum_criteria_met(
            sold, deal.minimum_purchases_required
        ),
    }


# -------------------------
# Scopes
# -------------------------
def published_clause():
    return Deal.published_at.is_not(None)


def live_clause(now: datetime):
    return Deal.expire_at > now


async def list_public_deals(
    db: AsyncSession,
    *,
    now: datetime | None = None,
    search: str | None = None,
    category_id: int | None = None,
) -> list[Deal]:
    now = now or utcnow()
    stmt = select(Deal).where(published_clause(), live_clause(now))

    if category_id is not None:
        stmt = stmt.where(Deal.category_id == category_id)

    if search:
        pattern = f"{search.strip().lower()}%"
        stmt = (
            stmt.outerjoin(Deal.locations)
            .where(
                or_(
                    func.lower(Deal.title).like(pattern),
                    func.lower(Location.city).like(pattern),
                )
            )
            .distinct()
        )

    res = await db.execute(stmt.order_by(Deal.expire_at.asc(), Deal.id.asc()))
    return list(res.scalars().all())


async def list_expired_today(db: AsyncSession, *, now: datetime | None = None) -> list[Deal]:
    now = now or utcnow()
    res = await db.execute(
        select(Deal)
        .where(Deal.expire_at >= now - timedelta(days=1), Deal.expire_at <= now)
        .order_by(Deal.id.asc())
    )
    return list(res.scalars().all())


async def list_available_for_collection(db: AsyncSession, collection_id: int) -> list[Deal]:
    res = await db.execute(
        select(Deal)
        .where(
            or_(
                and_(Deal.collection_id.is_(None), Deal.published_at.is_(None)),
                Deal.collection_id == collection_id,
            )
        )
        .order_by(Deal.id.asc())
    )
    return list(res.scalars().all())

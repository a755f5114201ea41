"""
Tests for deal service
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import BackgroundTasks
from sqlalchemy import select

from dealhub.core.db import utcnow
from dealhub.domain.errors import DealValidationError
from dealhub.integrations.storage import get_storage
from dealhub.models.category import Category
from dealhub.models.deal import Deal
from dealhub.models.location import Location
from dealhub.services.deals import (
    PendingImage,
    create_deal,
    deal_stats,
    destroy_deal,
    list_available_for_collection,
    list_expired_today,
    list_public_deals,
    publish_deal,
    unpublish_deal,
    update_deal,
)
from dealhub.tasks.storage_tasks import purge_blobs
from tests.helpers import make_deal


async def _category_and_location(db):
    category = Category(name="Food")
    location = Location(name="Old Town", city="Lisbon")
    db.add_all([category, location])
    await db.commit()
    return category, location


def _data(category_id, **overrides):
    now = utcnow()
    data = dict(
        title="Sushi night",
        description="All you can eat",
        start_at=now + timedelta(days=1),
        expire_at=now + timedelta(days=7),
        price=Decimal("999.90"),
        minimum_purchases_required=5,
        maximum_purchases_allowed=50,
        maximum_purchases_per_customer=2,
        category_id=category_id,
    )
    data.update(overrides)
    return data


def _png(size=1024):
    return PendingImage(filename="sushi.png", content_type="image/png", data=b"x" * size)


class TestCreateDeal:
    @pytest.mark.asyncio
    async def test_create_with_image_and_location(self, db_session):
        category, location = await _category_and_location(db_session)

        deal = await create_deal(
            db_session,
            data=_data(category.id),
            images=[_png()],
            location_ids=[location.id],
        )

        assert deal.id is not None
        assert deal.price == Decimal("999.90")
        assert [loc.city for loc in deal.locations] == ["Lisbon"]
        assert len(deal.images) == 1
        assert get_storage().exists(deal.images[0].storage_key)

    @pytest.mark.asyncio
    async def test_invalid_price_persists_nothing(self, db_session):
        category, _ = await _category_and_location(db_session)

        with pytest.raises(DealValidationError) as exc_info:
            await create_deal(db_session, data=_data(category.id, price=Decimal("-20")))

        assert exc_info.value.errors["price"] == ["must be greater than or equal to 0.01"]
        res = await db_session.execute(select(Deal))
        assert res.scalars().all() == []

    @pytest.mark.asyncio
    async def test_title_is_unique_ignoring_case(self, db_session):
        category, _ = await _category_and_location(db_session)
        await create_deal(db_session, data=_data(category.id))

        with pytest.raises(DealValidationError) as exc_info:
            await create_deal(db_session, data=_data(category.id, title="SUSHI NIGHT"))
        assert exc_info.value.errors["title"] == ["has already been taken"]

    @pytest.mark.asyncio
    async def test_oversized_image_rejected(self, db_session):
        category, _ = await _category_and_location(db_session)

        with pytest.raises(DealValidationError) as exc_info:
            await create_deal(db_session, data=_data(category.id), images=[_png(100001)])
        assert exc_info.value.errors["images"] == ["only 100 kb image allowed"]

    @pytest.mark.asyncio
    async def test_unknown_location(self, db_session):
        category, _ = await _category_and_location(db_session)

        with pytest.raises(DealValidationError) as exc_info:
            await create_deal(db_session, data=_data(category.id), location_ids=[999])
        assert exc_info.value.errors["location_ids"] == ["contains unknown locations"]

    @pytest.mark.asyncio
    async def test_start_passed_before_insert_is_rolled_back(self, db_session):
        category, _ = await _category_and_location(db_session)
        real_now = utcnow()
        # validated against a clock an hour behind, stored with the real one
        data = _data(category.id, start_at=real_now - timedelta(minutes=30))

        with pytest.raises(DealValidationError) as exc_info:
            await create_deal(
                db_session,
                data=data,
                images=[_png()],
                now=real_now - timedelta(hours=1),
            )

        assert exc_info.value.errors["start_at"] == ["cannot be less than the current time"]
        res = await db_session.execute(select(Deal))
        assert res.scalars().all() == []


class TestUpdateDeal:
    @pytest.mark.asyncio
    async def test_update_draft(self, db_session):
        deal = await make_deal(db_session)

        updated = await update_deal(
            db_session, deal, changes={"title": "Two pizzas"}, background_tasks=BackgroundTasks()
        )
        assert updated.title == "Two pizzas"

    @pytest.mark.asyncio
    async def test_live_deal_is_frozen(self, db_session):
        deal = await make_deal(db_session, published=True)

        with pytest.raises(DealValidationError) as exc_info:
            await update_deal(
                db_session, deal, changes={"title": "Two pizzas"}, background_tasks=BackgroundTasks()
            )

        assert exc_info.value.errors["base"] == ["Live or expired deals cannot be updated"]
        assert deal.title == "Half price pizza"

    @pytest.mark.asyncio
    async def test_removed_image_is_purged_after_commit(self, db_session):
        deal = await make_deal(db_session)
        image = deal.images[0]
        tasks = BackgroundTasks()

        updated = await update_deal(
            db_session,
            deal,
            changes={},
            background_tasks=tasks,
            images=[_png()],
            remove_image_ids=[image.id],
        )

        assert [img.filename for img in updated.images] == ["sushi.png"]
        assert len(tasks.tasks) == 1
        assert tasks.tasks[0].func is purge_blobs
        assert tasks.tasks[0].args == ([image.storage_key],)


class TestPublishing:
    @pytest.mark.asyncio
    async def test_publish_returns_timestamp(self, db_session):
        deal = await make_deal(db_session)
        now = utcnow()

        published_at = await publish_deal(db_session, deal, background_tasks=BackgroundTasks(), now=now)

        assert published_at == now
        assert deal.is_published

    @pytest.mark.asyncio
    async def test_publish_without_location_or_image(self, db_session):
        deal = await make_deal(db_session, with_location=False, with_image=False)

        with pytest.raises(DealValidationError) as exc_info:
            await publish_deal(db_session, deal, background_tasks=BackgroundTasks())

        assert exc_info.value.errors["base"] == [
            "cannot be published as location is not present",
            "cannot be published as image is not present",
        ]
        assert deal.published_at is None

    @pytest.mark.asyncio
    async def test_unpublish_returns_none(self, db_session):
        deal = await make_deal(db_session, published=True)

        assert await unpublish_deal(db_session, deal, background_tasks=BackgroundTasks()) is None


class TestDestroyAndScopes:
    @pytest.mark.asyncio
    async def test_destroy_draft(self, db_session):
        deal = await make_deal(db_session)
        tasks = BackgroundTasks()

        assert await destroy_deal(db_session, deal, background_tasks=tasks) is True
        assert await db_session.get(Deal, deal.id) is None
        assert len(tasks.tasks) == 1

    @pytest.mark.asyncio
    async def test_public_listing_and_search(self, db_session):
        live = await make_deal(db_session, title="Kayak tour", published=True)
        await make_deal(db_session, title="Kayak rental")  # draft

        assert [d.id for d in await list_public_deals(db_session)] == [live.id]
        assert [d.id for d in await list_public_deals(db_session, search="kay")] == [live.id]
        assert [d.id for d in await list_public_deals(db_session, search="spring")] == [live.id]
        assert await list_public_deals(db_session, search="boat") == []

    @pytest.mark.asyncio
    async def test_expired_today(self, db_session):
        deal = await make_deal(
            db_session, published=True, start_in=timedelta(days=-3), expire_in=timedelta(hours=-2)
        )
        await make_deal(
            db_session, title="Old one", start_in=timedelta(days=-9), expire_in=timedelta(days=-3)
        )

        assert [d.id for d in await list_expired_today(db_session)] == [deal.id]

    @pytest.mark.asyncio
    async def test_available_for_collection(self, db_session):
        draft = await make_deal(db_session, title="Draft deal")
        await make_deal(db_session, title="Live deal", published=True)

        available = await list_available_for_collection(db_session, collection_id=1)
        assert [d.id for d in available] == [draft.id]

    @pytest.mark.asyncio
    async def test_stats_without_sales(self, db_session):
        deal = await make_deal(db_session, maximum=None)

        stats = await deal_stats(db_session, deal)
        assert stats["quantity_sold"] == 0
        assert stats["quantity_left"] is None
        assert stats["percentage_sold"] is None
        assert stats["minimum_criteria_met"] is False

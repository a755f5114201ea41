from datetime import timedelta
from decimal import Decimal

from dealhub.core.db import utcnow
from dealhub.core.security import create_access_token, hash_password
from dealhub.domain.user_rules import Role
from dealhub.models.category import Category
from dealhub.models.deal import Deal
from dealhub.models.deal_image import DealImage
from dealhub.models.location import Location
from dealhub.models.user import User

PASSWORD = "secret123"


async def make_user(session, *, email, role=Role.CUSTOMER, name="Test User"):
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(PASSWORD),
        role=int(role),
        verified_at=utcnow(),
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    # release the read lock before the app writes to the file
    await session.commit()
    return user


async def make_deal(
    session,
    *,
    title="Half price pizza",
    published=False,
    start_in=timedelta(days=1),
    expire_in=timedelta(days=10),
    minimum=1,
    maximum=100,
    per_customer=5,
    with_location=True,
    with_image=True,
):
    """Insert a deal directly, bypassing validation."""
    now = utcnow()
    category = Category(name=f"{title} category")
    session.add(category)
    await session.flush()

    deal = Deal(
        title=title,
        start_at=now + start_in,
        expire_at=now + expire_in,
        price=Decimal("10.00"),
        minimum_purchases_required=minimum,
        maximum_purchases_allowed=maximum,
        maximum_purchases_per_customer=per_customer,
        category_id=category.id,
        published_at=now if published else None,
        created_at=now - timedelta(hours=1),
    )
    if with_location:
        deal.locations = [Location(name="Downtown", city="Springfield")]
    if with_image:
        deal.images = [
            DealImage(
                filename="pizza.png",
                content_type="image/png",
                byte_size=2048,
                storage_key=f"seed-{title.replace(' ', '-').lower()}",
            )
        ]
    session.add(deal)
    await session.commit()
    await session.refresh(deal)
    await session.commit()
    return deal


def auth_headers(user) -> dict:
    token = create_access_token(user_id=user.id, role=user.role_name)
    return {"Authorization": f"Bearer {token}"}

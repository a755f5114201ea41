"""
Deal validation rules.

Every save of a deal goes through ``validate_transition`` once, with the
persisted snapshot (``None`` on create), the proposed snapshot, the clock
value and the facts that need a database lookup. The function has no side
effects; callers decide what to do with the returned ``Errors``.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from dealhub.domain.errors import Errors
from dealhub.domain.status import DealStatus, deal_status

MIN_ALLOWED_PRICE = Decimal("0.01")
MAX_ALLOWED_PRICE = Decimal("9999.99")

MAXIMUM_ALLOWED_IMAGE_SIZE = 100000  # bytes
MINIMUM_IMAGE_COUNT = 1
MINIMUM_LOCATION_COUNT = 1

BLANK = "can't be blank"
TAKEN = "has already been taken"
MUST_EXIST = "must exist"
IMAGE_TOO_LARGE = "only 100 kb image allowed"
START_BEFORE_NOW = "cannot be less than the current time"
START_BEFORE_CREATED = "cannot be less than the Created at"
EXPIRE_BEFORE_START = "cannot be less than the Start at"

LOCATION_NOT_PRESENT = "cannot be published as location is not present"
IMAGE_NOT_PRESENT = "cannot be published as image is not present"
COLLECTION_PRESENT = "cannot be published on its own as it belongs to a collection"
LIVE_OR_EXPIRED = "Live or expired deals cannot be updated"


@dataclass(frozen=True)
class DealState:
    title: str | None = None
    start_at: datetime | None = None
    expire_at: datetime | None = None
    price: Decimal | None = None
    minimum_purchases_required: int | None = None
    maximum_purchases_allowed: int | None = None
    maximum_purchases_per_customer: int | None = None
    published_at: datetime | None = None
    category_id: int | None = None
    collection_id: int | None = None
    created_at: datetime | None = None

    def with_changes(self, **changes) -> "DealState":
        return replace(self, **changes)


@dataclass
class DealContext:
    title_taken: bool = False
    category_exists: bool = True
    location_count: int = 0
    # sizes of every image the deal would hold after the save
    image_sizes: list[int] = field(default_factory=list)
    published_from_collection: bool = False


def _fmt(value) -> str:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


def image_within_limit(byte_size: int) -> bool:
    return byte_size <= MAXIMUM_ALLOWED_IMAGE_SIZE


def check_presence(new: DealState, errors: Errors) -> None:
    if new.title is None or not str(new.title).strip():
        errors.add("title", BLANK)
    for name in ("start_at", "expire_at", "price"):
        if getattr(new, name) is None:
            errors.add(name, BLANK)


def check_price(price: Decimal | None, errors: Errors) -> None:
    if price is None:
        return
    price = Decimal(str(price))
    if price < MIN_ALLOWED_PRICE:
        errors.add("price", f"must be greater than or equal to {_fmt(MIN_ALLOWED_PRICE)}")
    if price > MAX_ALLOWED_PRICE:
        errors.add("price", f"must be less than or equal to {_fmt(MAX_ALLOWED_PRICE)}")


def check_purchase_counts(new: DealState, errors: Errors) -> None:
    minimum = new.minimum_purchases_required
    maximum = new.maximum_purchases_allowed
    per_customer = new.maximum_purchases_per_customer

    if minimum is not None and minimum < 0:
        errors.add("minimum_purchases_required", "must be greater than or equal to 0")

    if maximum is not None and minimum is not None and not maximum > minimum:
        errors.add("maximum_purchases_allowed", f"must be greater than {minimum}")

    if per_customer is not None:
        if per_customer < 0:
            errors.add("maximum_purchases_per_customer", "must be greater than or equal to 0")
        if maximum is not None and per_customer > maximum:
            errors.add(
                "maximum_purchases_per_customer",
                f"must be less than or equal to {maximum}",
            )


def check_dates(old: DealState | None, new: DealState, now: datetime, errors: Errors) -> None:
    if new.start_at is not None:
        if old is None:
            if not new.start_at > now:
                errors.add("start_at", START_BEFORE_NOW)
        elif old.created_at is not None and not new.start_at > old.created_at:
            errors.add("start_at", START_BEFORE_CREATED)

    if new.expire_at is not None and new.start_at is not None:
        if not new.expire_at > new.start_at:
            errors.add("expire_at", EXPIRE_BEFORE_START)


def check_images(image_sizes: list[int], errors: Errors) -> None:
    for size in image_sizes:
        if not image_within_limit(size):
            errors.add("images", IMAGE_TOO_LARGE)


def check_publishability(new: DealState, ctx: DealContext, errors: Errors) -> None:
    if ctx.location_count < MINIMUM_LOCATION_COUNT:
        errors.add_base(LOCATION_NOT_PRESENT)

    usable_images = [s for s in ctx.image_sizes if image_within_limit(s)]
    if len(usable_images) < MINIMUM_IMAGE_COUNT:
        errors.add_base(IMAGE_NOT_PRESENT)

    if new.collection_id is not None and not ctx.published_from_collection:
        errors.add_base(COLLECTION_PRESENT)


def check_live_or_expired(new: DealState, now: datetime, errors: Errors) -> None:
    status = deal_status(published_at=new.published_at, expire_at=new.expire_at, now=now)
    if status is not DealStatus.DRAFT:
        errors.add_base(LIVE_OR_EXPIRED)


def validate_transition(
    old: DealState | None,
    new: DealState,
    now: datetime,
    ctx: DealContext | None = None,
) -> Errors:
    ctx = ctx or DealContext()
    errors = Errors()

    check_presence(new, errors)
    if ctx.title_taken and new.title:
        errors.add("title", TAKEN)
    if new.category_id is None or not ctx.category_exists:
        errors.add("category", MUST_EXIST)

    check_price(new.price, errors)
    check_purchase_counts(new, errors)
    check_dates(old, new, now, errors)
    check_images(ctx.image_sizes, errors)

    published_changed = old is not None and old.published_at != new.published_at
    if published_changed:
        if new.published_at is not None:
            check_publishability(new, ctx, errors)
    else:
        check_live_or_expired(new, now, errors)

    return errors


def check_start_after_creation(start_at: datetime, created_at: datetime) -> Errors:
    """Guard run after the insert: the stored creation time must not pass start_at."""
    errors = Errors()
    if start_at < created_at:
        errors.add("start_at", START_BEFORE_NOW)
    return errors


# -------------------------
# Sales figures
# -------------------------
def quantity_left(maximum_purchases_allowed: int | None, quantity_sold: int) -> int:
    # negative when oversold; TypeError when the maximum is unset
    return maximum_purchases_allowed - quantity_sold


def percentage_sold(quantity_sold: int, maximum_purchases_allowed: int | None) -> int:
    # ZeroDivisionError when the maximum is 0 or unset
    return int(quantity_sold / float(maximum_purchases_allowed or 0) * 100)


def minimum_criteria_met(quantity_sold: int, minimum_purchases_required: int | None) -> bool:
    return quantity_sold >= (minimum_purchases_required or 0)

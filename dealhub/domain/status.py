from __future__ import annotations

from datetime import datetime
from enum import Enum

from dealhub.domain.errors import InvalidTransitionError


class DealStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    EXPIRED = "expired"


def deal_status(
    *,
    published_at: datetime | None,
    expire_at: datetime | None,
    now: datetime,
) -> DealStatus:
    # expiry wins over publication
    if expire_at is not None and expire_at < now:
        return DealStatus.EXPIRED
    if published_at is not None:
        return DealStatus.PUBLISHED
    return DealStatus.DRAFT


class OrderState(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderEvent(str, Enum):
    CHECKOUT = "checkout"
    DELIVER = "deliver"
    CANCEL = "cancel"


ORDER_TRANSITIONS: dict[tuple[OrderState, OrderEvent], OrderState] = {
    (OrderState.IN_PROGRESS, OrderEvent.CHECKOUT): OrderState.COMPLETED,
    (OrderState.COMPLETED, OrderEvent.DELIVER): OrderState.DELIVERED,
    (OrderState.COMPLETED, OrderEvent.CANCEL): OrderState.CANCELLED,
}


def next_order_state(current: OrderState | str, event: OrderEvent) -> OrderState:
    current = OrderState(current)
    try:
        return ORDER_TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(
            f"Order cannot {event.value} from state '{current.value}'"
        ) from None

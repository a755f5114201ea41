# dealhub/models/__init__.py
# Import all models here so SQLAlchemy registers them into Base.metadata.

from dealhub.models.user import User  # noqa: F401
from dealhub.models.category import Category  # noqa: F401
from dealhub.models.location import Location, deals_locations  # noqa: F401
from dealhub.models.collection import Collection  # noqa: F401

from dealhub.models.deal import Deal  # noqa: F401
from dealhub.models.deal_image import DealImage  # noqa: F401

from dealhub.models.order import Order  # noqa: F401
from dealhub.models.line_item import LineItem  # noqa: F401
from dealhub.models.coupon import Coupon  # noqa: F401

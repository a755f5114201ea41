from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

# registers every table + FK with the metadata
import dealhub.models  # noqa: F401

from dealhub.core.config import settings
from dealhub.core.handlers import register_exception_handlers
from dealhub.core.logging import configure_logging

# Routers
from dealhub.routers.auth import router as auth_router
from dealhub.routers.users import router as users_router

from dealhub.routers.admin_deals import router as admin_deals_router
from dealhub.routers.admin_catalog import router as admin_catalog_router
from dealhub.routers.admin_orders import router as admin_orders_router

from dealhub.routers.deals import router as deals_router
from dealhub.routers.line_items import router as line_items_router
from dealhub.routers.cart import router as cart_router
from dealhub.routers.coupons import router as coupons_router

configure_logging()

app = FastAPI(title="DealHub")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# cart order id lives in the signed session cookie
app.add_middleware(SessionMiddleware, secret_key=settings.SESSION_SECRET)

register_exception_handlers(app)

# Auth & users
app.include_router(auth_router)
app.include_router(users_router)

# Admin
app.include_router(admin_deals_router)
app.include_router(admin_catalog_router)
app.include_router(admin_orders_router)

# Storefront
app.include_router(deals_router)
app.include_router(line_items_router)
app.include_router(cart_router)
app.include_router(coupons_router)

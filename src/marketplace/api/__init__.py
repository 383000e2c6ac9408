"""Marketplace API package."""

from marketplace.api.errors import register_error_handlers
from marketplace.api.routes import (
    admin_router,
    delivery_router,
    depot_router,
    order_router,
    seller_router,
)

routers = [order_router, seller_router, delivery_router, depot_router, admin_router]

__all__ = [
    "admin_router",
    "delivery_router",
    "depot_router",
    "order_router",
    "register_error_handlers",
    "routers",
    "seller_router",
]

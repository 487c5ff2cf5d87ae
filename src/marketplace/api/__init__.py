from marketplace.api.errors import install_error_handlers
from marketplace.api.routes import (
    admin_router,
    order_router,
    product_router,
    restaurant_router,
    subscription_router,
)

__all__ = [
    "admin_router",
    "install_error_handlers",
    "order_router",
    "product_router",
    "restaurant_router",
    "subscription_router",
]

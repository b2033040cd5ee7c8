"""API routes package.

Routers are organized by domain:

- health: Liveness check
- webhooks: Stripe payment event reconciliation
- payments: PaymentIntent creation for checkout
- orders: Checkout order creation and admin status updates

All routers are registered in main.py with the /api prefix.
"""

from storefront_api.routes.health import router as health_router
from storefront_api.routes.orders import router as orders_router
from storefront_api.routes.payments import router as payments_router
from storefront_api.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "orders_router",
    "payments_router",
    "webhooks_router",
]

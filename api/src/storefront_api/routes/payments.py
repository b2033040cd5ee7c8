"""Payment endpoints for checkout.

Provides REST endpoints for:
- Creating a Stripe PaymentIntent for the cart total

The client confirms the intent with Stripe.js; the order's status then
follows from the payment_intent.* webhooks.
"""

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_201_CREATED

from storefront.models.payment import PaymentIntentCreate, PaymentIntentResult
from storefront.services.stripe_service import StripeService
from storefront_api.dependencies import get_stripe_service

router = APIRouter(tags=["payments"])


@router.post(
    "/payments/intents",
    summary="Create payment intent",
    description="""
Create a Stripe PaymentIntent for checkout.

**Notes:**
- `amount` is in major currency units and converted to the smallest unit
- `currency` defaults to the store currency
- Automatic payment methods are enabled
""",
    response_model=PaymentIntentResult,
    status_code=HTTP_201_CREATED,
    responses={
        201: {"description": "PaymentIntent created"},
        422: {"description": "Invalid amount or currency"},
        500: {"description": "Stripe secret key not configured"},
        502: {"description": "Stripe rejected the request"},
    },
)
async def create_payment_intent(
    body: PaymentIntentCreate,
    stripe_service: StripeService = Depends(get_stripe_service),
) -> PaymentIntentResult:
    """Create a PaymentIntent and return its client secret."""
    return await run_in_threadpool(stripe_service.create_payment_intent, body)

"""Webhook endpoints for external service integrations.

Provides endpoints for:
- Stripe webhook events (payment_intent.succeeded, payment_intent.payment_failed)

These endpoints do NOT require gateway authentication as they receive
signed payloads from Stripe.
"""

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from storefront.models.errors import PersistenceError
from storefront.services.stripe_service import StripeService
from storefront.services.webhook_handler import PaymentEventReconciler
from storefront.utils.logging import get_logger, log_webhook_event
from storefront_api.dependencies import get_reconciler, get_stripe_service
from storefront_api.models.webhooks import WebhookResponse

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

STRIPE_SIGNATURE_HEADER = "Stripe-Signature"


@router.post(
    "/webhooks/stripe",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- payment_intent.succeeded: moves matching orders to Processing
- payment_intent.payment_failed: moves matching orders to PaymentFailed

**No gateway authentication** - the Stripe-Signature header is verified
against the webhook signing secret over the raw body.

**Idempotent**: redelivery of an event leaves orders in the same state.
Other event types, payloads that do not match the expected shape, and
payment references with no order are acknowledged with 200 so Stripe
stops retrying.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event received (handled or intentionally ignored)"},
        400: {"description": "Missing or invalid Stripe-Signature header"},
        500: {"description": "Signing secret not configured, or order store failure (Stripe retries)"},
    },
)
async def handle_stripe_webhook(
    request: Request,
    stripe_service: StripeService = Depends(get_stripe_service),
    reconciler: PaymentEventReconciler = Depends(get_reconciler),
) -> WebhookResponse:
    """Verify, decode and reconcile one Stripe webhook delivery."""
    # Raw bytes: the signature is computed over the exact body
    payload = await request.body()
    signature = request.headers.get(STRIPE_SIGNATURE_HEADER)
    if not signature:
        logger.warning("Webhook request missing %s header", STRIPE_SIGNATURE_HEADER)

    event = stripe_service.verify_webhook_signature(payload, signature)

    event_id = event.get("id")
    event_type = event.get("type")
    log_webhook_event(logger, event_type, event_id, result="received")

    payload_hash = StripeService.compute_payload_hash(payload)

    try:
        result = await run_in_threadpool(reconciler.reconcile, event, payload_hash)
    except PersistenceError as e:
        data_object = (event.get("data") or {}).get("object") or {}
        log_webhook_event(
            logger,
            event_type,
            event_id,
            payment_reference=data_object.get("id") if isinstance(data_object, dict) else None,
            result="error",
            error=e.message,
            details=e.details,
        )
        raise

    return WebhookResponse(
        event_id=result.event_id,
        event_type=result.event_type,
        processing_result=result.processing_result,
        order_ids=result.order_ids,
        message=result.message,
    )

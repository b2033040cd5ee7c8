"""Webhook delivery record for auditing and reconciliation results."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import ProcessingResult


class WebhookEventRecord(BaseModel):
    """Log of a processed Stripe webhook delivery.

    Used for:
    - Auditing: track every delivery and what it did to orders
    - Debugging: investigate payment/order mismatches
    """

    model_config = ConfigDict(strict=True)

    event_id: str = Field(..., description="Stripe event ID (evt_xxx)", examples=["evt_1ABC123DEF456"])
    event_type: str = Field(
        ...,
        description="Stripe event type",
        examples=["payment_intent.succeeded", "payment_intent.payment_failed"],
    )
    processed_at: datetime = Field(..., description="When the event was processed")
    payload_hash: str | None = Field(
        default=None, description="SHA-256 hash of the raw payload"
    )
    payment_reference: str | None = Field(
        default=None, description="PaymentIntent ID the event refers to"
    )
    order_ids: list[str] = Field(
        default_factory=list, description="Orders whose status was written"
    )
    processing_result: ProcessingResult = Field(default=ProcessingResult.SUCCESS)
    error_message: str | None = Field(default=None)


class ReconcileResult(BaseModel):
    """Outcome of reconciling one verified event against the order store."""

    event_id: str | None = None
    event_type: str | None = None
    processing_result: ProcessingResult
    payment_reference: str | None = None
    order_ids: list[str] = Field(default_factory=list)
    skipped_order_ids: list[str] = Field(default_factory=list)
    message: str | None = None

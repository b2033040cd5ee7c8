"""API models for the webhook endpoint."""

from pydantic import BaseModel, Field

from storefront.models.enums import ProcessingResult


class WebhookResponse(BaseModel):
    """Acknowledgement returned to Stripe for every accepted delivery.

    ``received`` is always true; ``processing_result`` says what the
    delivery did (success, ignored, order_not_found, skipped, rejected).
    """

    received: bool = True
    event_id: str | None = None
    event_type: str | None = None
    processing_result: ProcessingResult
    order_ids: list[str] = Field(default_factory=list)
    message: str | None = None

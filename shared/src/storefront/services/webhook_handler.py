"""Webhook handler for reconciling Stripe payment events with orders.

Provides business logic for handling webhook events separate from
HTTP routing concerns, so it can be unit tested without HTTP and reused
from other transports.

Every event that gets this far has a verified signature. The handler never
asks Stripe to retry for something a retry cannot fix: unknown event types,
malformed payloads and payment references with no order are acknowledged.
Only PersistenceError escapes, because a store outage may clear.
"""

import datetime as dt
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from storefront.models.enums import OrderStatus, ProcessingResult
from storefront.models.errors import PersistenceError
from storefront.models.events import (
    EventDecodeError,
    PaymentFailedEvent,
    PaymentSucceededEvent,
    UnhandledEvent,
    parse_payment_event,
)
from storefront.models.webhook import ReconcileResult, WebhookEventRecord
from storefront.services.dynamodb import DynamoDBService
from storefront.services.order_service import OrderService
from storefront.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)


class PaymentEventReconciler:
    """Applies verified Stripe payment events to order records.

    payment_intent.succeeded moves matching orders to Processing,
    payment_intent.payment_failed moves them to PaymentFailed. Setting a
    status is naturally idempotent, so redelivery of the same event leaves
    the same end state.
    """

    WEBHOOK_EVENTS_TABLE = "payment-webhook-events"

    def __init__(self, orders: OrderService, db: DynamoDBService) -> None:
        """Initialize the reconciler.

        Args:
            orders: Order service used to locate and update orders
            db: DynamoDB service for the webhook audit table
        """
        self._orders = orders
        self._db = db

    def reconcile(self, event: dict[str, Any], payload_hash: str | None = None) -> ReconcileResult:
        """Decode a verified event and dispatch it to its handler.

        Args:
            event: Event dictionary returned by signature verification
            payload_hash: SHA-256 of the raw body, stored in the audit record

        Returns:
            ReconcileResult describing what happened

        Raises:
            PersistenceError: If locating or updating orders fails
        """
        try:
            decoded = parse_payment_event(event)
        except EventDecodeError as e:
            result = ReconcileResult(
                event_id=e.event_id if isinstance(e.event_id, str) else None,
                event_type=e.event_type,
                processing_result=ProcessingResult.REJECTED,
                message="Event payload does not match the expected shape",
            )
            log_webhook_event(
                logger,
                result.event_type,
                result.event_id,
                result=result.processing_result.value,
                reason=e.reason,
            )
            self.record_event(result, payload_hash, error_message=e.reason)
            return result

        try:
            if isinstance(decoded, PaymentSucceededEvent):
                result = self._apply(decoded, OrderStatus.PROCESSING)
            elif isinstance(decoded, PaymentFailedEvent):
                logger.info(
                    "PaymentIntent %s failed. Reason: %s",
                    decoded.payment_reference,
                    decoded.failure_reason,
                )
                result = self._apply(
                    decoded,
                    OrderStatus.PAYMENT_FAILED,
                    failure_reason=decoded.failure_reason,
                )
            else:
                result = self._ignore(decoded)
        except PersistenceError as e:
            failed = ReconcileResult(
                event_id=decoded.id,
                event_type=decoded.type,
                processing_result=ProcessingResult.ERROR,
                payment_reference=getattr(decoded, "payment_reference", None),
            )
            self.record_event(failed, payload_hash, error_message=e.message)
            raise

        self.record_event(result, payload_hash)
        return result

    def _ignore(self, event: UnhandledEvent) -> ReconcileResult:
        log_webhook_event(logger, event.type, event.id, result=ProcessingResult.IGNORED.value)
        return ReconcileResult(
            event_id=event.id,
            event_type=event.type,
            processing_result=ProcessingResult.IGNORED,
            message=f"Event type '{event.type}' not handled",
        )

    def _apply(
        self,
        event: PaymentSucceededEvent | PaymentFailedEvent,
        target: OrderStatus,
        failure_reason: str | None = None,
    ) -> ReconcileResult:
        reference = event.payment_reference
        orders = self._orders.find_by_payment_reference(reference)

        if not orders:
            # TODO: decide with the product owner whether to create the order
            # from PaymentIntent metadata instead of only alerting.
            log_webhook_event(
                logger,
                event.type,
                event.id,
                payment_reference=reference,
                result=ProcessingResult.ORDER_NOT_FOUND.value,
            )
            return ReconcileResult(
                event_id=event.id,
                event_type=event.type,
                processing_result=ProcessingResult.ORDER_NOT_FOUND,
                payment_reference=reference,
                message=f"No order found for payment reference {reference}",
            )

        written, skipped = self._orders.apply_payment_status(
            orders,
            target,
            event_created=event.created,
            failure_reason=failure_reason,
            source=f"webhook:{event.id}",
        )

        processing_result = ProcessingResult.SUCCESS if written else ProcessingResult.SKIPPED
        result = ReconcileResult(
            event_id=event.id,
            event_type=event.type,
            processing_result=processing_result,
            payment_reference=reference,
            order_ids=[o.order_id for o in written],
            skipped_order_ids=[o.order_id for o in skipped],
            message=(
                None
                if written
                else "All matching orders are fulfilled, cancelled or already reflect a newer payment event"
            ),
        )
        log_webhook_event(
            logger,
            event.type,
            event.id,
            payment_reference=reference,
            order_ids=result.order_ids,
            result=processing_result.value,
            target_status=target.value,
        )
        return result

    def record_event(
        self,
        result: ReconcileResult,
        payload_hash: str | None,
        error_message: str | None = None,
    ) -> None:
        """Write the audit record for a processed delivery.

        Deliveries that failed on the order store are recorded as ``error``
        before the failure propagates. A failed audit write is only logged
        and never changes how the delivery is answered.

        Args:
            result: Reconciliation outcome
            payload_hash: SHA-256 of the raw body
            error_message: Detail for rejected or failed events
        """
        if not result.event_id:
            return

        record = WebhookEventRecord(
            event_id=result.event_id,
            event_type=result.event_type or "unknown",
            processed_at=dt.datetime.now(dt.UTC),
            payload_hash=payload_hash,
            payment_reference=result.payment_reference,
            order_ids=list(result.order_ids),
            processing_result=result.processing_result,
            error_message=error_message or result.message,
        )

        item: dict[str, Any] = record.model_dump(mode="json", exclude_none=True)
        if not item.get("order_ids"):
            item.pop("order_ids", None)

        try:
            self._db.put_item(self.WEBHOOK_EVENTS_TABLE, item)
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to write audit record for event %s: %s", result.event_id, e)

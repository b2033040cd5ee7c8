"""Unit tests for PaymentEventReconciler.

Exercises every outcome against moto tables without going through HTTP.
"""

from typing import Any
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError

from conftest import payment_intent_event
from storefront.models.enums import OrderStatus, ProcessingResult
from storefront.models.errors import PersistenceError
from storefront.services.webhook_handler import PaymentEventReconciler
from storefront_api.dependencies import ServiceContainer


@pytest.fixture
def reconciler(container: ServiceContainer) -> PaymentEventReconciler:
    return container.reconciler


class TestSucceededEvents:
    def test_moves_pending_order_to_processing(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_123")

        result = reconciler.reconcile(
            payment_intent_event("payment_intent.succeeded", "pi_123", event_id="evt_ok")
        )

        assert result.processing_result == ProcessingResult.SUCCESS
        assert result.order_ids == ["ORD-1"]
        assert result.payment_reference == "pi_123"
        assert read_order("ORD-1")["status"] == "Processing"

    def test_updates_every_order_for_the_reference(
        self, reconciler: PaymentEventReconciler, seed_order, read_order
    ):
        seed_order("ORD-1", "pi_123")
        seed_order("ORD-2", "pi_123")
        seed_order("ORD-3", "pi_other")

        result = reconciler.reconcile(payment_intent_event("payment_intent.succeeded", "pi_123"))

        assert sorted(result.order_ids) == ["ORD-1", "ORD-2"]
        assert read_order("ORD-3")["status"] == "Pending"

    def test_success_after_failure_retry(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_123", OrderStatus.PAYMENT_FAILED, last_payment_event_at=1767225600)

        result = reconciler.reconcile(
            payment_intent_event("payment_intent.succeeded", "pi_123", created=1767225900)
        )

        assert result.processing_result == ProcessingResult.SUCCESS
        assert read_order("ORD-1")["status"] == "Processing"

    def test_redelivery_is_idempotent(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        event = payment_intent_event("payment_intent.succeeded", "pi_123", created=1767225600)

        first = reconciler.reconcile(event)
        second = reconciler.reconcile(event)

        assert first.processing_result == ProcessingResult.SUCCESS
        assert second.processing_result == ProcessingResult.SUCCESS
        stored = read_order("ORD-1")
        assert stored["status"] == "Processing"
        assert stored["last_payment_event_at"] == 1767225600

    def test_unreadable_sibling_does_not_block_reconciliation(
        self, reconciler: PaymentEventReconciler, seed_order, read_order
    ):
        seed_order("ORD-OK", "pi_9")
        seed_order("ORD-BAD", "pi_9", created_at="not-a-date")

        result = reconciler.reconcile(payment_intent_event("payment_intent.succeeded", "pi_9"))

        assert result.processing_result == ProcessingResult.SUCCESS
        assert result.order_ids == ["ORD-OK"]
        assert read_order("ORD-OK")["status"] == "Processing"
        assert read_order("ORD-BAD")["status"] == "Pending"


class TestFailedEvents:
    def test_moves_order_to_payment_failed(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_456")

        result = reconciler.reconcile(
            payment_intent_event(
                "payment_intent.payment_failed",
                "pi_456",
                failure_message="Your card has insufficient funds.",
            )
        )

        assert result.processing_result == ProcessingResult.SUCCESS
        stored = read_order("ORD-1")
        assert stored["status"] == "PaymentFailed"
        assert stored["failure_reason"] == "Your card has insufficient funds."

    def test_late_failure_does_not_undo_success(
        self, reconciler: PaymentEventReconciler, seed_order, read_order
    ):
        seed_order("ORD-1", "pi_456")
        reconciler.reconcile(
            payment_intent_event("payment_intent.succeeded", "pi_456", event_id="evt_b", created=1767225700)
        )

        result = reconciler.reconcile(
            payment_intent_event(
                "payment_intent.payment_failed", "pi_456", event_id="evt_a", created=1767225600
            )
        )

        assert result.processing_result == ProcessingResult.SKIPPED
        assert result.skipped_order_ids == ["ORD-1"]
        assert read_order("ORD-1")["status"] == "Processing"

    def test_shipped_order_is_left_alone(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_456", OrderStatus.SHIPPED)

        result = reconciler.reconcile(payment_intent_event("payment_intent.payment_failed", "pi_456"))

        assert result.processing_result == ProcessingResult.SKIPPED
        assert result.order_ids == []
        assert read_order("ORD-1")["status"] == "Shipped"


class TestAcknowledgedWithoutChanges:
    def test_unknown_reference_is_order_not_found(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_known")

        result = reconciler.reconcile(payment_intent_event("payment_intent.succeeded", "pi_unknown"))

        assert result.processing_result == ProcessingResult.ORDER_NOT_FOUND
        assert result.payment_reference == "pi_unknown"
        assert read_order("ORD-1")["status"] == "Pending"

    def test_unhandled_type_is_ignored(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        event = payment_intent_event("payment_intent.succeeded", "pi_123")
        event["type"] = "payment_intent.created"

        result = reconciler.reconcile(event)

        assert result.processing_result == ProcessingResult.IGNORED
        assert result.event_type == "payment_intent.created"
        assert read_order("ORD-1")["status"] == "Pending"

    def test_malformed_handled_event_is_rejected(self, reconciler: PaymentEventReconciler, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        event = payment_intent_event("payment_intent.succeeded", "pi_123", event_id="evt_bad")
        event["data"] = {"object": {"object": "payment_intent"}}

        result = reconciler.reconcile(event)

        assert result.processing_result == ProcessingResult.REJECTED
        assert result.event_id == "evt_bad"
        assert read_order("ORD-1")["status"] == "Pending"


class TestPersistenceFailures:
    def test_lookup_failure_propagates(self, reconciler: PaymentEventReconciler, container: ServiceContainer):
        error = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "boom"}},
            "Query",
        )
        with patch.object(container.db, "query_by_gsi", side_effect=error):
            with pytest.raises(PersistenceError):
                reconciler.reconcile(payment_intent_event("payment_intent.succeeded", "pi_123"))

    def test_write_failure_propagates(
        self, reconciler: PaymentEventReconciler, container: ServiceContainer, seed_order, read_order
    ):
        seed_order("ORD-1", "pi_123")
        error = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "boom"}},
            "TransactWriteItems",
        )
        with patch.object(container.db, "transact_update", side_effect=error):
            with pytest.raises(PersistenceError):
                reconciler.reconcile(payment_intent_event("payment_intent.succeeded", "pi_123"))

        assert read_order("ORD-1")["status"] == "Pending"


class TestAuditRecord:
    def test_records_successful_delivery(
        self, reconciler: PaymentEventReconciler, seed_order, webhook_events_table: Any
    ):
        seed_order("ORD-1", "pi_123")

        reconciler.reconcile(
            payment_intent_event("payment_intent.succeeded", "pi_123", event_id="evt_audit"),
            payload_hash="abc123",
        )

        record = webhook_events_table.get_item(Key={"event_id": "evt_audit"})["Item"]
        assert record["processing_result"] == "success"
        assert record["payload_hash"] == "abc123"
        assert record["order_ids"] == ["ORD-1"]
        assert record["payment_reference"] == "pi_123"

    def test_records_order_not_found(self, reconciler: PaymentEventReconciler, webhook_events_table: Any):
        reconciler.reconcile(
            payment_intent_event("payment_intent.succeeded", "pi_nobody", event_id="evt_orphan")
        )

        record = webhook_events_table.get_item(Key={"event_id": "evt_orphan"})["Item"]
        assert record["processing_result"] == "order_not_found"
        assert "order_ids" not in record

    def test_records_store_failure_as_error(
        self, reconciler: PaymentEventReconciler, container: ServiceContainer, seed_order, webhook_events_table: Any
    ):
        seed_order("ORD-1", "pi_123")
        error = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "boom"}},
            "TransactWriteItems",
        )

        with patch.object(container.db, "transact_update", side_effect=error):
            with pytest.raises(PersistenceError):
                reconciler.reconcile(
                    payment_intent_event("payment_intent.succeeded", "pi_123", event_id="evt_store_down"),
                    payload_hash="abc123",
                )

        record = webhook_events_table.get_item(Key={"event_id": "evt_store_down"})["Item"]
        assert record["processing_result"] == "error"
        assert record["payment_reference"] == "pi_123"
        assert record["error_message"] == "Failed to commit order status batch"

    def test_audit_write_failure_does_not_fail_delivery(
        self, reconciler: PaymentEventReconciler, container: ServiceContainer, seed_order, read_order
    ):
        seed_order("ORD-1", "pi_123")
        error = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "no table"}},
            "PutItem",
        )

        with patch.object(container.db, "put_item", side_effect=error):
            result = reconciler.reconcile(payment_intent_event("payment_intent.succeeded", "pi_123"))

        assert result.processing_result == ProcessingResult.SUCCESS
        assert read_order("ORD-1")["status"] == "Processing"

"""Contract tests for POST /api/webhooks/stripe.

Test categories:
- Signature validation (400) and missing configuration (500)
- payment_intent.succeeded / payment_intent.payment_failed processing (200)
- Acknowledged no-ops: unknown reference, unhandled type, malformed payload (200)
- Idempotent redelivery (200)
- Order store failure (500 plus an error audit record, Stripe retries)
"""

from typing import Any
from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from conftest import encode_event, payment_intent_event, sign_payload
from storefront.config import Settings
from storefront.models.enums import OrderStatus
from storefront_api.dependencies import ServiceContainer
from storefront_api.main import create_app

pytestmark = pytest.mark.contract

WEBHOOK_URL = "/api/webhooks/stripe"


# === Fixtures ===


@pytest.fixture
def client(container: ServiceContainer) -> TestClient:
    return TestClient(create_app(container=container))


def _post_signed(client: TestClient, event: dict[str, Any], **headers: str) -> Any:
    payload = encode_event(event)
    return client.post(
        WEBHOOK_URL,
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload), "Content-Type": "application/json", **headers},
    )


# === Signature validation ===


class TestSignatureValidation:
    def test_missing_signature_returns_400(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        payload = encode_event(payment_intent_event("payment_intent.succeeded", "pi_123"))

        response = client.post(WEBHOOK_URL, content=payload)

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_WEBHOOK_002"
        assert read_order("ORD-1")["status"] == "Pending"

    def test_garbage_signature_returns_400(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        payload = encode_event(payment_intent_event("payment_intent.succeeded", "pi_123"))

        response = client.post(WEBHOOK_URL, content=payload, headers={"Stripe-Signature": "tampered"})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert response.json()["error_code"] == "ERR_WEBHOOK_001"
        assert read_order("ORD-1")["status"] == "Pending"

    def test_single_byte_tamper_returns_400(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        payload = encode_event(payment_intent_event("payment_intent.succeeded", "pi_123"))
        signature = sign_payload(payload)
        tampered = bytearray(payload)
        tampered[-2] = ord(" ") if tampered[-2] != ord(" ") else ord("\t")

        response = client.post(WEBHOOK_URL, content=bytes(tampered), headers={"Stripe-Signature": signature})

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert read_order("ORD-1")["status"] == "Pending"

    def test_missing_webhook_secret_returns_500(
        self, dynamodb_tables: Any, settings: Settings, seed_order, read_order
    ):
        seed_order("ORD-1", "pi_123")
        misconfigured = ServiceContainer.from_settings(
            settings.model_copy(update={"stripe_webhook_secret": None})
        )
        client = TestClient(create_app(container=misconfigured))

        response = _post_signed(client, payment_intent_event("payment_intent.succeeded", "pi_123"))

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "ERR_CONFIG_001"
        assert read_order("ORD-1")["status"] == "Pending"


# === Payment outcomes ===


class TestPaymentOutcomes:
    def test_succeeded_moves_order_to_processing(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_123")

        response = _post_signed(
            client, payment_intent_event("payment_intent.succeeded", "pi_123", event_id="evt_ok")
        )

        assert response.status_code == HTTP_200_OK
        body = response.json()
        assert body["received"] is True
        assert body["event_id"] == "evt_ok"
        assert body["processing_result"] == "success"
        assert body["order_ids"] == ["ORD-1"]
        assert read_order("ORD-1")["status"] == "Processing"

    def test_failed_moves_order_to_payment_failed(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_456")

        response = _post_signed(
            client,
            payment_intent_event(
                "payment_intent.payment_failed", "pi_456", failure_message="Your card was declined."
            ),
        )

        assert response.status_code == HTTP_200_OK
        assert response.json()["processing_result"] == "success"
        stored = read_order("ORD-1")
        assert stored["status"] == "PaymentFailed"
        assert stored["failure_reason"] == "Your card was declined."

    def test_delivered_order_is_not_regressed(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_456", OrderStatus.DELIVERED)

        response = _post_signed(client, payment_intent_event("payment_intent.payment_failed", "pi_456"))

        assert response.status_code == HTTP_200_OK
        assert response.json()["processing_result"] == "skipped"
        assert read_order("ORD-1")["status"] == "Delivered"

    def test_unreadable_sibling_order_is_skipped(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-OK", "pi_9")
        seed_order("ORD-BAD", "pi_9", created_at="not-a-date")

        response = _post_signed(client, payment_intent_event("payment_intent.succeeded", "pi_9"))

        assert response.status_code == HTTP_200_OK
        body = response.json()
        assert body["processing_result"] == "success"
        assert body["order_ids"] == ["ORD-OK"]
        assert read_order("ORD-OK")["status"] == "Processing"
        assert read_order("ORD-BAD")["status"] == "Pending"

    def test_newer_failure_without_reason_clears_old_reason(self, client: TestClient, seed_order, read_order):
        seed_order(
            "ORD-1",
            "pi_456",
            OrderStatus.PAYMENT_FAILED,
            failure_reason="card_declined",
            last_payment_event_at=1767225600,
        )

        response = _post_signed(
            client,
            payment_intent_event(
                "payment_intent.payment_failed", "pi_456", event_id="evt_retry_fail", created=1767225700
            ),
        )

        assert response.status_code == HTTP_200_OK
        stored = read_order("ORD-1")
        assert stored["status"] == "PaymentFailed"
        assert "failure_reason" not in stored

    def test_redelivery_is_idempotent(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        event = payment_intent_event("payment_intent.succeeded", "pi_123", event_id="evt_dup")

        first = _post_signed(client, event)
        second = _post_signed(client, event)

        assert first.status_code == HTTP_200_OK
        assert second.status_code == HTTP_200_OK
        assert read_order("ORD-1")["status"] == "Processing"


# === Acknowledged without changes ===


class TestAcknowledgedEvents:
    def test_unknown_reference_returns_200(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_known")

        response = _post_signed(client, payment_intent_event("payment_intent.succeeded", "pi_unknown"))

        assert response.status_code == HTTP_200_OK
        assert response.json()["processing_result"] == "order_not_found"
        assert read_order("ORD-1")["status"] == "Pending"

    def test_unhandled_type_returns_200(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        event = payment_intent_event("payment_intent.succeeded", "pi_123")
        event["type"] = "customer.created"

        response = _post_signed(client, event)

        assert response.status_code == HTTP_200_OK
        body = response.json()
        assert body["processing_result"] == "ignored"
        assert body["event_type"] == "customer.created"
        assert read_order("ORD-1")["status"] == "Pending"

    def test_malformed_payment_event_returns_200(self, client: TestClient, seed_order, read_order):
        seed_order("ORD-1", "pi_123")
        event = payment_intent_event("payment_intent.succeeded", "pi_123")
        event["data"] = {}

        response = _post_signed(client, event)

        assert response.status_code == HTTP_200_OK
        assert response.json()["processing_result"] == "rejected"
        assert read_order("ORD-1")["status"] == "Pending"


# === Error handling ===


class TestErrorHandling:
    def test_store_failure_returns_500_and_records_error(
        self, client: TestClient, container: ServiceContainer, seed_order, webhook_events_table: Any
    ):
        seed_order("ORD-1", "pi_123")
        error = ClientError(
            {"Error": {"Code": "InternalServerError", "Message": "boom"}},
            "TransactWriteItems",
        )

        with patch.object(container.db, "transact_update", side_effect=error):
            response = _post_signed(
                client, payment_intent_event("payment_intent.succeeded", "pi_123", event_id="evt_store_down")
            )

        assert response.status_code == HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "ERR_STORE_001"
        record = webhook_events_table.get_item(Key={"event_id": "evt_store_down"})["Item"]
        assert record["processing_result"] == "error"

    def test_correlation_id_is_echoed(self, client: TestClient, seed_order):
        seed_order("ORD-1", "pi_123")

        response = _post_signed(
            client,
            payment_intent_event("payment_intent.succeeded", "pi_123"),
            **{"X-Correlation-ID": "corr-webhook-1"},
        )

        assert response.headers["X-Correlation-ID"] == "corr-webhook-1"

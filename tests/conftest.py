"""Pytest configuration and fixtures for storefront backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (orders + webhook audit tables)
- Settings and a wired ServiceContainer
- Stripe webhook signing helpers and sample events
"""

import datetime as dt
import hashlib
import hmac
import json
import os
import time
from typing import Any, Generator

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set before any storefront import so nothing reaches real AWS
os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["STOREFRONT_DISABLE_SSM"] = "1"

from storefront.config import Settings  # noqa: E402
from storefront.models.enums import OrderStatus  # noqa: E402
from storefront.models.order import Order  # noqa: E402
from storefront.services.order_service import OrderService  # noqa: E402
from storefront_api.dependencies import ServiceContainer  # noqa: E402

TEST_TABLE_PREFIX = "test-storefront"
TEST_WEBHOOK_SECRET = "whsec_test_secret_for_testing"
TEST_STRIPE_SECRET_KEY = "sk_test_abc123"
TEST_REGION = "eu-west-1"

ORDERS_TABLE_NAME = f"{TEST_TABLE_PREFIX}-orders"
WEBHOOK_EVENTS_TABLE_NAME = f"{TEST_TABLE_PREFIX}-payment-webhook-events"


# === Stripe signing helpers ===


def sign_payload(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Create a Stripe-Signature header value.

    Stripe signatures use HMAC-SHA256 over "<timestamp>.<body>" with format
    t={timestamp},v1={signature}.
    """
    ts = int(time.time()) if timestamp is None else timestamp
    signed_payload = f"{ts}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={ts},v1={signature}"


def payment_intent_event(
    event_type: str,
    payment_reference: str,
    *,
    event_id: str = "evt_1TEST000000000",
    created: int | None = None,
    failure_message: str | None = None,
) -> dict[str, Any]:
    """Build a payment_intent.* event envelope as Stripe sends it."""
    payment_intent: dict[str, Any] = {
        "id": payment_reference,
        "object": "payment_intent",
        "amount": 250000,
        "currency": "kes",
        "metadata": {},
        "last_payment_error": None,
    }
    if failure_message is not None:
        payment_intent["last_payment_error"] = {
            "code": "card_declined",
            "message": failure_message,
        }

    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": created if created is not None else int(time.time()),
        "data": {"object": payment_intent},
    }


def encode_event(event: dict[str, Any]) -> bytes:
    return json.dumps(event).encode("utf-8")


# === Settings / DynamoDB fixtures ===


@pytest.fixture
def settings() -> Settings:
    """Settings with both Stripe secrets configured."""
    return Settings(
        environment="test",
        table_prefix=TEST_TABLE_PREFIX,
        stripe_secret_key=TEST_STRIPE_SECRET_KEY,
        stripe_webhook_secret=TEST_WEBHOOK_SECRET,
        default_currency="kes",
    )


@pytest.fixture
def dynamodb_tables() -> Generator[Any, None, None]:
    """Create the orders and webhook audit tables inside a moto context.

    Yields the low-level DynamoDB client.
    """
    with mock_aws():
        client = boto3.client("dynamodb", region_name=TEST_REGION)
        client.create_table(
            TableName=ORDERS_TABLE_NAME,
            KeySchema=[{"AttributeName": "order_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "order_id", "AttributeType": "S"},
                {"AttributeName": "payment_reference", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "payment_reference-index",
                    "KeySchema": [{"AttributeName": "payment_reference", "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        client.create_table(
            TableName=WEBHOOK_EVENTS_TABLE_NAME,
            KeySchema=[{"AttributeName": "event_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "event_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        yield client


@pytest.fixture
def container(dynamodb_tables: Any, settings: Settings) -> ServiceContainer:
    """Services wired to the moto tables."""
    return ServiceContainer.from_settings(settings)


@pytest.fixture
def order_service(container: ServiceContainer) -> OrderService:
    return container.orders


@pytest.fixture
def orders_table(dynamodb_tables: Any) -> Any:
    """boto3 Table resource for seeding and inspecting orders directly."""
    return boto3.resource("dynamodb", region_name=TEST_REGION).Table(ORDERS_TABLE_NAME)


@pytest.fixture
def webhook_events_table(dynamodb_tables: Any) -> Any:
    return boto3.resource("dynamodb", region_name=TEST_REGION).Table(WEBHOOK_EVENTS_TABLE_NAME)


@pytest.fixture
def seed_order(orders_table: Any):
    """Factory that writes an order item straight into the table."""

    def _seed(
        order_id: str,
        payment_reference: str,
        status: OrderStatus = OrderStatus.PENDING,
        **extra: Any,
    ) -> dict[str, Any]:
        now = dt.datetime(2026, 7, 1, 10, 0, tzinfo=dt.UTC).isoformat()
        item: dict[str, Any] = {
            "order_id": order_id,
            "payment_reference": payment_reference,
            "status": status.value,
            "amount": 250000,
            "currency": "kes",
            "items": [],
            "created_at": now,
            "updated_at": now,
        }
        item.update(extra)
        orders_table.put_item(Item=item)
        return item

    return _seed


@pytest.fixture
def read_order(orders_table: Any):
    """Read an order item straight from the table."""

    def _read(order_id: str) -> dict[str, Any] | None:
        return orders_table.get_item(Key={"order_id": order_id}, ConsistentRead=True).get("Item")

    return _read


@pytest.fixture
def sample_order() -> Order:
    now = dt.datetime(2026, 7, 1, 10, 0, tzinfo=dt.UTC)
    return Order(
        order_id="ORD-SAMPLE000001",
        payment_reference="pi_sample",
        status=OrderStatus.PENDING,
        created_at=now,
        updated_at=now,
    )

"""Enumeration types for storefront data models."""

from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle status of an order."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    PAYMENT_FAILED = "PaymentFailed"


# Statuses payment events may move an order into
PAYMENT_TARGET_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PROCESSING, OrderStatus.PAYMENT_FAILED}
)

# Statuses owned by fulfilment/admin workflows; payment events never overwrite them
PAYMENT_TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)


class PaymentEventType(str, Enum):
    """Stripe event types the reconciler acts on."""

    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"


class ProcessingResult(str, Enum):
    """Outcome of reconciling one webhook delivery."""

    SUCCESS = "success"
    IGNORED = "ignored"
    ORDER_NOT_FOUND = "order_not_found"
    SKIPPED = "skipped"
    REJECTED = "rejected"
    ERROR = "error"

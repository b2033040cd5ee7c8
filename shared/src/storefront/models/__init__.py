"""Pydantic models for storefront data entities."""

from .enums import (
    PAYMENT_TARGET_STATUSES,
    PAYMENT_TERMINAL_STATUSES,
    OrderStatus,
    PaymentEventType,
    ProcessingResult,
)
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ErrorCode,
    ErrorResponse,
    ForbiddenError,
    OrderNotFoundError,
    PaymentProviderError,
    PersistenceError,
    StorefrontError,
)
from .events import (
    EventDecodeError,
    PaymentFailedEvent,
    PaymentSucceededEvent,
    UnhandledEvent,
    parse_payment_event,
)
from .order import Order, OrderCreate, OrderItem, OrderPage, ShippingAddress
from .payment import PaymentIntentCreate, PaymentIntentResult
from .webhook import ReconcileResult, WebhookEventRecord

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "ErrorCode",
    "ErrorResponse",
    "EventDecodeError",
    "ForbiddenError",
    "Order",
    "OrderCreate",
    "OrderItem",
    "OrderNotFoundError",
    "OrderPage",
    "OrderStatus",
    "PAYMENT_TARGET_STATUSES",
    "PAYMENT_TERMINAL_STATUSES",
    "PaymentEventType",
    "PaymentFailedEvent",
    "PaymentIntentCreate",
    "PaymentIntentResult",
    "PaymentProviderError",
    "PaymentSucceededEvent",
    "PersistenceError",
    "ProcessingResult",
    "ReconcileResult",
    "ShippingAddress",
    "StorefrontError",
    "UnhandledEvent",
    "WebhookEventRecord",
    "parse_payment_event",
]

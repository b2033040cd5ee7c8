"""Standard error codes and domain exceptions for the storefront backend.

Every failure that crosses a service boundary is raised as a StorefrontError
subclass carrying an ErrorCode. The API layer maps codes to HTTP statuses
(see storefront_api.exceptions).
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes."""

    # Configuration
    CONFIGURATION_MISSING = "ERR_CONFIG_001"

    # Webhook authentication
    INVALID_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_001"
    MISSING_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_002"

    # Orders
    ORDER_NOT_FOUND = "ERR_ORDER_001"
    FORBIDDEN = "ERR_ORDER_002"

    # Order store
    PERSISTENCE_FAILED = "ERR_STORE_001"

    # Stripe
    STRIPE_API_ERROR = "ERR_STRIPE_001"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.CONFIGURATION_MISSING: "Server configuration is incomplete",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.MISSING_WEBHOOK_SIGNATURE: "Missing Stripe-Signature header",
    ErrorCode.ORDER_NOT_FOUND: "Order not found",
    ErrorCode.FORBIDDEN: "Not authorized to perform this action",
    ErrorCode.PERSISTENCE_FAILED: "Failed to write to the order store",
    ErrorCode.STRIPE_API_ERROR: "Stripe API error occurred",
}


class ErrorResponse(BaseModel):
    """JSON body returned for every StorefrontError."""

    model_config = ConfigDict(strict=True)

    error: str
    error_code: ErrorCode
    details: Optional[dict[str, Any]] = None


class StorefrontError(Exception):
    """Base exception for storefront operations.

    Subclasses fix the error code; callers may override the message and
    attach structured details for logs and the error response.
    """

    code: ErrorCode = ErrorCode.PERSISTENCE_FAILED

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        if code is not None:
            self.code = code
        self.message = message or ERROR_MESSAGES[self.code]
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert this exception to the public error body."""
        return ErrorResponse(
            error=self.message,
            error_code=self.code,
            details=self.details,
        )


class ConfigurationError(StorefrontError):
    """A required secret or setting is absent on this server."""

    code = ErrorCode.CONFIGURATION_MISSING


class AuthenticationError(StorefrontError):
    """Webhook signature missing, malformed, mismatched or expired."""

    code = ErrorCode.INVALID_WEBHOOK_SIGNATURE


class OrderNotFoundError(StorefrontError):
    """No order matches the given identifier."""

    code = ErrorCode.ORDER_NOT_FOUND


class ForbiddenError(StorefrontError):
    """Caller lacks the group or ownership required for the operation."""

    code = ErrorCode.FORBIDDEN


class PersistenceError(StorefrontError):
    """A read or write against the order store failed.

    This is the only webhook failure worth a processor retry, since the
    store may recover.
    """

    code = ErrorCode.PERSISTENCE_FAILED


class PaymentProviderError(StorefrontError):
    """A Stripe API call failed."""

    code = ErrorCode.STRIPE_API_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        stripe_error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details)
        self.stripe_error_code = stripe_error_code


# Stripe error code to user-friendly message mapping
STRIPE_ERROR_MESSAGES: dict[str, str] = {
    "card_declined": "Your card was declined. Please try a different card.",
    "expired_card": "Your card has expired. Please use a different card.",
    "insufficient_funds": "Your card has insufficient funds. Please try a different card.",
    "incorrect_cvc": "The security code (CVC) is incorrect. Please check and try again.",
    "processing_error": "A processing error occurred. Please try again.",
    "rate_limit": "Too many requests. Please wait a moment and try again.",
    "amount_too_small": "The order total is below the minimum chargeable amount.",
    "amount_too_large": "The order total exceeds the maximum chargeable amount.",
    "generic_decline": "Your card was declined. Please try a different card.",
}


def get_user_friendly_stripe_message(
    stripe_error_code: Optional[str],
    default_message: str = "Payment could not be processed. Please try again.",
) -> str:
    """Get a user-friendly message for a Stripe error code.

    Args:
        stripe_error_code: The Stripe error code (e.g., 'card_declined').
        default_message: Message to use if error code is unknown.

    Returns:
        User-friendly error message.
    """
    if stripe_error_code and stripe_error_code in STRIPE_ERROR_MESSAGES:
        return STRIPE_ERROR_MESSAGES[stripe_error_code]
    return default_message

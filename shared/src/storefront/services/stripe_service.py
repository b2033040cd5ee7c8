"""Stripe service for payment intents and webhook signature verification.

Provides integration with Stripe using the v8+ StripeClient pattern.
Credentials come from the process Settings (environment or SSM).
"""

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any

import stripe
from stripe import StripeClient

from storefront.models.errors import (
    AuthenticationError,
    ConfigurationError,
    ErrorCode,
    PaymentProviderError,
    get_user_friendly_stripe_message,
)
from storefront.models.payment import PaymentIntentCreate, PaymentIntentResult

if TYPE_CHECKING:
    from storefront.config import Settings

logger = logging.getLogger(__name__)


class StripeService:
    """Service for Stripe payment operations.

    Handles:
    - Webhook signature validation
    - PaymentIntent creation for checkout

    Usage:
        stripe_svc = StripeService(settings)
        event = stripe_svc.verify_webhook_signature(raw_body, signature_header)
    """

    def __init__(self, settings: "Settings", client: StripeClient | None = None) -> None:
        """Initialize Stripe service.

        Args:
            settings: Resolved process settings holding the Stripe secrets
            client: Optional pre-built StripeClient (otherwise created lazily)
        """
        self._settings = settings
        self._client = client

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization).

        Raises:
            ConfigurationError: If the secret key is not configured.
        """
        if self._client is None:
            if not self._settings.stripe_secret_key:
                logger.error("Stripe secret key not configured for environment %s", self._settings.environment)
                raise ConfigurationError("Stripe secret key is not configured")
            self._client = StripeClient(self._settings.stripe_secret_key)
            logger.info("Stripe client initialized for environment: %s", self._settings.environment)
        return self._client

    def _get_webhook_secret(self) -> str:
        """Get the webhook signing secret.

        Raises:
            ConfigurationError: If the signing secret is not configured.
        """
        secret = self._settings.stripe_webhook_secret
        if not secret:
            logger.error(
                "Webhook signing secret not configured for environment %s",
                self._settings.environment,
            )
            raise ConfigurationError("Webhook signing secret is not configured")
        return secret

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify a webhook signature over the raw body and parse the event.

        The signature covers "<timestamp>.<raw body>", so the payload must be
        the exact bytes received.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.

        Returns:
            Parsed event dictionary.

        Raises:
            ConfigurationError: If the signing secret is not configured.
            AuthenticationError: If the header is missing, the signature does
                not match, the timestamp is outside tolerance, or the signed
                body is not a JSON object.
        """
        webhook_secret = self._get_webhook_secret()

        if not signature:
            raise AuthenticationError(code=ErrorCode.MISSING_WEBHOOK_SIGNATURE)

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                webhook_secret,
                tolerance=self._settings.webhook_tolerance_seconds,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise AuthenticationError(details={"reason": str(e)}) from e
        except UnicodeDecodeError as e:
            logger.warning("Webhook payload is not valid UTF-8")
            raise AuthenticationError(details={"reason": "payload is not UTF-8"}) from e

        try:
            event = json.loads(body)
        except ValueError as e:
            logger.warning("Signed webhook payload is not valid JSON: %s", e)
            raise AuthenticationError(
                "Webhook payload is not valid JSON",
                details={"reason": str(e)},
            ) from e

        if not isinstance(event, dict):
            raise AuthenticationError(
                "Webhook payload is not a JSON object",
                details={"reason": type(event).__name__},
            )

        logger.info("Webhook signature verified for event: %s", event.get("id"))
        return event

    def create_payment_intent(self, data: PaymentIntentCreate) -> PaymentIntentResult:
        """Create a Stripe PaymentIntent for checkout.

        Args:
            data: Amount in major units plus optional customer details.

        Returns:
            PaymentIntentResult with the client secret for confirmation.

        Raises:
            ConfigurationError: If the secret key is not configured.
            PaymentProviderError: If Stripe rejects the request.
        """
        client = self._get_client()

        currency = (data.currency or self._settings.default_currency).lower()
        amount_minor = round(data.amount * 100)
        description = (
            f"Order for {data.customer_name}" if data.customer_name else "Storefront order"
        )

        params: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "automatic_payment_methods": {"enabled": True},
            "description": description,
        }
        if data.customer_email:
            params["receipt_email"] = data.customer_email

        try:
            logger.info("Creating PaymentIntent for %d %s", amount_minor, currency)
            intent = client.payment_intents.create(params=params)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe PaymentIntent creation failed: %s (code: %s)",
                str(e),
                error_code,
            )
            raise PaymentProviderError(
                get_user_friendly_stripe_message(error_code),
                stripe_error_code=error_code,
                details={"stripe_error_code": error_code} if error_code else None,
            ) from e

        logger.info("PaymentIntent created: %s", intent.id)

        return PaymentIntentResult(
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            currency=intent.currency,
        )

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Compute SHA-256 hash of webhook payload for the audit record.

        Args:
            payload: Raw webhook payload bytes.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        return hashlib.sha256(payload).hexdigest()

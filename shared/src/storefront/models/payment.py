"""Payment intent models for checkout."""

from pydantic import BaseModel, ConfigDict, Field


class PaymentIntentCreate(BaseModel):
    """Data required to create a Stripe PaymentIntent.

    The amount is in major currency units (e.g. 25.00) and is converted
    to the smallest unit before it reaches Stripe.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "amount": 2500.0,
                    "currency": "kes",
                    "customer_email": "shopper@example.com",
                    "customer_name": "Wanjiku Kamau",
                }
            ]
        },
    )

    amount: float = Field(..., gt=0, description="Amount in major currency units")
    currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="3-letter currency code; defaults to the store currency",
    )
    customer_email: str | None = Field(default=None, description="Receipt email")
    customer_name: str | None = Field(default=None, description="Customer display name")


class PaymentIntentResult(BaseModel):
    """Details the client needs to confirm the payment."""

    model_config = ConfigDict(strict=True)

    payment_intent_id: str = Field(..., description="Stripe PaymentIntent ID (pi_xxx)")
    client_secret: str | None = Field(
        default=None, description="Secret used by the client to confirm the payment"
    )
    amount: int = Field(..., ge=0, description="Amount in the smallest currency unit")
    currency: str = Field(..., description="Lower-case currency code")

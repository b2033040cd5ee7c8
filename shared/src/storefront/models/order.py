"""Order model for checkout records reconciled against Stripe payments."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import OrderStatus


class OrderItem(BaseModel):
    """A product line captured at checkout."""

    model_config = ConfigDict(strict=True)

    product_id: str = Field(..., min_length=1, description="Catalogue product ID")
    name: str = Field(..., description="Product name at time of purchase")
    quantity: int = Field(..., ge=1, description="Units ordered")
    unit_price: int = Field(
        ..., ge=0, description="Price per unit in the smallest currency unit"
    )


class ShippingAddress(BaseModel):
    """Delivery address captured at checkout."""

    model_config = ConfigDict(strict=True)

    address: str = Field(..., min_length=1, description="Street address")
    city: str = Field(..., min_length=1)
    postal_code: str | None = Field(default=None)
    country: str = Field(..., min_length=1)


class Order(BaseModel):
    """An order created by the checkout flow.

    The payment_reference (Stripe PaymentIntent ID) is the join key used
    by the webhook reconciler. Amounts are in the smallest currency unit.
    """

    model_config = ConfigDict(strict=True)

    order_id: str = Field(..., description="Unique order ID", examples=["ORD-1A2B3C4D5E6F"])
    payment_reference: str = Field(
        ...,
        description="Stripe PaymentIntent ID correlating the order with a payment",
        examples=["pi_3ABC123DEF456"],
    )
    status: OrderStatus = Field(..., description="Order status")
    user_id: str | None = Field(
        default=None, description="Gateway subject of the customer who placed the order"
    )
    customer_email: str | None = Field(default=None, description="Receipt email")
    customer_name: str | None = Field(default=None, description="Customer display name")
    shipping_address: ShippingAddress | None = Field(default=None)
    amount: int = Field(default=0, ge=0, description="Order total in the smallest currency unit")
    currency: str = Field(default="kes", description="ISO currency code (lower case)")
    items: list[OrderItem] = Field(default_factory=list)
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last status mutation timestamp")
    last_payment_event_at: int | None = Field(
        default=None,
        description="Stripe 'created' epoch of the last payment event applied to this order",
    )
    failure_reason: str | None = Field(
        default=None, description="Reason reported by Stripe for the last failed payment"
    )


class OrderCreate(BaseModel):
    """Data the checkout flow submits to create an order."""

    model_config = ConfigDict(
        strict=True,
        json_schema_extra={
            "examples": [
                {
                    "payment_reference": "pi_3ABC123DEF456",
                    "customer_email": "shopper@example.com",
                    "customer_name": "Wanjiku Kamau",
                    "amount": 250000,
                    "currency": "kes",
                    "shipping_address": {
                        "address": "12 Moi Avenue",
                        "city": "Nairobi",
                        "postal_code": "00100",
                        "country": "KE",
                    },
                    "items": [
                        {
                            "product_id": "prod-001",
                            "name": "Leather Satchel",
                            "quantity": 1,
                            "unit_price": 250000,
                        }
                    ],
                }
            ]
        },
    )

    payment_reference: str = Field(..., min_length=1)
    customer_email: str | None = None
    customer_name: str | None = None
    amount: int = Field(..., ge=0)
    currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="3-letter currency code; defaults to the store currency",
    )
    shipping_address: ShippingAddress | None = None
    items: list[OrderItem] = Field(default_factory=list)


class OrderPage(BaseModel):
    """One page of orders for the admin listing."""

    orders: list[Order] = Field(default_factory=list)
    next_token: str | None = Field(
        default=None,
        description="Opaque cursor for the next page; absent on the last page",
    )

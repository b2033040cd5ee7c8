"""API models for order endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from storefront.models.enums import OrderStatus

# PaymentFailed is written only by payment reconciliation
AdminOrderStatus = Literal["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]


class OrderStatusUpdate(BaseModel):
    """Request to change an order's status from the admin panel."""

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"status": "Shipped"}]},
    )

    status: AdminOrderStatus = Field(..., description="New order status")

    def to_order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

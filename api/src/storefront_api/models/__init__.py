"""API-specific request/response models.

Domain models live in storefront.models; these cover request bodies and
response envelopes that only exist at the HTTP layer.
"""

from storefront_api.models.orders import OrderStatusUpdate
from storefront_api.models.webhooks import WebhookResponse

__all__ = ["OrderStatusUpdate", "WebhookResponse"]

"""Backend services for the storefront."""

from .dynamodb import DynamoDBService
from .order_service import OrderService
from .ssm_service import SSMService, SSMServiceError
from .stripe_service import StripeService
from .webhook_handler import PaymentEventReconciler

__all__ = [
    "DynamoDBService",
    "OrderService",
    "PaymentEventReconciler",
    "SSMService",
    "SSMServiceError",
    "StripeService",
]

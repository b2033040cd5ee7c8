"""FastAPI dependency providers for shared services.

Services are built once per process into a ServiceContainer that lives on
``app.state``. Route handlers receive them through Depends, so tests can
hand create_app() a container wired to moto tables or fakes instead of
patching module globals.

Service Dependency Graph:
    Settings
        ├── DynamoDBService
        │       └── OrderService
        │               └── PaymentEventReconciler
        └── StripeService
"""

from dataclasses import dataclass

from fastapi import Depends, Request

from storefront.config import Settings
from storefront.models.errors import ForbiddenError
from storefront.services.dynamodb import DynamoDBService
from storefront.services.order_service import OrderService
from storefront.services.stripe_service import StripeService
from storefront.services.webhook_handler import PaymentEventReconciler

ADMIN_GROUP = "admin"


@dataclass
class ServiceContainer:
    """Process-wide service instances."""

    settings: Settings
    db: DynamoDBService
    orders: OrderService
    stripe: StripeService
    reconciler: PaymentEventReconciler

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceContainer":
        """Wire every service from resolved settings.

        Args:
            settings: Resolved process settings

        Returns:
            ServiceContainer ready for request handling
        """
        db = DynamoDBService(settings.table_prefix)
        orders = OrderService(db, default_currency=settings.default_currency)
        return cls(
            settings=settings,
            db=db,
            orders=orders,
            stripe=StripeService(settings),
            reconciler=PaymentEventReconciler(orders, db),
        )


def get_container(request: Request) -> ServiceContainer:
    """Get the container for this app, building it from the environment on first use."""
    container: ServiceContainer | None = getattr(request.app.state, "container", None)
    if container is None:
        container = ServiceContainer.from_settings(Settings.from_environment())
        request.app.state.container = container
    return container


def get_order_service(container: ServiceContainer = Depends(get_container)) -> OrderService:
    return container.orders


def get_stripe_service(container: ServiceContainer = Depends(get_container)) -> StripeService:
    return container.stripe


def get_reconciler(container: ServiceContainer = Depends(get_container)) -> PaymentEventReconciler:
    return container.reconciler


@dataclass(frozen=True)
class Caller:
    """Identity the gateway authorizer forwarded with the request."""

    sub: str | None
    groups: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return self.sub is not None and ADMIN_GROUP in self.groups


def get_caller(request: Request) -> Caller:
    """Read the caller's subject and groups from the gateway headers.

    Token validation happens at the API gateway authorizer, which forwards
    the caller's subject and groups as headers. Both are absent for
    anonymous requests.
    """
    groups = frozenset(
        g.strip()
        for g in request.headers.get("x-user-groups", "").split(",")
        if g.strip()
    )
    return Caller(sub=request.headers.get("x-user-sub") or None, groups=groups)


def require_admin(caller: Caller = Depends(get_caller)) -> str:
    """Require the caller to be in the admin group.

    Returns:
        The caller's subject

    Raises:
        ForbiddenError: If the caller is not an admin
    """
    if not caller.is_admin:
        raise ForbiddenError(details={"required_group": ADMIN_GROUP})
    return caller.sub

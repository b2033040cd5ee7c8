"""Order endpoints for checkout and the admin panel.

Provides REST endpoints for:
- Creating a Pending order at checkout (public, owned by the gateway caller)
- Listing orders page by page (admin group required)
- Getting an order (admin group or the customer who placed it)
- Updating an order's status (admin group required)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_201_CREATED, HTTP_400_BAD_REQUEST

from storefront.models.errors import ForbiddenError
from storefront.models.order import Order, OrderCreate, OrderPage
from storefront.services.order_service import OrderService
from storefront_api.dependencies import Caller, get_caller, get_order_service, require_admin
from storefront_api.models.orders import OrderStatusUpdate

router = APIRouter(tags=["orders"])


@router.post(
    "/orders",
    summary="Create order",
    description="""
Create an order at checkout with status **Pending**.

`payment_reference` is the PaymentIntent ID returned by
`POST /payments/intents`; webhook events for that intent update the order.
The order belongs to the caller in `x-user-sub`, when the gateway forwards one.
`currency` defaults to the store currency.
""",
    response_model=Order,
    status_code=HTTP_201_CREATED,
    responses={
        201: {"description": "Order created"},
        500: {"description": "Order store failure"},
    },
)
async def create_order(
    request: Request,
    body: OrderCreate,
    order_service: OrderService = Depends(get_order_service),
) -> Order:
    """Create a Pending order."""
    user_id = request.headers.get("x-user-sub") or None
    return await run_in_threadpool(order_service.create_order, body, user_id=user_id)


@router.get(
    "/orders",
    summary="List orders",
    description="""
List orders for the admin panel, one page at a time.

**Requires the admin group.** Pass the `next_token` of a page to fetch the
next one; the last page has no `next_token`. A page may hold fewer than
`limit` orders even when more follow.
""",
    response_model=OrderPage,
    responses={
        200: {"description": "Page of orders"},
        400: {"description": "Invalid next_token"},
        403: {"description": "Caller is not an admin"},
    },
)
async def list_orders(
    limit: int = Query(default=20, ge=1, le=100, description="Maximum orders per page"),
    next_token: str | None = Query(default=None, description="Cursor from the previous page"),
    _admin_sub: str = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
) -> OrderPage:
    """List orders."""
    try:
        return await run_in_threadpool(order_service.list_orders, limit, next_token)
    except ValueError:
        raise HTTPException(
            status_code=HTTP_400_BAD_REQUEST,
            detail="Invalid next_token",
        ) from None


@router.get(
    "/orders/{order_id}",
    summary="Get order",
    description="""
Get an order by ID.

Admins can read any order; other callers only orders placed under their
own `x-user-sub`.
""",
    response_model=Order,
    responses={
        200: {"description": "Order found"},
        403: {"description": "Caller may not read this order"},
        404: {"description": "Order not found"},
    },
)
async def get_order(
    order_id: str,
    caller: Caller = Depends(get_caller),
    order_service: OrderService = Depends(get_order_service),
) -> Order:
    """Get an order by ID."""
    order = await run_in_threadpool(order_service.get_order, order_id)

    if not caller.is_admin and (caller.sub is None or order.user_id != caller.sub):
        raise ForbiddenError(
            "You do not have access to this order",
            details={"order_id": order_id},
        )
    return order


@router.patch(
    "/orders/{order_id}/status",
    summary="Update order status",
    description="""
Set an order's status from the admin panel.

**Requires the admin group** (forwarded by the gateway authorizer in
`x-user-groups`). `PaymentFailed` is reserved to payment reconciliation.
""",
    response_model=Order,
    responses={
        200: {"description": "Status updated"},
        403: {"description": "Caller is not an admin"},
        404: {"description": "Order not found"},
        422: {"description": "Unknown or reserved status"},
    },
)
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    admin_sub: str = Depends(require_admin),
    order_service: OrderService = Depends(get_order_service),
) -> Order:
    """Update an order's status."""
    return await run_in_threadpool(
        order_service.update_status,
        order_id,
        body.to_order_status(),
        source=f"admin:{admin_sub}",
    )

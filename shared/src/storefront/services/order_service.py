"""Order service for checkout orders and their status transitions.

Orders live in the ``orders`` table keyed by ``order_id`` with a
``payment_reference-index`` GSI, which is how webhook events find the
order(s) created for a PaymentIntent.
"""

import base64
import binascii
import datetime as dt
import json
import uuid
from decimal import Decimal
from typing import Any, Iterable

from botocore.exceptions import BotoCoreError, ClientError

from storefront.models.enums import (
    PAYMENT_TARGET_STATUSES,
    PAYMENT_TERMINAL_STATUSES,
    OrderStatus,
)
from storefront.models.errors import OrderNotFoundError, PersistenceError
from storefront.models.order import Order, OrderCreate, OrderItem, OrderPage, ShippingAddress
from storefront.services.dynamodb import DynamoDBService
from storefront.utils.logging import get_logger, log_order_transition

logger = get_logger(__name__)


def _as_int(value: Decimal | int | None) -> int | None:
    # boto3 returns every number as Decimal
    return None if value is None else int(value)


def _client_error_details(e: ClientError) -> dict[str, Any]:
    error = e.response.get("Error", {})
    details: dict[str, Any] = {"aws_error_code": error.get("Code", "Unknown")}
    reasons = e.response.get("CancellationReasons")
    if reasons:
        details["cancellation_reasons"] = [r.get("Code") for r in reasons]
    return details


class OrderService:
    """Service for creating, locating and updating orders."""

    ORDERS_TABLE = "orders"
    PAYMENT_REFERENCE_INDEX = "payment_reference-index"

    def __init__(self, db: DynamoDBService, default_currency: str = "kes") -> None:
        """Initialize order service.

        Args:
            db: DynamoDB service instance
            default_currency: Currency for orders submitted without one
        """
        self.db = db
        self.default_currency = default_currency.lower()

    @staticmethod
    def _generate_order_id() -> str:
        return f"ORD-{uuid.uuid4().hex[:12].upper()}"

    @staticmethod
    def _now() -> dt.datetime:
        return dt.datetime.now(dt.UTC)

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def _order_to_item(self, order: Order) -> dict[str, Any]:
        item: dict[str, Any] = {
            "order_id": order.order_id,
            "payment_reference": order.payment_reference,
            "status": order.status.value,
            "amount": order.amount,
            "currency": order.currency,
            "items": [line.model_dump() for line in order.items],
            "created_at": order.created_at.isoformat(),
            "updated_at": order.updated_at.isoformat(),
        }
        if order.user_id:
            item["user_id"] = order.user_id
        if order.customer_email:
            item["customer_email"] = order.customer_email
        if order.customer_name:
            item["customer_name"] = order.customer_name
        if order.shipping_address:
            item["shipping_address"] = order.shipping_address.model_dump(exclude_none=True)
        if order.last_payment_event_at is not None:
            item["last_payment_event_at"] = order.last_payment_event_at
        if order.failure_reason:
            item["failure_reason"] = order.failure_reason
        return item

    def _item_to_order(self, item: dict[str, Any]) -> Order:
        address = item.get("shipping_address")
        return Order(
            order_id=item["order_id"],
            payment_reference=item["payment_reference"],
            status=OrderStatus(item["status"]),
            user_id=item.get("user_id"),
            customer_email=item.get("customer_email"),
            customer_name=item.get("customer_name"),
            shipping_address=ShippingAddress(**address) if address else None,
            amount=_as_int(item.get("amount")) or 0,
            currency=item.get("currency", self.default_currency),
            items=[
                OrderItem(
                    product_id=line["product_id"],
                    name=line["name"],
                    quantity=_as_int(line["quantity"]) or 0,
                    unit_price=_as_int(line["unit_price"]) or 0,
                )
                for line in item.get("items", [])
            ],
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=dt.datetime.fromisoformat(item["updated_at"]),
            last_payment_event_at=_as_int(item.get("last_payment_event_at")),
            failure_reason=item.get("failure_reason"),
        )

    def _decode_items(self, items: Iterable[dict[str, Any]]) -> list[Order]:
        """Convert stored items to orders, leaving out items that cannot be read.

        A corrupt record is logged at error and skipped so the readable
        orders next to it are still served and reconciled.
        """
        orders: list[Order] = []
        for item in items:
            try:
                orders.append(self._item_to_order(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(
                    "Skipping unreadable order record %s: %s",
                    item.get("order_id", "<no order_id>"),
                    e,
                )
        return orders

    @staticmethod
    def _encode_page_token(last_key: dict[str, Any]) -> str:
        raw = json.dumps({k: str(v) for k, v in last_key.items()}).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii")

    @staticmethod
    def _decode_page_token(token: str) -> dict[str, Any]:
        try:
            key = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise ValueError("Malformed page token") from e
        if not isinstance(key, dict) or not isinstance(key.get("order_id"), str):
            raise ValueError("Malformed page token")
        return {"order_id": key["order_id"]}

    # -------------------------------------------------------------------------
    # Checkout / admin
    # -------------------------------------------------------------------------

    def create_order(self, data: OrderCreate, *, user_id: str | None = None) -> Order:
        """Create a Pending order for a PaymentIntent.

        Args:
            data: Checkout data including the payment reference
            user_id: Gateway subject of the customer placing the order

        Returns:
            The created order

        Raises:
            PersistenceError: If the write fails
        """
        now = self._now()
        order = Order(
            order_id=self._generate_order_id(),
            payment_reference=data.payment_reference,
            status=OrderStatus.PENDING,
            user_id=user_id,
            customer_email=data.customer_email,
            customer_name=data.customer_name,
            shipping_address=data.shipping_address,
            amount=data.amount,
            currency=(data.currency or self.default_currency).lower(),
            items=list(data.items),
            created_at=now,
            updated_at=now,
        )

        try:
            created = self.db.put_item(
                self.ORDERS_TABLE,
                self._order_to_item(order),
                condition_expression="attribute_not_exists(order_id)",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to create order for %s: %s", data.payment_reference, e)
            raise PersistenceError(
                "Failed to create order",
                details={"payment_reference": data.payment_reference},
            ) from e

        if not created:
            raise PersistenceError(
                "Order ID collision, retry the request",
                details={"order_id": order.order_id},
            )

        logger.info(
            "Order %s created for payment %s",
            order.order_id,
            order.payment_reference,
        )
        return order

    def get_order(self, order_id: str) -> Order:
        """Get an order by ID.

        Raises:
            OrderNotFoundError: If no order has this ID
            PersistenceError: If the read fails
        """
        try:
            item = self.db.get_item(self.ORDERS_TABLE, {"order_id": order_id}, consistent_read=True)
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError("Failed to read order", details={"order_id": order_id}) from e

        if not item:
            raise OrderNotFoundError(details={"order_id": order_id})
        try:
            return self._item_to_order(item)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("Stored order %s is unreadable: %s", order_id, e)
            raise PersistenceError(
                "Stored order is unreadable", details={"order_id": order_id}
            ) from e

    def list_orders(self, limit: int = 20, next_token: str | None = None) -> OrderPage:
        """List orders one page at a time.

        Args:
            limit: Maximum number of stored records to read for this page
            next_token: Cursor returned by the previous page

        Returns:
            The page of orders and the cursor for the next one, if any

        Raises:
            ValueError: If next_token was not issued by this service
            PersistenceError: If the read fails
        """
        start_key = self._decode_page_token(next_token) if next_token else None
        try:
            items, last_key = self.db.scan_page(self.ORDERS_TABLE, limit, start_key)
        except (ClientError, BotoCoreError) as e:
            raise PersistenceError("Failed to list orders") from e

        return OrderPage(
            orders=self._decode_items(items),
            next_token=self._encode_page_token(last_key) if last_key else None,
        )

    def update_status(self, order_id: str, status: OrderStatus, *, source: str = "admin") -> Order:
        """Set an order's status from an administrative workflow.

        PaymentFailed is reserved to payment reconciliation and rejected here.

        Args:
            order_id: Order to update
            status: New status
            source: Who drove the change, for logs

        Returns:
            The updated order

        Raises:
            ValueError: If status is PaymentFailed
            OrderNotFoundError: If the order does not exist
            PersistenceError: If the write fails
        """
        if status == OrderStatus.PAYMENT_FAILED:
            raise ValueError("PaymentFailed is set only by payment reconciliation")

        current = self.get_order(order_id)
        now = self._now()

        try:
            attrs = self.db.update_item(
                self.ORDERS_TABLE,
                {"order_id": order_id},
                "SET #status = :status, updated_at = :now",
                {":status": status.value, ":now": now.isoformat()},
                {"#status": "status"},  # status is reserved word
                condition_expression="attribute_exists(order_id)",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to update order %s: %s", order_id, e)
            raise PersistenceError("Failed to update order", details={"order_id": order_id}) from e

        if attrs is None:
            raise OrderNotFoundError(details={"order_id": order_id})

        log_order_transition(logger, order_id, current.status.value, status.value, source=source)
        return self._item_to_order(attrs)

    # -------------------------------------------------------------------------
    # Payment reconciliation
    # -------------------------------------------------------------------------

    def find_by_payment_reference(self, payment_reference: str) -> list[Order]:
        """Find every order created for a PaymentIntent.

        An empty list is a normal outcome (checkout has not written the order
        yet, or never did).

        Args:
            payment_reference: Stripe PaymentIntent ID

        Returns:
            Matching orders, oldest first

        Raises:
            PersistenceError: If the query fails
        """
        try:
            items = self.db.query_by_gsi(
                self.ORDERS_TABLE,
                self.PAYMENT_REFERENCE_INDEX,
                "payment_reference",
                payment_reference,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Order lookup failed for payment %s: %s", payment_reference, e)
            raise PersistenceError(
                "Failed to query orders",
                details={"payment_reference": payment_reference},
            ) from e

        orders = self._decode_items(items)
        orders.sort(key=lambda o: (o.created_at, o.order_id))
        return orders

    def apply_payment_status(
        self,
        orders: Iterable[Order],
        target: OrderStatus,
        *,
        event_created: int | None = None,
        failure_reason: str | None = None,
        source: str = "webhook",
    ) -> tuple[list[Order], list[Order]]:
        """Move orders to a payment outcome status in one atomic batch.

        Orders in a fulfilment status (Shipped, Delivered, Cancelled) are left
        alone, as are orders that already applied a payment event newer than
        ``event_created``. Every remaining order is written in a single
        transaction; each write is conditioned on the status that was read,
        so a concurrent change cancels the whole batch instead of being
        overwritten.

        Args:
            orders: Orders located for the payment reference
            target: Processing or PaymentFailed
            event_created: Stripe event creation time (epoch seconds)
            failure_reason: Reason stored with PaymentFailed
            source: What drove the change, for logs

        Returns:
            Tuple of (written orders, skipped orders)

        Raises:
            ValueError: If target is not a payment outcome status
            PersistenceError: If the batch is rejected or the call fails; no
                order is modified in that case
        """
        if target not in PAYMENT_TARGET_STATUSES:
            raise ValueError(f"{target.value} is not a payment outcome status")

        to_write: list[Order] = []
        skipped: list[Order] = []
        for order in orders:
            if order.status in PAYMENT_TERMINAL_STATUSES:
                logger.warning(
                    "Order %s is %s; not applying %s from %s",
                    order.order_id,
                    order.status.value,
                    target.value,
                    source,
                )
                skipped.append(order)
            elif (
                event_created is not None
                and order.last_payment_event_at is not None
                and event_created < order.last_payment_event_at
            ):
                logger.warning(
                    "Order %s already applied a newer payment event (%d > %d); skipping %s",
                    order.order_id,
                    order.last_payment_event_at,
                    event_created,
                    source,
                )
                skipped.append(order)
            else:
                to_write.append(order)

        if not to_write:
            return [], skipped

        now = self._now()
        updates = [
            self._payment_update(order, target, now, event_created, failure_reason)
            for order in to_write
        ]

        try:
            self.db.transact_update(self.ORDERS_TABLE, updates)
        except ClientError as e:
            details = _client_error_details(e)
            details["order_ids"] = [o.order_id for o in to_write]
            logger.error(
                "Batch status update to %s failed for %d order(s): %s",
                target.value,
                len(to_write),
                e,
            )
            raise PersistenceError("Failed to commit order status batch", details=details) from e
        except (BotoCoreError, ValueError) as e:
            logger.error("Batch status update to %s failed: %s", target.value, e)
            raise PersistenceError(
                "Failed to commit order status batch",
                details={"order_ids": [o.order_id for o in to_write]},
            ) from e

        written: list[Order] = []
        for order in to_write:
            log_order_transition(logger, order.order_id, order.status.value, target.value, source=source)
            changes: dict[str, Any] = {"status": target, "updated_at": now}
            if event_created is not None:
                changes["last_payment_event_at"] = event_created
            changes["failure_reason"] = (
                failure_reason if target == OrderStatus.PAYMENT_FAILED else None
            )
            written.append(order.model_copy(update=changes))

        return written, skipped

    def _payment_update(
        self,
        order: Order,
        target: OrderStatus,
        now: dt.datetime,
        event_created: int | None,
        failure_reason: str | None,
    ) -> dict[str, Any]:
        set_clauses = ["#status = :status", "updated_at = :now"]
        values: dict[str, Any] = {
            ":status": target.value,
            ":now": now.isoformat(),
            ":expected": order.status.value,
        }
        conditions = ["#status = :expected"]
        remove_clause = ""

        if event_created is not None:
            set_clauses.append("last_payment_event_at = :event_created")
            values[":event_created"] = event_created
            conditions.append(
                "(attribute_not_exists(last_payment_event_at)"
                " OR last_payment_event_at <= :event_created)"
            )

        if target == OrderStatus.PAYMENT_FAILED and failure_reason:
            set_clauses.append("failure_reason = :failure_reason")
            values[":failure_reason"] = failure_reason
        else:
            # a newer outcome without a reason clears the previous one
            remove_clause = " REMOVE failure_reason"

        return {
            "key": {"order_id": order.order_id},
            "update_expression": "SET " + ", ".join(set_clauses) + remove_clause,
            "expression_attribute_values": values,
            "expression_attribute_names": {"#status": "status"},
            "condition_expression": " AND ".join(conditions),
        }

"""DynamoDB service wrapper for table operations with environment-aware names."""

from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

# DynamoDB rejects transactions with more than this many items
MAX_TRANSACTION_ITEMS = 100


class DynamoDBService:
    """Service for DynamoDB operations with prefixed table names."""

    def __init__(self, table_prefix: str, *, resource=None, client=None) -> None:
        """Initialize DynamoDB service.

        Args:
            table_prefix: Prefix joined to every table name (e.g. "storefront-dev")
            resource: Optional pre-built boto3 DynamoDB resource
            client: Optional pre-built boto3 DynamoDB client
        """
        self.name_prefix = table_prefix
        self._dynamodb = resource or boto3.resource("dynamodb")
        self._client = client or boto3.client("dynamodb")
        self._serializer = TypeSerializer()

    def _table_name(self, table: str) -> str:
        """Get full table name with prefix."""
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        """Get DynamoDB table resource."""
        return self._dynamodb.Table(self._table_name(table))

    def _serialize(self, values: dict[str, Any]) -> dict[str, Any]:
        return {k: self._serializer.serialize(v) for k, v in values.items()}

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
        consistent_read: bool = False,
    ) -> dict[str, Any] | None:
        """Get a single item by key.

        Args:
            table: Table name without prefix
            key: Primary key dict
            consistent_read: Use a strongly consistent read

        Returns:
            Item dict or None if not found
        """
        response = self._get_table(table).get_item(Key=key, ConsistentRead=consistent_read)
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Put an item into the table.

        Args:
            table: Table name without prefix
            item: Item to store
            condition_expression: Optional condition for write

        Returns:
            True if successful, False if condition failed
        """
        try:
            kwargs: dict[str, Any] = {"Item": item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            self._get_table(table).put_item(**kwargs)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Update an item with expressions.

        Args:
            table: Table name without prefix
            key: Primary key dict
            update_expression: DynamoDB update expression
            expression_attribute_values: Values for expression
            expression_attribute_names: Names for expression (for reserved words)
            condition_expression: Optional condition for update

        Returns:
            Updated attributes or None if condition failed
        """
        try:
            kwargs: dict[str, Any] = {
                "Key": key,
                "UpdateExpression": update_expression,
                "ExpressionAttributeValues": expression_attribute_values,
                "ReturnValues": "ALL_NEW",
            }
            if expression_attribute_names:
                kwargs["ExpressionAttributeNames"] = expression_attribute_names
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            response = self._get_table(table).update_item(**kwargs)
            attrs: dict[str, Any] | None = response.get("Attributes")
            return attrs
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise

    def query(
        self,
        table: str,
        key_condition: Any,
        index_name: str | None = None,
    ) -> list[dict[str, Any]]:
        """Query table or GSI, following pagination to the last page.

        Args:
            table: Table name without prefix
            key_condition: Boto3 Key condition
            index_name: GSI name (optional)

        Returns:
            List of items
        """
        kwargs: dict[str, Any] = {"KeyConditionExpression": key_condition}
        if index_name:
            kwargs["IndexName"] = index_name

        dynamo_table = self._get_table(table)
        items: list[dict[str, Any]] = []
        while True:
            response = dynamo_table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
    ) -> list[dict[str, Any]]:
        """Query a GSI by partition key.

        Args:
            table: Table name without prefix
            index_name: GSI name
            partition_key_name: Name of partition key attribute
            partition_key_value: Value to query

        Returns:
            List of items
        """
        key_condition = Key(partition_key_name).eq(partition_key_value)
        return self.query(table, key_condition, index_name=index_name)

    def scan_page(
        self,
        table: str,
        limit: int,
        exclusive_start_key: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
        """Read one page of a table scan.

        Args:
            table: Table name without prefix
            limit: Maximum items DynamoDB evaluates for this page
            exclusive_start_key: LastEvaluatedKey of the previous page

        Returns:
            Tuple of (items, LastEvaluatedKey or None on the last page)
        """
        kwargs: dict[str, Any] = {"Limit": limit}
        if exclusive_start_key:
            kwargs["ExclusiveStartKey"] = exclusive_start_key

        response = self._get_table(table).scan(**kwargs)
        return response.get("Items", []), response.get("LastEvaluatedKey")

    def transact_update(
        self,
        table: str,
        updates: list[dict[str, Any]],
    ) -> None:
        """Apply several item updates as one all-or-nothing transaction.

        Each update dict holds ``key``, ``update_expression``,
        ``expression_attribute_values`` and optionally
        ``expression_attribute_names`` and ``condition_expression``, all in
        the same plain-Python form update_item takes.

        Args:
            table: Table name without prefix
            updates: Updates to apply together

        Raises:
            ValueError: If the batch exceeds the DynamoDB transaction limit
            ClientError: If the transaction is cancelled or the call fails;
                no update is applied in that case
        """
        if not updates:
            return
        if len(updates) > MAX_TRANSACTION_ITEMS:
            raise ValueError(
                f"Transaction of {len(updates)} items exceeds limit of {MAX_TRANSACTION_ITEMS}"
            )

        table_name = self._table_name(table)
        transact_items: list[dict[str, Any]] = []
        for update in updates:
            entry: dict[str, Any] = {
                "TableName": table_name,
                "Key": self._serialize(update["key"]),
                "UpdateExpression": update["update_expression"],
                "ExpressionAttributeValues": self._serialize(
                    update["expression_attribute_values"]
                ),
            }
            if update.get("expression_attribute_names"):
                entry["ExpressionAttributeNames"] = update["expression_attribute_names"]
            if update.get("condition_expression"):
                entry["ConditionExpression"] = update["condition_expression"]
            transact_items.append({"Update": entry})

        self._client.transact_write_items(TransactItems=transact_items)

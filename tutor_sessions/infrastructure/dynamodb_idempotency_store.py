"""DynamoDB implementation of the Idempotency Store."""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import aioboto3
from botocore.exceptions import ClientError

from ..domain.entities.idempotency_record import IdempotencyRecord
from ..domain.errors import IdempotencyConflictError, StoreError
from ..domain.interfaces.idempotency_store import IdempotencyStore

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DynamoDBIdempotencyStore(IdempotencyStore):
    """DynamoDB store for idempotency records (hash key ``key``).

    ``expires_at_epoch`` doubles as the table's TTL attribute, so DynamoDB
    removes expired records on its own. Until it does, the conditional put
    treats them as free.
    """

    def __init__(self, table_name: str, region_name: str = "us-east-1"):
        """Initialize the DynamoDB idempotency store.

        Args:
            table_name: The name of the DynamoDB table.
            region_name: AWS region name (default: us-east-1).
        """
        self.table_name = table_name
        self.region_name = region_name
        self._session = aioboto3.Session()

    async def get_record(self, key: str) -> Optional[IdempotencyRecord]:
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                response = await table.get_item(Key={"key": key}, ConsistentRead=True)
            except ClientError as e:
                raise StoreError(f"Failed to read idempotency record {key}: {e}") from e

        item = response.get("Item")
        return self._item_to_record(item) if item else None

    async def create_record(self, record: IdempotencyRecord) -> None:
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                await table.put_item(
                    Item=self._record_to_item(record),
                    ConditionExpression="attribute_not_exists(#key) OR #expires_at_epoch <= :now_epoch",
                    ExpressionAttributeNames={"#key": "key", "#expires_at_epoch": "expires_at_epoch"},
                    ExpressionAttributeValues={":now_epoch": int(record.created_at.timestamp())},
                )
            except ClientError as e:
                if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                    raise IdempotencyConflictError(record.key) from e
                raise StoreError(f"Failed to create idempotency record {record.key}: {e}") from e

    async def complete_record(self, key: str, response: dict[str, Any]) -> None:
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                await table.update_item(
                    Key={"key": key},
                    UpdateExpression="SET #response_json = :response_json",
                    ConditionExpression="attribute_exists(#key)",
                    ExpressionAttributeNames={"#key": "key", "#response_json": "response_json"},
                    ExpressionAttributeValues={":response_json": json.dumps(response)},
                )
            except ClientError as e:
                raise StoreError(f"Failed to complete idempotency record {key}: {e}") from e

    async def delete_record(self, key: str) -> None:
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                await table.delete_item(Key={"key": key})
            except ClientError as e:
                raise StoreError(f"Failed to delete idempotency record {key}: {e}") from e
        logger.debug(f"Released idempotency key {key}")

    def _record_to_item(self, record: IdempotencyRecord) -> Dict[str, Any]:
        """Convert a record to a DynamoDB item.

        The response is kept as a JSON string so numbers round-trip without Decimal.
        """
        item = {
            "key": record.key,
            "operation": record.operation,
            "request_hash": record.request_hash,
            "created_at": record.created_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
            "expires_at_epoch": int(record.expires_at.timestamp()),
        }
        if record.user_id is not None:
            item["user_id"] = record.user_id
        if record.response is not None:
            item["response_json"] = json.dumps(record.response)
        return item

    def _item_to_record(self, item: Dict[str, Any]) -> IdempotencyRecord:
        """Convert a DynamoDB item to a record."""
        response_json = item.get("response_json")
        return IdempotencyRecord(
            key=item["key"],
            operation=item["operation"],
            user_id=item.get("user_id"),
            request_hash=item["request_hash"],
            response=json.loads(response_json) if response_json else None,
            created_at=datetime.fromisoformat(item["created_at"]),
            expires_at=datetime.fromisoformat(item["expires_at"]),
        )


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")

"""DynamoDB implementation of LifecycleAuditLog."""

from datetime import datetime
from typing import Any, Dict

import aioboto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from ..domain.entities.lifecycle_event import ActorRole, SessionLifecycleEvent
from ..domain.entities.tutoring_session import SessionStatus
from ..domain.errors import StoreError
from ..domain.interfaces.lifecycle_audit_log import LifecycleAuditLog


class DynamoDBLifecycleAuditLog(LifecycleAuditLog):
    """Stores lifecycle events in a table keyed by session_id (hash) and event_key (range)."""

    def __init__(self, table_name: str, region_name: str = "us-east-1"):
        """Initialize the DynamoDB audit log.

        Args:
            table_name: The name of the DynamoDB table.
            region_name: AWS region name (default: us-east-1).
        """
        self.table_name = table_name
        self.region_name = region_name
        self._session = aioboto3.Session()

    async def record(self, event: SessionLifecycleEvent) -> None:
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                await table.put_item(Item=self._event_to_item(event))
            except ClientError as e:
                raise StoreError(f"Failed to record lifecycle event {event.id}: {e}") from e

    async def list_events(self, session_id: str) -> list[SessionLifecycleEvent]:
        query_kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key("session_id").eq(session_id),
            "ScanIndexForward": True,
        }
        events: list[SessionLifecycleEvent] = []
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            while True:
                try:
                    response = await table.query(**query_kwargs)
                except ClientError as e:
                    raise StoreError(f"Failed to list lifecycle events for {session_id}: {e}") from e

                events.extend(self._item_to_event(item) for item in response.get("Items", []))

                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query_kwargs["ExclusiveStartKey"] = last_key
        return events

    def _event_to_item(self, event: SessionLifecycleEvent) -> Dict[str, Any]:
        """Convert a lifecycle event to a DynamoDB item."""
        item = {
            "session_id": event.session_id,
            "event_key": f"{event.occurred_at.isoformat()}#{event.id}",
            "id": str(event.id),
            "new_status": event.new_status.value,
            "triggered_by": event.triggered_by.value,
            "occurred_at": event.occurred_at.isoformat(),
        }
        optional = {
            "student_id": event.student_id,
            "tutor_id": event.tutor_id,
            "old_status": event.old_status.value if event.old_status else None,
            "actor_id": event.actor_id,
            "reason": event.reason,
        }
        item.update({key: value for key, value in optional.items() if value is not None})
        return item

    def _item_to_event(self, item: Dict[str, Any]) -> SessionLifecycleEvent:
        """Convert a DynamoDB item to a lifecycle event."""
        old_status = item.get("old_status")
        return SessionLifecycleEvent(
            id=item["id"],
            session_id=item["session_id"],
            student_id=item.get("student_id"),
            tutor_id=item.get("tutor_id"),
            old_status=SessionStatus(old_status) if old_status else None,
            new_status=SessionStatus(item["new_status"]),
            triggered_by=ActorRole(item["triggered_by"]),
            actor_id=item.get("actor_id"),
            reason=item.get("reason"),
            occurred_at=datetime.fromisoformat(item["occurred_at"]),
        )

"""DynamoDB implementation of the Session Store."""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import aioboto3
from boto3.dynamodb.conditions import Attr
from boto3.dynamodb.types import TypeDeserializer
from botocore.exceptions import ClientError

from ..domain.entities.tutoring_session import SessionStatus, TutoringSession
from ..domain.errors import ConflictError, NotFoundError, StoreError
from ..domain.interfaces.session_store import SessionStore

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"

_OPTIONAL_TIMESTAMPS = ("started_at", "ended_at")


class DynamoDBSessionStore(SessionStore):
    """DynamoDB store for session rows.

    Conditional updates are expressed as a ConditionExpression on the stored
    status, so compare-and-swap is enforced by DynamoDB itself.
    """

    def __init__(self, table_name: str, region_name: str = "us-east-1"):
        """Initialize the DynamoDB session store.

        Args:
            table_name: The name of the DynamoDB table (hash key ``id``).
            region_name: AWS region name (default: us-east-1).
        """
        self.table_name = table_name
        self.region_name = region_name
        self._session = aioboto3.Session()

    async def read_session(self, session_id: str) -> TutoringSession:
        """Retrieve a session by ID with a strongly consistent read.

        Raises:
            NotFoundError: If the session is not found.
            StoreError: If DynamoDB rejects the request.
        """
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                response = await table.get_item(Key={"id": str(session_id)}, ConsistentRead=True)
            except ClientError as e:
                raise StoreError(f"Failed to read session {session_id}: {e}") from e

            if "Item" not in response:
                raise NotFoundError(session_id)

            return self._item_to_session(response["Item"])

    async def create_session(self, session: TutoringSession) -> TutoringSession:
        """Put a new session item, refusing to overwrite an existing id.

        Raises:
            ConflictError: If a session with the same id already exists.
            StoreError: If DynamoDB rejects the request.
        """
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                await table.put_item(
                    Item=self._session_to_item(session),
                    ConditionExpression="attribute_not_exists(#id)",
                    ExpressionAttributeNames={"#id": "id"},
                )
            except ClientError as e:
                if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                    raise ConflictError(
                        session.session_id,
                        message=f"Session with id {session.session_id} already exists",
                    ) from e
                raise StoreError(f"Failed to create session {session.session_id}: {e}") from e
        return session

    async def conditional_update_session(
        self,
        session_id: str,
        expected_status: SessionStatus,
        fields: Mapping[str, Any],
    ) -> TutoringSession:
        """Update fields if the stored status equals expected_status.

        Raises:
            NotFoundError: If the session is not found.
            ConflictError: If the stored status differs from expected_status.
            StoreError: If DynamoDB rejects the request for another reason.
        """
        update_expression, names, values = self._build_update(fields)
        names["#id"] = "id"
        names["#status"] = "status"
        values[":expected_status"] = expected_status.value

        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            try:
                response = await table.update_item(
                    Key={"id": str(session_id)},
                    UpdateExpression=update_expression,
                    ConditionExpression="attribute_exists(#id) AND #status = :expected_status",
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                    ReturnValues="ALL_NEW",
                    ReturnValuesOnConditionCheckFailure="ALL_OLD",
                )
            except ClientError as e:
                if _error_code(e) != CONDITIONAL_CHECK_FAILED:
                    raise StoreError(f"Failed to update session {session_id}: {e}") from e

                old_item = e.response.get("Item")
                if not old_item:
                    raise NotFoundError(session_id) from e
                raise ConflictError(session_id, expected_status, _stored_status(old_item)) from e

            return self._item_to_session(response["Attributes"])

    async def list_sessions(self, status: Optional[SessionStatus] = None) -> list[TutoringSession]:
        """Scan the table, following pagination, optionally filtering by status."""
        scan_kwargs: Dict[str, Any] = {}
        if status is not None:
            scan_kwargs["FilterExpression"] = Attr("status").eq(status.value)

        sessions: list[TutoringSession] = []
        async with self._session.resource("dynamodb", region_name=self.region_name) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            while True:
                try:
                    response = await table.scan(**scan_kwargs)
                except ClientError as e:
                    raise StoreError(f"Failed to list sessions: {e}") from e

                sessions.extend(self._item_to_session(item) for item in response.get("Items", []))

                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key

        logger.debug(f"Listed {len(sessions)} sessions from {self.table_name}")
        return sessions

    def _build_update(self, fields: Mapping[str, Any]) -> tuple[str, Dict[str, str], Dict[str, Any]]:
        """Build a SET/REMOVE update expression for the given fields."""
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        set_clauses = []
        remove_clauses = []

        for index, (name, value) in enumerate(fields.items()):
            placeholder = f"#f{index}"
            names[placeholder] = name
            if value is None:
                remove_clauses.append(placeholder)
            else:
                values[f":v{index}"] = _to_attribute(value)
                set_clauses.append(f"{placeholder} = :v{index}")

        parts = []
        if set_clauses:
            parts.append("SET " + ", ".join(set_clauses))
        if remove_clauses:
            parts.append("REMOVE " + ", ".join(remove_clauses))
        return " ".join(parts), names, values

    def _session_to_item(self, session: TutoringSession) -> Dict[str, Any]:
        """Convert a session entity to a DynamoDB item.

        Unset optional attributes are left out of the item.
        """
        item = {
            "id": session.session_id,
            "status": session.status.value,
            "scheduled_at": session.scheduled_at.isoformat(),
            "created_at": session.created_at.isoformat(),
            "updated_at": session.updated_at.isoformat(),
        }
        if session.tutor_id is not None:
            item["tutor_id"] = session.tutor_id
        if session.student_id is not None:
            item["student_id"] = session.student_id
        for name in _OPTIONAL_TIMESTAMPS:
            value = getattr(session, name)
            if value is not None:
                item[name] = value.isoformat()
        return item

    def _item_to_session(self, item: Dict[str, Any]) -> TutoringSession:
        """Convert a DynamoDB item to a session entity."""
        return TutoringSession(
            id=item["id"],
            status=SessionStatus(item["status"]),
            scheduled_at=datetime.fromisoformat(item["scheduled_at"]),
            started_at=_parse_optional(item.get("started_at")),
            ended_at=_parse_optional(item.get("ended_at")),
            tutor_id=item.get("tutor_id"),
            student_id=item.get("student_id"),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _to_attribute(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_optional(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _stored_status(item: Dict[str, Any]) -> Optional[SessionStatus]:
    # Items attached to a failed condition check come back in wire format.
    raw = item.get("status")
    if isinstance(raw, dict):
        raw = TypeDeserializer().deserialize(raw)
    return SessionStatus(raw) if raw else None

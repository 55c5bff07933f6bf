"""
Module: dynamodb.py
Description: DynamoDB store for participant records.

Provides async operations for storing, retrieving, updating and deleting
participants in DynamoDB with structured logging. boto3 is blocking, so
every table call is dispatched to the worker thread pool.

Key Components:
- ParticipantStore: Persistence collaborator used by the handlers
- create_participants_table(): Table + index definition (scripts, tests)
- Amenities serialization: stored as JSON strings to preserve types

Dependencies: boto3, botocore, fastapi.concurrency, json, uuid
Author: Participants API Team
"""

import json
from typing import Any, Dict, List, Optional
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from fastapi.concurrency import run_in_threadpool

from participants_api.models.participant import Participant
from participants_api.utils.logger import get_logger

logger = get_logger(__name__)

PARTICIPANT_ID_INDEX = "ParticipantIdIndex"
EVENT_INDEX = "EventIndex"

# TransactWriteItems accepts at most 100 actions per call
MAX_TRANSACTION_ITEMS = 100


def create_participants_table(dynamodb: Any, table_name: str) -> Any:
    """
    Create the participants table with its secondary indexes.

    Args:
        dynamodb: boto3 DynamoDB service resource
        table_name: Name of the table to create

    Returns:
        boto3 Table resource
    """
    return dynamodb.create_table(
        TableName=table_name,
        KeySchema=[
            {'AttributeName': 'id', 'KeyType': 'HASH'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'id', 'AttributeType': 'S'},
            {'AttributeName': 'participantId', 'AttributeType': 'S'},
            {'AttributeName': 'eventId', 'AttributeType': 'S'}
        ],
        GlobalSecondaryIndexes=[
            {
                'IndexName': PARTICIPANT_ID_INDEX,
                'KeySchema': [{'AttributeName': 'participantId', 'KeyType': 'HASH'}],
                'Projection': {'ProjectionType': 'KEYS_ONLY'}
            },
            {
                'IndexName': EVENT_INDEX,
                'KeySchema': [{'AttributeName': 'eventId', 'KeyType': 'HASH'}],
                'Projection': {'ProjectionType': 'ALL'}
            }
        ],
        BillingMode='PAY_PER_REQUEST'
    )


class ParticipantStore:
    """
    DynamoDB store for participant operations.

    Attributes:
        table_name: Name of the DynamoDB participants table
        dynamodb: boto3 DynamoDB resource
        table: boto3 DynamoDB table resource

    Example:
        >>> store = ParticipantStore(table_name="participants")
        >>> created = await store.insert_one({"participant_id": "aB3xZ", "event_id": "E1"})
        >>> fetched = await store.find_by_id(created.id)
    """

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize the store.

        Args:
            table_name: Name of the DynamoDB participants table
            region_name: Optional AWS region (defaults to the environment)

        Raises:
            ValueError: If table_name is empty or invalid
        """
        if not table_name or not isinstance(table_name, str):
            raise ValueError("table_name must be a non-empty string")

        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)

        logger.debug("Participant store initialized", table_name=table_name)

    @staticmethod
    def _to_item(participant: Participant) -> Dict[str, Any]:
        """Convert a Participant to a DynamoDB item."""
        item = participant.to_item()

        # Serialize amenities as a JSON string so numbers and nested values survive
        item['amenities'] = json.dumps(item.get('amenities') or {})

        # DynamoDB rejects None values, so absent attributes are omitted
        return {k: v for k, v in item.items() if v is not None}

    @staticmethod
    def _from_item(item: Dict[str, Any]) -> Participant:
        """Convert a DynamoDB item back to a Participant."""
        item = dict(item)
        if isinstance(item.get('amenities'), str):
            item['amenities'] = json.loads(item['amenities'])
        return Participant.model_validate(item)

    def _log_client_error(self, message: str, error: ClientError, **context: Any) -> None:
        logger.error(
            message,
            table_name=self.table_name,
            error_code=error.response['Error']['Code'],
            error_message=error.response['Error']['Message'],
            **context
        )

    async def _collect(self, operation: Any, **kwargs: Any) -> List[Dict[str, Any]]:
        """Run a scan or query, following LastEvaluatedKey until exhausted."""
        items: List[Dict[str, Any]] = []
        while True:
            response = await run_in_threadpool(operation, **kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs['ExclusiveStartKey'] = last_key

    async def find_all(self) -> List[Participant]:
        """
        Return every participant, archived ones included.

        Raises:
            ClientError: If DynamoDB operation fails
        """
        try:
            items = await self._collect(self.table.scan)
        except ClientError as e:
            self._log_client_error("Failed to list participants", e)
            raise

        participants = [self._from_item(item) for item in items]
        logger.info("Participants listed", count=len(participants), table_name=self.table_name)
        return participants

    async def find_by_event(self, event_id: str) -> List[Participant]:
        """
        Return the non-archived participants of an event.

        Args:
            event_id: Owning event identifier

        Raises:
            ClientError: If DynamoDB operation fails
            ValueError: If event_id is invalid
        """
        if not event_id or not isinstance(event_id, str):
            raise ValueError("event_id must be a non-empty string")

        try:
            items = await self._collect(
                self.table.query,
                IndexName=EVENT_INDEX,
                KeyConditionExpression=Key('eventId').eq(event_id),
                FilterExpression=Attr('archive').eq(False)
            )
        except ClientError as e:
            self._log_client_error("Failed to list participants by event", e, event_id=event_id)
            raise

        participants = [self._from_item(item) for item in items]
        logger.info(
            "Event participants listed",
            event_id=event_id,
            count=len(participants),
            table_name=self.table_name
        )
        return participants

    async def find_by_id(self, id: str) -> Optional[Participant]:
        """
        Retrieve a participant by internal ID.

        Returns:
            Participant if found, None otherwise

        Raises:
            ClientError: If DynamoDB operation fails
            ValueError: If id is invalid
        """
        if not id or not isinstance(id, str):
            raise ValueError("id must be a non-empty string")

        try:
            response = await run_in_threadpool(self.table.get_item, Key={'id': id})
        except ClientError as e:
            self._log_client_error("Failed to retrieve participant", e, id=id)
            raise

        if 'Item' not in response:
            logger.warning("Participant not found", id=id, table_name=self.table_name)
            return None

        return self._from_item(response['Item'])

    async def participant_id_exists(self, participant_id: str) -> bool:
        """Answer whether a participantId is already in use."""
        try:
            response = await run_in_threadpool(
                self.table.query,
                IndexName=PARTICIPANT_ID_INDEX,
                KeyConditionExpression=Key('participantId').eq(participant_id),
                Limit=1
            )
        except ClientError as e:
            self._log_client_error(
                "Failed to check participantId", e, participant_id=participant_id
            )
            raise

        return bool(response.get('Items'))

    def _new_participant(self, fields: Dict[str, Any]) -> Participant:
        """Assign an internal ID to the given fields and validate them."""
        return Participant.model_validate({**fields, 'id': uuid4().hex})

    async def insert_one(self, fields: Dict[str, Any]) -> Participant:
        """
        Insert a new participant.

        Args:
            fields: Participant fields (snake_case or camelCase), without id

        Returns:
            Stored participant including its assigned internal ID

        Raises:
            ClientError: If DynamoDB operation fails
            pydantic.ValidationError: If the fields do not form a valid participant
        """
        participant = self._new_participant(fields)

        try:
            await run_in_threadpool(
                self.table.put_item,
                Item=self._to_item(participant),
                ConditionExpression='attribute_not_exists(id)'
            )
        except ClientError as e:
            self._log_client_error("Failed to store participant", e, id=participant.id)
            raise

        logger.info(
            "Participant stored",
            id=participant.id,
            participant_id=participant.participant_id,
            event_id=participant.event_id,
            table_name=self.table_name
        )
        return participant

    async def insert_many(self, records: List[Dict[str, Any]]) -> List[Participant]:
        """
        Insert several participants in one all-or-nothing transaction.

        Args:
            records: Field mappings, one per participant, without id

        Returns:
            Stored participants in input order

        Raises:
            ClientError: If the transaction fails (nothing is written)
            ValueError: If more than MAX_TRANSACTION_ITEMS records are given
        """
        if not isinstance(records, list):
            raise ValueError("records must be a list")
        if len(records) > MAX_TRANSACTION_ITEMS:
            raise ValueError(f"batch size cannot exceed {MAX_TRANSACTION_ITEMS} items")
        if not records:
            return []

        participants = [self._new_participant(fields) for fields in records]
        transact_items = [
            {
                'Put': {
                    'TableName': self.table_name,
                    'Item': self._to_item(participant),
                    'ConditionExpression': 'attribute_not_exists(id)'
                }
            }
            for participant in participants
        ]

        try:
            # The resource's client serializes native Python types like the Table API
            await run_in_threadpool(
                self.dynamodb.meta.client.transact_write_items,
                TransactItems=transact_items
            )
        except ClientError as e:
            self._log_client_error("Failed to store participant batch", e, count=len(participants))
            raise

        logger.info(
            "Participant batch stored",
            count=len(participants),
            table_name=self.table_name
        )
        return participants

    async def update_by_id(self, id: str, updates: Dict[str, Any]) -> Optional[Participant]:
        """
        Set attributes on an existing participant.

        Attributes whose new value is None are removed. An empty update
        returns the current record unchanged.

        Args:
            id: Internal participant ID
            updates: New values keyed by wire (camelCase) attribute name

        Returns:
            Updated participant, or None if no participant has this ID

        Raises:
            ClientError: If DynamoDB operation fails
            ValueError: If id is invalid or an update targets the key
        """
        if not id or not isinstance(id, str):
            raise ValueError("id must be a non-empty string")
        if 'id' in updates:
            raise ValueError("id cannot be updated")
        if not updates:
            return await self.find_by_id(id)

        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        set_clauses: List[str] = []
        remove_clauses: List[str] = []

        for index, (field, value) in enumerate(updates.items()):
            name_ref = f"#f{index}"
            names[name_ref] = field
            if value is None:
                remove_clauses.append(name_ref)
                continue
            if field == 'amenities':
                value = json.dumps(value)
            value_ref = f":v{index}"
            values[value_ref] = value
            set_clauses.append(f"{name_ref} = {value_ref}")

        expression = []
        if set_clauses:
            expression.append("SET " + ", ".join(set_clauses))
        if remove_clauses:
            expression.append("REMOVE " + ", ".join(remove_clauses))

        kwargs: Dict[str, Any] = {
            'Key': {'id': id},
            'UpdateExpression': " ".join(expression),
            'ConditionExpression': 'attribute_exists(id)',
            'ExpressionAttributeNames': names,
            'ReturnValues': 'ALL_NEW'
        }
        if values:
            kwargs['ExpressionAttributeValues'] = values

        try:
            response = await run_in_threadpool(self.table.update_item, **kwargs)
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning("Participant not found for update", id=id, table_name=self.table_name)
                return None
            self._log_client_error("Failed to update participant", e, id=id)
            raise

        logger.info(
            "Participant updated",
            id=id,
            fields=sorted(updates),
            table_name=self.table_name
        )
        return self._from_item(response['Attributes'])

    async def delete_by_id(self, id: str) -> Optional[Participant]:
        """
        Permanently delete a participant.

        Returns:
            The deleted participant's last content, or None if absent

        Raises:
            ClientError: If DynamoDB operation fails
            ValueError: If id is invalid
        """
        if not id or not isinstance(id, str):
            raise ValueError("id must be a non-empty string")

        try:
            response = await run_in_threadpool(
                self.table.delete_item,
                Key={'id': id},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            self._log_client_error("Failed to delete participant", e, id=id)
            raise

        if 'Attributes' not in response:
            logger.warning("Participant not found for delete", id=id, table_name=self.table_name)
            return None

        logger.info("Participant deleted", id=id, table_name=self.table_name)
        return self._from_item(response['Attributes'])

"""
In-memory DataAccess for tests and local runs.

``InMemoryDataAccess`` is ``DynamoDataAccess`` running against moto's
in-process DynamoDB, on a table created from the index layout in
``vehicle_fees.keys``. moto leaves a few things out, added here:
- ``ManualClock``: time only moves when told to
- ``reclaim_expired``: the TTL sweeper, run on demand at the clock's time
- ``FaultInjectingClient``: records calls and fails chosen ones, including
  a single action of a transaction

Needs the ``memory`` extra (moto). moto keeps one process-wide backend, so
only one InMemoryDataAccess should be open at a time.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

import boto3
from botocore.exceptions import ClientError
from moto import mock_aws

from vehicle_fees import keys
from vehicle_fees.data_access import DynamoDataAccess
from vehicle_fees.passwords import PasswordHasher

DEFAULT_TABLE_NAME = 'VehicleDB'
DEFAULT_REGION = 'us-east-1'

# Lowest bcrypt cost factor
FAST_HASH_ROUNDS = 4

# Client method -> DynamoDB API operation
OPERATIONS = {
    'get_item': 'GetItem',
    'put_item': 'PutItem',
    'update_item': 'UpdateItem',
    'delete_item': 'DeleteItem',
    'query': 'Query',
    'transact_write_items': 'TransactWriteItems',
}


def _key_schema(partition_key: str, sort_key: str) -> List[Dict[str, str]]:
    return [
        {'AttributeName': partition_key, 'KeyType': 'HASH'},
        {'AttributeName': sort_key, 'KeyType': 'RANGE'},
    ]


def create_table(client: Any, table_name: str = DEFAULT_TABLE_NAME) -> None:
    """
    Create the single table with every secondary index and TTL enabled.

    Mirrors ``deployments/vehicles/table_construct.py``: both read the
    layout from ``vehicle_fees.keys``.
    """
    attributes = {keys.PK, keys.SK}
    for index_keys in list(keys.GLOBAL_INDEXES.values()) + list(keys.LOCAL_INDEXES.values()):
        attributes.update(index_keys)

    client.create_table(
        TableName=table_name,
        BillingMode='PAY_PER_REQUEST',
        KeySchema=_key_schema(keys.PK, keys.SK),
        AttributeDefinitions=[{'AttributeName': name, 'AttributeType': 'S'} for name in sorted(attributes)],
        GlobalSecondaryIndexes=[
            {'IndexName': name, 'KeySchema': _key_schema(pk, sk), 'Projection': {'ProjectionType': 'ALL'}}
            for name, (pk, sk) in keys.GLOBAL_INDEXES.items()
        ],
        LocalSecondaryIndexes=[
            {'IndexName': name, 'KeySchema': _key_schema(pk, sk), 'Projection': {'ProjectionType': 'ALL'}}
            for name, (pk, sk) in keys.LOCAL_INDEXES.items()
        ],
    )
    client.update_time_to_live(
        TableName=table_name,
        TimeToLiveSpecification={'Enabled': True, 'AttributeName': keys.TTL_ATTRIBUTE}
    )


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment


class FaultInjectingClient:
    """
    Wraps a low-level DynamoDB client, recording calls and failing chosen ones.

    Usage:
        client = FaultInjectingClient(boto3.client('dynamodb'), page_size=2)
        client.fail_next('TransactWriteItems', 'ConditionalCheckFailed', action_index=1)
    """

    def __init__(self, client: Any, page_size: Optional[int] = None):
        """
        Args:
            client: The client every call is forwarded to
            page_size: Limit applied to queries that set none (None: unlimited)
        """
        self.client = client
        self.page_size = page_size
        self.calls: List[str] = []
        self._faults: List[Dict[str, Any]] = []

    def fail_next(
        self,
        operation: str,
        code: str = 'InternalServerError',
        action_index: Optional[int] = None,
        skip: int = 0
    ) -> None:
        """
        Make a future call of ``operation`` fail.

        Args:
            operation: API operation name (e.g. 'PutItem', 'TransactWriteItems')
            code: Error code; with ``action_index`` set, the cancellation
                reason of that action
            action_index: For TransactWriteItems, the action reported as failed
            skip: Number of matching calls to let through first
        """
        self._faults.append({'operation': operation, 'code': code, 'action_index': action_index, 'skip': skip})

    def _take_fault(self, operation: str) -> Optional[Dict[str, Any]]:
        for fault in self._faults:
            if fault['operation'] != operation:
                continue
            if fault['skip'] > 0:
                fault['skip'] -= 1
                return None
            self._faults.remove(fault)
            return fault
        return None

    def _raise_fault(self, operation: str, params: Dict[str, Any]) -> None:
        fault = self._take_fault(operation)
        if fault is None:
            return

        response: Dict[str, Any] = {'Error': {'Code': fault['code'], 'Message': 'Injected fault'}}
        if fault['action_index'] is not None:
            reasons = [{'Code': 'None'} for _ in params.get('TransactItems', [])]
            reasons[fault['action_index']] = {'Code': fault['code'], 'Message': 'Injected fault'}
            response = {
                'Error': {'Code': 'TransactionCanceledException', 'Message': 'Transaction cancelled'},
                'CancellationReasons': reasons,
            }
        raise ClientError(response, operation)

    def __getattr__(self, name: str) -> Any:
        method = getattr(self.client, name)
        operation = OPERATIONS.get(name)
        if operation is None:
            return method

        def call(**params: Any) -> Dict[str, Any]:
            self.calls.append(operation)
            self._raise_fault(operation, params)
            if operation == 'Query' and self.page_size and 'Limit' not in params:
                params['Limit'] = self.page_size
            return method(**params)

        return call


class InMemoryDataAccess(DynamoDataAccess):
    """
    DataAccess over moto's DynamoDB with a ``ManualClock``.

    Usage:
        with InMemoryDataAccess() as data:
            data.create_user({'username': 'alice', 'password': 'secret'})
            session = data.authenticate({'username': 'alice', 'password': 'secret'})
            data.clock.advance(days=8)
            data.reclaim_expired()
            assert not data.is_valid(session['session_id'])
    """

    def __init__(
        self,
        start: Optional[datetime] = None,
        hasher: Optional[Any] = None,
        table_name: str = DEFAULT_TABLE_NAME,
        page_size: Optional[int] = None,
        cloudwatch: Optional[Any] = None
    ):
        self.clock = ManualClock(start)
        self._mock = mock_aws()
        self._mock.start()

        self.dynamodb = boto3.client('dynamodb', region_name=DEFAULT_REGION)
        create_table(self.dynamodb, table_name)

        super().__init__(
            FaultInjectingClient(self.dynamodb, page_size),
            table_name,
            clock=self.clock,
            hasher=hasher or PasswordHasher(rounds=FAST_HASH_ROUNDS),
            cloudwatch=cloudwatch
        )

    def close(self) -> None:
        """Stop the mock and drop every table."""
        self._mock.stop()

    def __enter__(self) -> 'InMemoryDataAccess':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def reclaim_expired(self) -> int:
        """
        Run the TTL sweeper: delete every item whose ``ttl`` is at or before
        the current clock time.

        Returns:
            Number of items removed
        """
        paginator = self.dynamodb.get_paginator('scan')
        pages = paginator.paginate(
            TableName=self.table_name,
            FilterExpression='#ttl <= :now',
            ExpressionAttributeNames={'#ttl': keys.TTL_ATTRIBUTE},
            ExpressionAttributeValues={':now': {'N': str(int(self.clock().timestamp()))}}
        )

        removed = 0
        for page in pages:
            for item in page.get('Items', []):
                self.dynamodb.delete_item(
                    TableName=self.table_name,
                    Key={keys.PK: item[keys.PK], keys.SK: item[keys.SK]}
                )
                removed += 1
        return removed

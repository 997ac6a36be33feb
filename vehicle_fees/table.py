"""
Shared DynamoDB plumbing for the stores.

Each store wraps the same low-level boto3 DynamoDB client and table name.
This module holds the pieces they have in common: the clock, paginated
queries, point reads, transactions, and translation of botocore failures
into domain errors.
"""

from datetime import datetime, date, timezone
from typing import Dict, Any, List, Optional, Callable

from botocore.exceptions import BotoCoreError, ClientError

from vehicle_fees.codec import Item
from vehicle_fees.errors import StoreFailure

Clock = Callable[[], datetime]

# DynamoDB accepts at most 100 actions per TransactWriteItems call
MAX_TRANSACTION_ITEMS = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


def error_code(error: ClientError) -> str:
    return str(error.response.get('Error', {}).get('Code', ''))


def cancellation_codes(error: ClientError) -> List[str]:
    """
    Return the per-action cancellation codes of a cancelled transaction.

    The list is positional: entry ``i`` is the reason for ``TransactItems[i]``
    (``'None'`` for actions that did not fail).
    """
    reasons = error.response.get('CancellationReasons') or []
    return [str(reason.get('Code', 'None')) for reason in reasons]


def action_failed(codes: List[str], position: int) -> bool:
    """True if the action at ``position`` failed its condition check."""
    return len(codes) > position and codes[position] == 'ConditionalCheckFailed'


def transaction_failure(error: ClientError) -> StoreFailure:
    """Wrap a cancelled transaction that no caller-specific rule explains."""
    return StoreFailure(
        f'Transaction rejected: {error_code(error)}',
        {'errorCode': error_code(error), 'cancellationReasons': cancellation_codes(error)}
    )


def store_failure(error: Exception, operation: str) -> StoreFailure:
    """Wrap a botocore failure as a StoreFailure."""
    if isinstance(error, ClientError):
        return StoreFailure(
            f'{operation} failed: {error_code(error)}',
            {'operation': operation, 'errorCode': error_code(error)}
        )
    return StoreFailure(
        f'{operation} failed: {type(error).__name__}',
        {'operation': operation}
    )


class TableStore:
    """
    Base class for stores sharing one client handle and one table name.

    Holds no mutable state; a single instance can serve concurrent callers.
    """

    def __init__(self, client: Any, table_name: str, clock: Optional[Clock] = None):
        """
        Args:
            client: Low-level boto3 DynamoDB client (or a compatible fake)
            table_name: Name of the single DynamoDB table
            clock: Returns the current aware datetime (default: UTC now)
        """
        self.client = client
        self.table_name = table_name
        self.clock = clock or utc_now

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().astimezone(timezone.utc).date()

    def get_item(self, key: Item) -> Optional[Item]:
        try:
            response = self.client.get_item(TableName=self.table_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise store_failure(e, 'GetItem') from e
        return response.get('Item')

    def query_all(self, **params: Any) -> List[Item]:
        """
        Run a query and follow ``LastEvaluatedKey`` until every page is read.
        """
        params['TableName'] = self.table_name
        items: List[Item] = []
        while True:
            try:
                response = self.client.query(**params)
            except (ClientError, BotoCoreError) as e:
                raise store_failure(e, 'Query') from e

            items.extend(response.get('Items', []))

            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            params['ExclusiveStartKey'] = last_key

    def transact(self, actions: List[Dict[str, Any]]) -> None:
        """
        Submit actions as one all-or-nothing TransactWriteItems call.

        Each action is ``{'Put'|'Update'|'Delete': {...}}`` without a table
        name; the table name is filled in here. ClientError propagates so
        callers can classify cancellation reasons.

        Raises:
            ClientError: If DynamoDB rejects or cancels the transaction
            StoreFailure: On transport-level failures
        """
        transact_items = []
        for action in actions:
            (kind, body), = action.items()
            transact_items.append({kind: {'TableName': self.table_name, **body}})

        try:
            self.client.transact_write_items(TransactItems=transact_items)
        except BotoCoreError as e:
            raise store_failure(e, 'TransactWriteItems') from e

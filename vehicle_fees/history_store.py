"""
History store.

This module implements the audit history access patterns:
- Reading payments in a day window through GSI3, newest first
- Undoing a payment: deleting its history row and restoring the vehicle's
  previous due date in one transaction

Undo only applies to the latest payment of a fee: the vehicle update is
conditioned on the fee date still being the one that payment set. If a
later payment or correction has moved the date since, the undo is rejected
with ConflictError and nothing changes.
"""

from datetime import timedelta
from typing import Any, List, Optional

from botocore.exceptions import ClientError

from vehicle_fees import codec, keys
from vehicle_fees.errors import ConflictError, NotFoundError, ValidationError
from vehicle_fees.session_store import SessionStore
from vehicle_fees.table import (
    TableStore, action_failed, cancellation_codes, format_timestamp, transaction_failure
)
from vehicle_fees.types import TransactionHistory
from vehicle_fees.validation import validate_days, validate_fee_type, validate_plate, parse_date, canonical_date

DEFAULT_HISTORY_DAYS = 30

HISTORY_ACTION = 0
VEHICLE_ACTION = 1


class HistoryStore(TableStore):
    """
    Store for TransactionHistory rows.
    """

    def __init__(self, client: Any, table_name: str, sessions: SessionStore, clock=None):
        super().__init__(client, table_name, clock)
        self.sessions = sessions

    def view_history(self, token: Optional[str], days: int = DEFAULT_HISTORY_DAYS) -> List[TransactionHistory]:
        """
        Return history rows dated within ``[today - days, today]``, newest first.

        Raises:
            UnauthorizedError: If the session is invalid
            ValidationError: If days is negative or not an integer
        """
        self.sessions.require_user(token)

        errors = validate_days(days)
        if errors:
            raise ValidationError.from_errors(errors)

        today = self.today()
        items = self.query_all(
            IndexName=keys.HISTORY_INDEX,
            KeyConditionExpression='#pk = :pk AND #sk BETWEEN :start AND :end',
            ExpressionAttributeNames={'#pk': 'GSI3PK', '#sk': 'GSI3SK'},
            ExpressionAttributeValues={
                ':pk': {'S': keys.HISTORY_MARKER},
                ':start': {'S': keys.history_key((today - timedelta(days=days)).isoformat())},
                ':end': {'S': keys.history_key(today.isoformat())},
            },
            ScanIndexForward=False
        )
        return [codec.history_from_item(item) for item in items]

    def undo_history(self, token: Optional[str], record: TransactionHistory) -> None:
        """
        Undo a recorded payment.

        In one transaction:
        1. Delete the history row (must still exist)
        2. Set the vehicle's fee date back to the row's ``date``, provided the
           vehicle still carries the ``new_date`` that payment set

        Raises:
            UnauthorizedError: If the session is invalid
            ValidationError: If the record is malformed
            NotFoundError: If the history row does not exist
            ConflictError: If the payment has been superseded, or the row
                predates undo support (no ``new_date``)
            StoreFailure: If DynamoDB rejects the transaction
        """
        self.sessions.require_user(token)

        errors = validate_plate(record.get('vehicle_no')) + validate_fee_type(record.get('transaction_type'))
        try:
            parse_date(record.get('date'))
        except ValueError as e:
            errors.append({'field': 'date', 'message': str(e)})
        if errors:
            raise ValidationError.from_errors(errors)

        plate = record['vehicle_no']
        lookup: TransactionHistory = {**record, 'date': canonical_date(record['date'])}
        item = self.get_item(codec.history_item_key(lookup))
        if item is None:
            raise NotFoundError(
                f"No {record['transaction_type']} payment from {record['date']} recorded for '{plate}'",
                {'vehicle_no': plate, 'date': record['date']}
            )

        stored = codec.history_from_item(item)
        if not stored.get('new_date'):
            raise ConflictError(
                'History record carries no resulting date; it cannot be undone',
                {'vehicle_no': plate, 'date': stored['date']}
            )

        _, date_field = keys.fee_index(stored['transaction_type'])
        actions = [
            {
                'Delete': {
                    'Key': codec.history_item_key(stored),
                    'ConditionExpression': 'attribute_exists(#pk)',
                    'ExpressionAttributeNames': {'#pk': keys.PK},
                }
            },
            {
                'Update': {
                    'Key': codec.item_key(keys.vehicle_key(plate)),
                    'UpdateExpression': 'SET #date = :previous, #updated_at = :updated_at',
                    'ConditionExpression': '#date = :expected',
                    'ExpressionAttributeNames': {'#date': date_field, '#updated_at': 'updated_at'},
                    'ExpressionAttributeValues': {
                        ':previous': {'S': stored['date']},
                        ':expected': {'S': stored['new_date']},
                        ':updated_at': {'S': format_timestamp(self.now())},
                    },
                }
            },
        ]
        try:
            self.transact(actions)
        except ClientError as e:
            codes = cancellation_codes(e)
            if action_failed(codes, HISTORY_ACTION):
                raise NotFoundError(
                    'History record was removed concurrently',
                    {'vehicle_no': plate, 'date': stored['date']}
                ) from e
            if action_failed(codes, VEHICLE_ACTION):
                raise ConflictError(
                    f"The {stored['transaction_type']} date of '{plate}' has changed since this payment",
                    {'vehicle_no': plate, 'expected': stored['new_date']}
                ) from e
            raise transaction_failure(e) from e

"""
Fee transaction coordinator.

This is the single place where a vehicle's due dates and the audit history
change together. A fee payment is one TransactWriteItems call covering:
1. an Update of the vehicle item setting only the supplied due dates
2. a Put of a new TransactionHistory row citing the date in force before
   the payment

Either both writes land or neither does.

Concurrent payments on the same vehicle are not serialized here: each call
reads the previous date on its own, so two racing payments may both cite the
same previous date. Only the store's transaction conflict detection applies.
"""

from typing import Dict, Any, List, Optional, Tuple

from botocore.exceptions import ClientError

from vehicle_fees import codec, keys
from vehicle_fees.errors import ConflictError, NotFoundError, ValidationError
from vehicle_fees.session_store import SessionStore
from vehicle_fees.table import (
    TableStore, action_failed, cancellation_codes, format_timestamp, transaction_failure
)
from vehicle_fees.types import VehicleUpdate, TransactionHistory
from vehicle_fees.vehicle_store import VehicleStore
from vehicle_fees.validation import date_updates, validate_fee_type, validate_vehicle_update

VEHICLE_ACTION = 0
HISTORY_ACTION = 1


def build_date_update(
    plate: str,
    pairs: List[Tuple[str, str]],
    updated_at: str
) -> Dict[str, Any]:
    """
    Build a transactional Update action setting ``pairs`` on a vehicle.

    Args:
        plate: Canonical plate of the vehicle
        pairs: Ordered ``(attribute, value)`` pairs to set; must not be empty
        updated_at: Timestamp written to ``updated_at``

    Returns:
        ``{'Update': {...}}`` action conditioned on the vehicle existing
    """
    assignments = list(pairs) + [('updated_at', updated_at)]
    return {
        'Update': {
            'Key': codec.item_key(keys.vehicle_key(plate)),
            'UpdateExpression': 'SET ' + ', '.join(f'#{name} = :{name}' for name, _ in assignments),
            'ConditionExpression': 'attribute_exists(#pk)',
            'ExpressionAttributeNames': {
                '#pk': keys.PK,
                **{f'#{name}': name for name, _ in assignments},
            },
            'ExpressionAttributeValues': {f':{name}': {'S': value} for name, value in assignments},
        }
    }


class FeeTransactionCoordinator(TableStore):
    """
    Coordinates vehicle due-date changes with their audit history.
    """

    def __init__(
        self,
        client: Any,
        table_name: str,
        sessions: SessionStore,
        vehicles: VehicleStore,
        clock=None
    ):
        super().__init__(client, table_name, clock)
        self.sessions = sessions
        self.vehicles = vehicles

    def pay_fee(self, token: Optional[str], fee_type: str, update: VehicleUpdate) -> TransactionHistory:
        """
        Record a fee payment.

        Flow:
        1. Validate the session and resolve the payer
        2. Validate the update (at least one date, every date parseable, the
           paid fee's own date present)
        3. Read the vehicle to capture the fee's pre-update date
        4. Update the supplied dates and append the history row in one transaction

        The update must carry the date field of the fee being paid (for
        ``fee_type='tax'``, ``tax_date``). Other date fields are optional and
        are set alongside it. An update holding only other fees' dates is
        rejected with ValidationError, because the history row records the
        paid fee's date before and after the payment.

        Returns:
            The history row that was written

        Raises:
            UnauthorizedError: If the session is invalid
            ValidationError: If the fee type or update is invalid
            NotFoundError: If the vehicle does not exist
            ConflictError: If an identical history row already exists
            StoreFailure: If DynamoDB rejects the transaction
        """
        payer = self.sessions.require_user(token)

        errors = validate_fee_type(fee_type) + validate_vehicle_update(update)
        if not errors:
            _, date_field = keys.fee_index(fee_type)
            if update.get(date_field) is None:
                errors.append({
                    'field': date_field,
                    'message': f'{date_field} is required when paying the {fee_type} fee'
                })
        if errors:
            raise ValidationError.from_errors(errors)

        plate = update['vehicle_no']
        item = self.vehicles.get_vehicle_item(plate)
        if item is None:
            raise NotFoundError(f"Vehicle '{plate}' not found", {'vehicle_no': plate})

        pairs = date_updates(update)
        now = format_timestamp(self.now())
        history: TransactionHistory = {
            'vehicle_no': plate,
            'date': codec.vehicle_from_item(item)[date_field],
            'transaction_type': fee_type,
            'payer': payer,
            'new_date': dict(pairs)[date_field],
            'paid_at': now,
        }

        actions = [
            build_date_update(plate, pairs, now),
            {
                'Put': {
                    'Item': codec.history_to_item(history),
                    'ConditionExpression': 'attribute_not_exists(#pk)',
                    'ExpressionAttributeNames': {'#pk': keys.PK},
                }
            },
        ]
        try:
            self.transact(actions)
        except ClientError as e:
            codes = cancellation_codes(e)
            if action_failed(codes, VEHICLE_ACTION):
                raise NotFoundError(f"Vehicle '{plate}' not found", {'vehicle_no': plate}) from e
            if action_failed(codes, HISTORY_ACTION):
                raise ConflictError(
                    f"A {fee_type} payment from {history['date']} is already recorded for '{plate}'",
                    {'vehicle_no': plate, 'date': history['date'], 'transaction_type': fee_type}
                ) from e
            raise transaction_failure(e) from e

        return history

    def update_vehicle(self, token: Optional[str], update: VehicleUpdate) -> None:
        """
        Correct a vehicle's due dates without writing history.

        Uses the same sparse update as ``pay_fee``, submitted as a
        single-action transaction.

        Raises:
            UnauthorizedError: If the session is invalid
            ValidationError: If the update is invalid
            NotFoundError: If the vehicle does not exist
            StoreFailure: If DynamoDB rejects the transaction
        """
        self.sessions.require_user(token)

        errors = validate_vehicle_update(update)
        if errors:
            raise ValidationError.from_errors(errors)

        plate = update['vehicle_no']
        try:
            self.transact([build_date_update(plate, date_updates(update), format_timestamp(self.now()))])
        except ClientError as e:
            if action_failed(cancellation_codes(e), VEHICLE_ACTION):
                raise NotFoundError(f"Vehicle '{plate}' not found", {'vehicle_no': plate}) from e
            raise transaction_failure(e) from e

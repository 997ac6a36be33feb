"""
Vehicle store.

This module implements the vehicle access patterns:
- Vehicle creation together with its search entry, in one transaction
  guarded by "must not already exist" conditions
- Listing every vehicle through the GSI2 ``VEHICLE`` marker
- Due-date scans through the per-fee-type indexes (GSI4..GSI7)
- Partial plate search on the ``SEARCH`` partition

Every operation validates the caller's session first.
"""

from datetime import date, timedelta
from typing import Any, List, Optional, Union

from botocore.exceptions import ClientError

from vehicle_fees import codec, keys
from vehicle_fees.codec import Item
from vehicle_fees.errors import ConflictError, ValidationError
from vehicle_fees.session_store import SessionStore
from vehicle_fees.table import TableStore, cancellation_codes, format_timestamp, store_failure
from vehicle_fees.types import Vehicle, DueWindow
from vehicle_fees.validation import (
    DATE_FIELDS,
    canonical_date,
    parse_date,
    validate_days,
    validate_fee_type,
    validate_vehicle,
)


class VehicleStore(TableStore):
    """
    Store for vehicle and search-entry items.
    """

    def __init__(self, client: Any, table_name: str, sessions: SessionStore, clock=None):
        super().__init__(client, table_name, clock)
        self.sessions = sessions

    def add_vehicle(self, token: Optional[str], vehicle: Vehicle) -> None:
        """
        Create a vehicle and its search entry atomically.

        Both puts carry ``attribute_not_exists`` conditions and are submitted
        as a single TransactWriteItems call: either both items land or neither
        does.

        Raises:
            UnauthorizedError: If the session is invalid
            ValidationError: If the plate is not canonical or a date is malformed
            ConflictError: If the vehicle or its search entry already exists
        """
        self.sessions.require_user(token)

        errors = validate_vehicle(vehicle)
        if errors:
            raise ValidationError.from_errors(errors)

        stored: Vehicle = {
            'vehicle_no': vehicle['vehicle_no'],
            'owner': vehicle['owner'],
            **{field: canonical_date(vehicle[field]) for field in DATE_FIELDS},
        }
        condition = {
            'ConditionExpression': 'attribute_not_exists(#pk)',
            'ExpressionAttributeNames': {'#pk': keys.PK},
        }
        try:
            self.transact([
                {'Put': {'Item': codec.vehicle_to_item(stored, format_timestamp(self.now())), **condition}},
                {'Put': {'Item': codec.search_entry_to_item(stored['vehicle_no']), **condition}},
            ])
        except ClientError as e:
            if 'ConditionalCheckFailed' in cancellation_codes(e):
                raise ConflictError(
                    f"Vehicle '{vehicle['vehicle_no']}' already exists",
                    {'vehicle_no': vehicle['vehicle_no']}
                ) from e
            raise store_failure(e, 'TransactWriteItems') from e

    def list_all(self, token: Optional[str]) -> List[Vehicle]:
        """Return every vehicle, unordered."""
        self.sessions.require_user(token)

        items = self.query_all(
            IndexName=keys.VEHICLE_INDEX,
            KeyConditionExpression='#pk = :pk',
            ExpressionAttributeNames={'#pk': 'GSI2PK'},
            ExpressionAttributeValues={':pk': {'S': keys.VEHICLE_MARKER}}
        )
        return [codec.vehicle_from_item(item) for item in items]

    def list_by_fee_type(
        self,
        token: Optional[str],
        fee_type: str,
        window: Union[DueWindow, int]
    ) -> List[Vehicle]:
        """
        Return vehicles whose ``fee_type`` date falls in ``window``.

        Args:
            token: Session token
            fee_type: One of tax, fitness, insurance, route
            window: ``DueWindow.overdue()`` for dates strictly before today,
                ``DueWindow.within(n)`` for dates in ``[today, today + n]``.
                An integer is read as the legacy contract (0 = overdue).

        Raises:
            UnauthorizedError: If the session is invalid
            ValidationError: If the fee type is unsupported or days is negative
        """
        self.sessions.require_user(token)

        errors = validate_fee_type(fee_type)
        if not isinstance(window, DueWindow):
            errors.extend(validate_days(window))
        if errors:
            raise ValidationError.from_errors(errors)
        if not isinstance(window, DueWindow):
            window = DueWindow.from_days(window)

        index_name, date_field = keys.fee_index(fee_type)
        pk_name, _ = keys.index_keys(index_name)
        items = self.query_all(
            IndexName=index_name,
            KeyConditionExpression='#pk = :pk',
            ExpressionAttributeNames={'#pk': pk_name},
            ExpressionAttributeValues={':pk': {'S': keys.fee_index_key(fee_type)}}
        )

        today = self.today()
        vehicles = [codec.vehicle_from_item(item) for item in items]
        return [v for v in vehicles if _in_window(v[date_field], window, today)]

    def search(self, token: Optional[str], fragment: str) -> List[Vehicle]:
        """
        Find vehicles by partial plate.

        A four-character fragment matches the last four characters of the
        plate (LSI1); any other fragment matches as a plate prefix.

        Raises:
            UnauthorizedError: If the session is invalid
            ValidationError: If the fragment is empty or not alphanumeric
        """
        self.sessions.require_user(token)

        normalized = keys.normalize_plate(fragment or '')
        if not normalized or not normalized.isalnum():
            raise ValidationError(
                'Search fragment must be a non-empty plate fragment',
                {'errors': [{'field': 'fragment', 'message': 'Invalid plate fragment'}]}
            )

        if len(normalized) == keys.SEARCH_TAIL_LENGTH:
            entries = self.query_all(
                IndexName=keys.SEARCH_TAIL_INDEX,
                KeyConditionExpression='#pk = :pk AND #tail = :tail',
                ExpressionAttributeNames={'#pk': keys.PK, '#tail': 'LSI1SK'},
                ExpressionAttributeValues={
                    ':pk': {'S': keys.SEARCH_PARTITION},
                    ':tail': {'S': normalized},
                }
            )
        else:
            entries = self.query_all(
                KeyConditionExpression='#pk = :pk AND begins_with(#sk, :prefix)',
                ExpressionAttributeNames={'#pk': keys.PK, '#sk': keys.SK},
                ExpressionAttributeValues={
                    ':pk': {'S': keys.SEARCH_PARTITION},
                    ':prefix': {'S': keys.search_key(normalized)},
                }
            )

        vehicles = []
        for entry in entries:
            item = self.get_vehicle_item(codec.search_entry_plate(entry))
            if item is not None:
                vehicles.append(codec.vehicle_from_item(item))
        return vehicles

    def get_vehicle_item(self, plate: str) -> Optional[Item]:
        return self.get_item(codec.item_key(keys.vehicle_key(plate)))


def _in_window(value: str, window: DueWindow, today: date) -> bool:
    if not value:
        return False
    try:
        due = parse_date(value)
    except ValueError:
        return False

    if window.overdue_only:
        return due < today
    return today <= due <= today + timedelta(days=window.days)

"""
Input validation for data-access requests.

Follows the "fail fast" principle - all validation happens before any
DynamoDB request is built. Validators return a list of field errors
(each a dict with 'field' and 'message' keys); an empty list means the
input is valid.

Validates:
- user credentials (username, password)
- vehicle payloads (canonical plate, owner, four due dates)
- sparse vehicle updates (at least one date, every date parseable)
- fee types and day windows
"""

from datetime import date
from typing import Dict, Any, List, Optional, Tuple

from vehicle_fees.keys import FEE_TYPES, is_canonical_plate
from vehicle_fees.types import DateField

DATE_FIELDS: Tuple[DateField, ...] = ('tax_date', 'insurance_date', 'fitness_date', 'route_date')

# Characters that would corrupt composite keys
RESERVED_KEY_CHARACTERS = {'#'}

# bcrypt only reads the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def parse_date(value: str) -> date:
    """
    Parse a ``Y-M-D`` date string.

    Components may be unpadded (``2024-1-5``); the result re-emits as
    ``2024-01-05`` through ``isoformat()``.

    Raises:
        ValueError: If the value is not three dash-separated integers forming
            a real calendar date
    """
    if not isinstance(value, str):
        raise ValueError(f'Date must be a string, got {type(value).__name__}')

    parts = value.strip().split('-')
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Date '{value}' is not in YYYY-MM-DD format")

    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except (ValueError, OverflowError):
        raise ValueError(f"Date '{value}' is not a valid calendar date")


def canonical_date(value: str) -> str:
    return parse_date(value).isoformat()


def _check_key_component(field: str, value: Any, errors: List[Dict[str, str]]) -> None:
    if not isinstance(value, str) or not value.strip():
        errors.append({'field': field, 'message': 'Field is required'})
    elif RESERVED_KEY_CHARACTERS & set(value):
        errors.append({'field': field, 'message': "Field cannot contain '#'"})


def validate_password(field: str, value: Any) -> List[Dict[str, str]]:
    if not isinstance(value, str) or not value:
        return [{'field': field, 'message': 'Field is required'}]
    if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
        return [{'field': field, 'message': f'Password must be at most {MAX_PASSWORD_BYTES} bytes'}]
    return []


def validate_user(user: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Validate signup or login credentials.

    Returns:
        List of validation errors. Empty list if validation passes.
    """
    errors: List[Dict[str, str]] = []

    _check_key_component('username', user.get('username'), errors)

    errors.extend(validate_password('password', user.get('password')))

    phone = user.get('phone')
    if phone is not None and not isinstance(phone, str):
        errors.append({'field': 'phone', 'message': 'Phone must be a string'})

    return errors


def validate_plate(plate: Any) -> List[Dict[str, str]]:
    if not isinstance(plate, str) or not plate.strip():
        return [{'field': 'vehicle_no', 'message': 'Field is required'}]
    if not is_canonical_plate(plate):
        return [{
            'field': 'vehicle_no',
            'message': f"Plate '{plate}' is not in the canonical dashed format"
        }]
    return []


def validate_vehicle(vehicle: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Validate a new vehicle payload.

    Performs the following validations:
    1. vehicle_no is present and in the canonical plate format
    2. owner is present
    3. every due date is present and parseable

    Returns:
        List of validation errors. Empty list if validation passes.
    """
    errors = validate_plate(vehicle.get('vehicle_no'))

    owner = vehicle.get('owner')
    if not isinstance(owner, str) or not owner.strip():
        errors.append({'field': 'owner', 'message': 'Field is required'})

    for field in DATE_FIELDS:
        value = vehicle.get(field)
        if value is None:
            errors.append({'field': field, 'message': 'Field is required'})
            continue
        try:
            parse_date(value)
        except ValueError as e:
            errors.append({'field': field, 'message': str(e)})

    return errors


def validate_vehicle_update(update: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Validate a sparse vehicle update.

    At least one date field must be set; every set field must parse.

    Returns:
        List of validation errors. Empty list if validation passes.
    """
    errors = validate_plate(update.get('vehicle_no'))

    supplied = [(field, update.get(field)) for field in DATE_FIELDS if update.get(field) is not None]
    if not supplied:
        errors.append({'field': 'dates', 'message': 'no date provided'})
        return errors

    for field, value in supplied:
        try:
            parse_date(value)
        except ValueError as e:
            errors.append({'field': field, 'message': str(e)})

    return errors


def validate_fee_type(fee_type: Any) -> List[Dict[str, str]]:
    if fee_type not in FEE_TYPES:
        return [{
            'field': 'fee_type',
            'message': f'Fee type must be one of: {", ".join(sorted(FEE_TYPES))}'
        }]
    return []


def validate_days(days: Any) -> List[Dict[str, str]]:
    if isinstance(days, bool) or not isinstance(days, int):
        return [{'field': 'days', 'message': 'Days must be an integer'}]
    if days < 0:
        return [{'field': 'days', 'message': 'Days must be non-negative'}]
    return []


def date_updates(update: Dict[str, Any]) -> List[Tuple[DateField, str]]:
    """
    Return the supplied due dates as ordered ``(attribute, canonical date)`` pairs.

    Fields that are absent or None are skipped. Assumes the update was validated.
    """
    pairs: List[Tuple[DateField, Optional[str]]] = [(field, update.get(field)) for field in DATE_FIELDS]
    return [(field, canonical_date(value)) for field, value in pairs if value is not None]

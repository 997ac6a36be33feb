"""
Key encoding for the single-table design.

Every item lives in one table keyed by ``PK``/``SK``. Secondary indexes
re-project a subset of items under their own key attributes:

Access Patterns:
1. Get user: PK=USER#{username}, SK=USER#{username}
2. List a user's sessions: PK=USER#{username}, SK begins_with SESSION#
3. Token -> user: GSI1 GSI1PK=SESSION#{uuid}, GSI1SK=USER#{username}
4. List all vehicles: GSI2 GSI2PK=VEHICLE, GSI2SK=CAR#{plate}
5. Audit history by date: GSI3 GSI3PK=HISTORY, GSI3SK=TRANSACTION#{date}
6. Vehicles by fee type: GSI4..GSI7 GSInPK=FEE#{TYPE}, GSInSK=CAR#{plate}
7. Plate search: PK=SEARCH, SK=SEARCH#{plate}; LSI1 LSI1SK=last 4 characters

Canonical plate format
----------------------
Storage keys hold the plate with every ``-`` removed. The display form is
rebuilt positionally, so only plates in one of these shapes round-trip:

- short form, 8 characters or fewer once normalized: ``AAA-<rest>``
  (``ABC-1234``)
- long form, 9 characters or more: 3 characters, then 2 if the character
  at index 4 is a digit else 3, then 2, then the remainder
  (``DHA-12-AB-1234``, ``DHA-MET-GA-1234``)
"""

from typing import Dict, Tuple

from vehicle_fees.types import FeeType, DateField

PK = 'PK'
SK = 'SK'
TTL_ATTRIBUTE = 'ttl'

USER_PREFIX = 'USER#'
SESSION_PREFIX = 'SESSION#'
VEHICLE_PREFIX = 'CAR#'
HISTORY_PREFIX = 'TRANSACTION#'
SEARCH_PREFIX = 'SEARCH#'
FEE_PREFIX = 'FEE#'

VEHICLE_MARKER = 'VEHICLE'
HISTORY_MARKER = 'HISTORY'
SEARCH_PARTITION = 'SEARCH'

SESSION_INDEX = 'GSI1'
VEHICLE_INDEX = 'GSI2'
HISTORY_INDEX = 'GSI3'
SEARCH_TAIL_INDEX = 'LSI1'

SHORT_PLATE_MAX_LENGTH = 8
SEARCH_TAIL_LENGTH = 4

# fee type -> (index name, date attribute)
FEE_TYPES: Dict[str, Tuple[str, DateField]] = {
    'tax': ('GSI4', 'tax_date'),
    'fitness': ('GSI5', 'fitness_date'),
    'insurance': ('GSI6', 'insurance_date'),
    'route': ('GSI7', 'route_date'),
}

# Secondary index layout: index name -> (partition attribute, sort attribute).
# Local indexes share the table's partition key.
GLOBAL_INDEXES: Dict[str, Tuple[str, str]] = {
    SESSION_INDEX: ('GSI1PK', 'GSI1SK'),
    VEHICLE_INDEX: ('GSI2PK', 'GSI2SK'),
    HISTORY_INDEX: ('GSI3PK', 'GSI3SK'),
    **{index: (f'{index}PK', f'{index}SK') for index, _ in FEE_TYPES.values()},
}
LOCAL_INDEXES: Dict[str, Tuple[str, str]] = {
    SEARCH_TAIL_INDEX: (PK, 'LSI1SK'),
}


def index_keys(index_name: str) -> Tuple[str, str]:
    """Return the (partition, sort) attribute names of a secondary index."""
    if index_name in GLOBAL_INDEXES:
        return GLOBAL_INDEXES[index_name]
    return LOCAL_INDEXES[index_name]


def normalize_plate(plate: str) -> str:
    return plate.replace('-', '')


def decode_plate(normalized: str) -> str:
    """Rebuild the canonical dashed plate from its normalized form."""
    if len(normalized) <= SHORT_PLATE_MAX_LENGTH:
        return f'{normalized[:3]}-{normalized[3:]}'

    second = 2 if normalized[4].isdigit() else 3
    third_start = 3 + second
    return '-'.join([
        normalized[:3],
        normalized[3:third_start],
        normalized[third_start:third_start + 2],
        normalized[third_start + 2:],
    ])


def is_canonical_plate(plate: str) -> bool:
    """True when the plate survives normalize/decode unchanged."""
    normalized = normalize_plate(plate)
    if len(normalized) < 4 or not normalized.isalnum():
        return False
    return decode_plate(normalized) == plate


def user_key(username: str) -> str:
    return f'{USER_PREFIX}{username}'


def username_from_key(key: str) -> str:
    return key[len(USER_PREFIX):]


def session_key(session_id: str) -> str:
    return f'{SESSION_PREFIX}{session_id}'


def vehicle_key(plate: str) -> str:
    return f'{VEHICLE_PREFIX}{normalize_plate(plate)}'


def plate_from_key(key: str) -> str:
    return decode_plate(key[len(VEHICLE_PREFIX):])


def history_key(date: str) -> str:
    return f'{HISTORY_PREFIX}{date}'


def history_sort_key(date: str, fee_type: str) -> str:
    return f'{HISTORY_PREFIX}{date}#{fee_type}'


def search_key(fragment: str) -> str:
    return f'{SEARCH_PREFIX}{normalize_plate(fragment)}'


def fee_index_key(fee_type: str) -> str:
    return f'{FEE_PREFIX}{fee_type.upper()}'


def fee_index(fee_type: FeeType) -> Tuple[str, DateField]:
    """Return (index name, date attribute) for a supported fee type."""
    return FEE_TYPES[fee_type]

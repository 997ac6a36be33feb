"""
Entity codec: conversion between domain entities and DynamoDB attribute maps.

Items are written in the low-level client format (``{'S': ...}``,
``{'N': ...}``) so the same maps can be used for ``put_item`` and inside
``transact_write_items``. Every secondary-index projection of an entity is
written on the entity's own item.
"""

from typing import Dict, Any, Optional

from vehicle_fees import keys
from vehicle_fees.types import User, Session, Vehicle, TransactionHistory

Item = Dict[str, Dict[str, Any]]


def _s(value: str) -> Dict[str, str]:
    return {'S': value}


def _get_s(item: Item, name: str, default: str = '') -> str:
    value = item.get(name)
    if not value or 'S' not in value:
        return default
    return value['S']


def user_to_item(user: User, password_digest: str, created_at: str) -> Item:
    """
    Build the user item. The plaintext password never reaches the item.
    """
    item: Item = {
        keys.PK: _s(keys.user_key(user['username'])),
        keys.SK: _s(keys.user_key(user['username'])),
        'password': _s(password_digest),
        'created_at': _s(created_at),
    }
    if user.get('phone'):
        item['phone'] = _s(user['phone'])
    return item


def user_from_item(item: Item) -> User:
    """Decode a user item; ``password`` holds the stored digest."""
    user: User = {
        'username': keys.username_from_key(_get_s(item, keys.PK)),
        'password': _get_s(item, 'password'),
    }
    phone = _get_s(item, 'phone')
    if phone:
        user['phone'] = phone
    return user


def session_to_item(session: Session, ttl: int) -> Item:
    return {
        keys.PK: _s(keys.user_key(session['username'])),
        keys.SK: _s(keys.session_key(session['session_id'])),
        'GSI1PK': _s(keys.session_key(session['session_id'])),
        'GSI1SK': _s(keys.user_key(session['username'])),
        'created_at': _s(session['created_at']),
        'expires_at': _s(session['expires_at']),
        keys.TTL_ATTRIBUTE: {'N': str(ttl)},
    }


def session_from_item(item: Item) -> Session:
    return {
        'session_id': _get_s(item, keys.SK)[len(keys.SESSION_PREFIX):],
        'username': keys.username_from_key(_get_s(item, keys.PK)),
        'created_at': _get_s(item, 'created_at'),
        'expires_at': _get_s(item, 'expires_at'),
    }


def vehicle_to_item(vehicle: Vehicle, created_at: str) -> Item:
    """
    Build the canonical vehicle item with its list-all and per-fee-type
    index projections.
    """
    key = keys.vehicle_key(vehicle['vehicle_no'])
    item: Item = {
        keys.PK: _s(key),
        keys.SK: _s(key),
        'GSI2PK': _s(keys.VEHICLE_MARKER),
        'GSI2SK': _s(key),
        'owner': _s(vehicle['owner']),
        'created_at': _s(created_at),
        'updated_at': _s(created_at),
    }
    for fee_type, (index_name, date_field) in keys.FEE_TYPES.items():
        pk_name, sk_name = keys.index_keys(index_name)
        item[pk_name] = _s(keys.fee_index_key(fee_type))
        item[sk_name] = _s(key)
        item[date_field] = _s(vehicle[date_field])
    return item


def vehicle_from_item(item: Item) -> Vehicle:
    """Decode a vehicle item; absent attributes decode to empty strings."""
    return {
        'vehicle_no': keys.plate_from_key(_get_s(item, keys.PK)),
        'owner': _get_s(item, 'owner'),
        'tax_date': _get_s(item, 'tax_date'),
        'fitness_date': _get_s(item, 'fitness_date'),
        'insurance_date': _get_s(item, 'insurance_date'),
        'route_date': _get_s(item, 'route_date'),
    }


def search_entry_to_item(plate: str) -> Item:
    normalized = keys.normalize_plate(plate)
    return {
        keys.PK: _s(keys.SEARCH_PARTITION),
        keys.SK: _s(keys.search_key(normalized)),
        'LSI1SK': _s(normalized[-keys.SEARCH_TAIL_LENGTH:]),
        'vehicle_no': _s(plate),
    }


def search_entry_plate(item: Item) -> str:
    """Return the display plate a search entry points at."""
    plate = _get_s(item, 'vehicle_no')
    if plate:
        return plate
    return keys.decode_plate(_get_s(item, keys.SK)[len(keys.SEARCH_PREFIX):])


def history_to_item(history: TransactionHistory) -> Item:
    item: Item = {
        keys.PK: _s(keys.vehicle_key(history['vehicle_no'])),
        keys.SK: _s(keys.history_sort_key(history['date'], history['transaction_type'])),
        'payer': _s(history['payer']),
        'GSI3PK': _s(keys.HISTORY_MARKER),
        'GSI3SK': _s(keys.history_key(history['date'])),
    }
    for optional in ('new_date', 'paid_at'):
        if history.get(optional):
            item[optional] = _s(history[optional])
    return item


def history_from_item(item: Item) -> TransactionHistory:
    # SK = TRANSACTION#<date>#<fee type>
    _, date, transaction_type = _get_s(item, keys.SK).split('#', 2)
    history: TransactionHistory = {
        'vehicle_no': keys.plate_from_key(_get_s(item, keys.PK)),
        'date': date,
        'transaction_type': transaction_type,
        'payer': _get_s(item, 'payer'),
    }
    for optional in ('new_date', 'paid_at'):
        value = _get_s(item, optional)
        if value:
            history[optional] = value
    return history


def history_item_key(history: TransactionHistory) -> Item:
    return {
        keys.PK: _s(keys.vehicle_key(history['vehicle_no'])),
        keys.SK: _s(keys.history_sort_key(history['date'], history['transaction_type'])),
    }


def item_key(pk: str, sk: Optional[str] = None) -> Item:
    """Primary key map; the sort key defaults to the partition key."""
    return {keys.PK: _s(pk), keys.SK: _s(sk if sk is not None else pk)}

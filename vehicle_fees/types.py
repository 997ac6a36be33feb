"""
Shared type definitions for the Vehicle Fee data-access layer.

This module defines TypedDict classes for the domain entities and request
payloads, plus the tagged due-date window used by fee queries.
"""

from typing import TypedDict, Literal, Optional

# Fee type literal type
FeeType = Literal['tax', 'fitness', 'insurance', 'route']

# Date attributes a vehicle carries, in update order
DateField = Literal['tax_date', 'fitness_date', 'insurance_date', 'route_date']


class _UserRequired(TypedDict):
    username: str
    password: str


class User(_UserRequired, total=False):
    """User credentials; password is plaintext on input, a digest once stored."""
    phone: Optional[str]


class Session(TypedDict):
    """An authenticated session; session_id is the bearer token."""
    session_id: str
    username: str
    created_at: str
    expires_at: str


class Vehicle(TypedDict):
    """Vehicle with its four fee due dates (YYYY-MM-DD)."""
    vehicle_no: str
    owner: str
    tax_date: str
    fitness_date: str
    insurance_date: str
    route_date: str


class _VehicleUpdateRequired(TypedDict):
    vehicle_no: str


class VehicleUpdate(_VehicleUpdateRequired, total=False):
    """Sparse update of a vehicle's due dates; unset or None fields are left alone."""
    tax_date: Optional[str]
    fitness_date: Optional[str]
    insurance_date: Optional[str]
    route_date: Optional[str]


class _HistoryRequired(TypedDict):
    vehicle_no: str
    date: str
    transaction_type: str
    payer: str


class TransactionHistory(_HistoryRequired, total=False):
    """
    Audit row for one fee payment.

    ``date`` is the due date in force before the payment; ``new_date`` is the
    date the payment set.
    """
    new_date: str
    paid_at: str


class DueWindow:
    """
    Tagged due-date window for fee queries.

    Either ``DueWindow.overdue()`` (date strictly before today) or
    ``DueWindow.within(days)`` (date in ``[today, today + days]``).
    """

    __slots__ = ('overdue_only', 'days')

    def __init__(self, overdue_only: bool, days: int = 0):
        if days < 0:
            raise ValueError('days must be non-negative')
        self.overdue_only = overdue_only
        self.days = days

    @classmethod
    def overdue(cls) -> 'DueWindow':
        return cls(True)

    @classmethod
    def within(cls, days: int) -> 'DueWindow':
        return cls(False, days)

    @classmethod
    def from_days(cls, days: int) -> 'DueWindow':
        """Legacy integer contract: 0 means overdue, n > 0 means due within n days."""
        if days == 0:
            return cls.overdue()
        return cls.within(days)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DueWindow):
            return NotImplemented
        return (self.overdue_only, self.days) == (other.overdue_only, other.days)

    def __hash__(self) -> int:
        return hash((self.overdue_only, self.days))

    def __repr__(self) -> str:
        if self.overdue_only:
            return 'DueWindow.overdue()'
        return f'DueWindow.within({self.days})'

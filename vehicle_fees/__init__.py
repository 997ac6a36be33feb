"""Single-table DynamoDB data-access layer for the vehicle fee tracker."""

from .types import (
    FeeType,
    User,
    Session,
    Vehicle,
    VehicleUpdate,
    TransactionHistory,
    DueWindow
)

from .errors import (
    DomainError,
    ValidationError,
    NotFoundError,
    ConflictError,
    UnauthorizedError,
    StoreFailure
)

from .data_access import (
    DataAccess,
    DynamoDataAccess
)

from .config import (
    load_config,
    create_data_access
)

__all__ = [
    # Types
    'FeeType',
    'User',
    'Session',
    'Vehicle',
    'VehicleUpdate',
    'TransactionHistory',
    'DueWindow',
    # Errors
    'DomainError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'UnauthorizedError',
    'StoreFailure',
    # Data access
    'DataAccess',
    'DynamoDataAccess',
    # Configuration
    'load_config',
    'create_data_access',
]

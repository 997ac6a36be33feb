"""
DataAccess interface and its DynamoDB implementation.

The interface is the whole surface the rest of the application sees:
user/session management, vehicle management, fee payments and the audit
history. ``DynamoDataAccess`` wires the four stores over one client and one
table, and wraps every operation with the structured request lifecycle:
1. Create a logger with a fresh correlation ID
2. Log operation start (sensitive arguments redacted)
3. Run the operation
4. Log completion or the error with latency
5. Publish CloudWatch metrics

Domain errors are logged and re-raised unchanged; anything else is logged as
an unexpected error and re-raised.
"""

import functools
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Union

from vehicle_fees.errors import DomainError
from vehicle_fees.fee_transactions import FeeTransactionCoordinator
from vehicle_fees.history_store import DEFAULT_HISTORY_DAYS, HistoryStore
from vehicle_fees.logger import create_logger
from vehicle_fees.session_store import SessionStore
from vehicle_fees.table import Clock
from vehicle_fees.types import DueWindow, Session, TransactionHistory, User, Vehicle, VehicleUpdate
from vehicle_fees.vehicle_store import VehicleStore


class DataAccess(ABC):
    """
    Abstract data-access interface for the vehicle fee tracker.

    Every operation except ``create_user``, ``authenticate`` and ``is_valid``
    requires a valid session token and raises UnauthorizedError otherwise.
    """

    @abstractmethod
    def create_user(self, user: User) -> None:
        ...

    @abstractmethod
    def authenticate(self, user: User) -> Session:
        ...

    @abstractmethod
    def revoke_sessions(self, token: Optional[str]) -> str:
        ...

    @abstractmethod
    def change_password(self, token: Optional[str], old_password: str, new_password: str) -> None:
        ...

    @abstractmethod
    def add_vehicle(self, token: Optional[str], vehicle: Vehicle) -> None:
        ...

    @abstractmethod
    def list_vehicles(self, token: Optional[str]) -> List[Vehicle]:
        ...

    @abstractmethod
    def list_vehicles_by_fee(
        self,
        token: Optional[str],
        fee_type: str,
        window: Union[DueWindow, int]
    ) -> List[Vehicle]:
        ...

    @abstractmethod
    def search_vehicles(self, token: Optional[str], fragment: str) -> List[Vehicle]:
        ...

    @abstractmethod
    def pay_fee(self, token: Optional[str], fee_type: str, update: VehicleUpdate) -> None:
        ...

    @abstractmethod
    def update_vehicle(self, token: Optional[str], update: VehicleUpdate) -> None:
        ...

    @abstractmethod
    def view_history(self, token: Optional[str], days: int = DEFAULT_HISTORY_DAYS) -> List[TransactionHistory]:
        ...

    @abstractmethod
    def undo_history(self, token: Optional[str], record: TransactionHistory) -> None:
        ...

    @abstractmethod
    def is_valid(self, token: Optional[str]) -> bool:
        ...


def instrumented(operation: str) -> Callable:
    """
    Wrap a DynamoDataAccess method with the structured request lifecycle.

    Args:
        operation: Operation name used in logs and as the metrics dimension
    """
    def decorator(method: Callable) -> Callable:
        signature = inspect.signature(method)

        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            logger = create_logger(operation, cloudwatch=self.cloudwatch)

            bound = signature.bind(self, *args, **kwargs)
            arguments = {name: value for name, value in bound.arguments.items() if name != 'self'}
            logger.log_request_start(arguments=arguments)

            try:
                result = method(self, *args, **kwargs)
            except DomainError as error:
                logger.log_domain_error(
                    error_code=error.code,
                    error_message=error.message,
                    details=error.details
                )
                logger.publish_metrics()
                raise
            except Exception as error:
                logger.log_unexpected_error(
                    error_type=type(error).__name__,
                    error_message=str(error)
                )
                logger.publish_metrics()
                raise

            if isinstance(result, list):
                logger.log_request_complete(count=len(result))
            else:
                logger.log_request_complete()
            logger.publish_metrics()
            return result

        return wrapper

    return decorator


class DynamoDataAccess(DataAccess):
    """
    DataAccess over a single DynamoDB table.

    Usage:
        data = DynamoDataAccess(boto3.client('dynamodb'), 'VehicleDB')
        session = data.authenticate({'username': 'alice', 'password': 'secret'})
        data.list_vehicles(session['session_id'])
    """

    def __init__(
        self,
        client: Any,
        table_name: str,
        clock: Optional[Clock] = None,
        hasher: Optional[Any] = None,
        cloudwatch: Optional[Any] = None
    ):
        """
        Args:
            client: Low-level boto3 DynamoDB client
            table_name: Name of the single table
            clock: Returns the current aware datetime (default: UTC now)
            hasher: Password hasher (default: bcrypt)
            cloudwatch: boto3 CloudWatch client; None disables metrics publishing
        """
        self.client = client
        self.table_name = table_name
        self.cloudwatch = cloudwatch

        self.sessions = SessionStore(client, table_name, clock, hasher)
        self.vehicles = VehicleStore(client, table_name, self.sessions, clock)
        self.fees = FeeTransactionCoordinator(client, table_name, self.sessions, self.vehicles, clock)
        self.history = HistoryStore(client, table_name, self.sessions, clock)

    @instrumented('create-user')
    def create_user(self, user: User) -> None:
        self.sessions.create_user(user)

    @instrumented('authenticate')
    def authenticate(self, user: User) -> Session:
        return self.sessions.authenticate(user)

    @instrumented('revoke-sessions')
    def revoke_sessions(self, token: Optional[str]) -> str:
        return self.sessions.revoke_all(token)

    @instrumented('change-password')
    def change_password(self, token: Optional[str], old_password: str, new_password: str) -> None:
        self.sessions.change_password(token, old_password, new_password)

    @instrumented('add-vehicle')
    def add_vehicle(self, token: Optional[str], vehicle: Vehicle) -> None:
        self.vehicles.add_vehicle(token, vehicle)

    @instrumented('list-vehicles')
    def list_vehicles(self, token: Optional[str]) -> List[Vehicle]:
        return self.vehicles.list_all(token)

    @instrumented('list-vehicles-by-fee')
    def list_vehicles_by_fee(
        self,
        token: Optional[str],
        fee_type: str,
        window: Union[DueWindow, int]
    ) -> List[Vehicle]:
        return self.vehicles.list_by_fee_type(token, fee_type, window)

    def get_expire(self, token: Optional[str]) -> List[Vehicle]:
        """Vehicles whose tax is overdue."""
        return self.list_vehicles_by_fee(token, 'tax', DueWindow.overdue())

    @instrumented('search-vehicles')
    def search_vehicles(self, token: Optional[str], fragment: str) -> List[Vehicle]:
        return self.vehicles.search(token, fragment)

    @instrumented('pay-fee')
    def pay_fee(self, token: Optional[str], fee_type: str, update: VehicleUpdate) -> None:
        self.fees.pay_fee(token, fee_type, update)

    @instrumented('update-vehicle')
    def update_vehicle(self, token: Optional[str], update: VehicleUpdate) -> None:
        self.fees.update_vehicle(token, update)

    @instrumented('view-history')
    def view_history(self, token: Optional[str], days: int = DEFAULT_HISTORY_DAYS) -> List[TransactionHistory]:
        return self.history.view_history(token, days)

    @instrumented('undo-history')
    def undo_history(self, token: Optional[str], record: TransactionHistory) -> None:
        self.history.undo_history(token, record)

    def is_valid(self, token: Optional[str]) -> bool:
        return self.sessions.is_valid(token)

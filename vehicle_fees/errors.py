"""
Domain error classes for the Vehicle Fee data-access layer.

These error classes provide explicit, typed exceptions that map cleanly to API
responses. Callers branch on the exception type (or its ``code``), never on the
message text.
"""

from typing import Dict, Any, List


class DomainError(Exception):
    """
    Base class for all domain errors.

    Domain errors are explicit business logic errors that should be mapped
    to appropriate HTTP responses by the handler layer.
    """

    def __init__(self, code: str, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """
    Raised when input validation fails.

    Maps to HTTP 400 Bad Request.
    Details should contain field-level validation errors.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('VALIDATION_ERROR', message, details or {})

    @classmethod
    def from_errors(cls, errors: List[Dict[str, str]]) -> 'ValidationError':
        """Build a ValidationError from a list of field errors."""
        message = errors[0]['message'] if len(errors) == 1 else 'Invalid request'
        return cls(message, {'errors': errors})


class NotFoundError(DomainError):
    """
    Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('NOT_FOUND', message, details or {})


class ConflictError(DomainError):
    """
    Raised when an operation conflicts with existing state.

    Maps to HTTP 409 Conflict.
    Examples: duplicate username, duplicate vehicle, undo of a superseded payment.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('CONFLICT', message, details or {})


class UnauthorizedError(DomainError):
    """
    Raised when the session token is missing, unknown or expired,
    or when credentials do not match.

    Maps to HTTP 401 Unauthorized.
    """

    def __init__(self, message: str = 'Unauthorized'):
        super().__init__('UNAUTHORIZED', message, {})


class StoreFailure(DomainError):
    """
    Raised when DynamoDB rejects a request for a reason that is not a
    domain condition (throttling after retries, cancelled transactions,
    transport failures).

    Maps to HTTP 500 Internal Server Error.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('STORE_FAILURE', message, details or {})


# Status codes used by the request-handling layer
ERROR_STATUS_CODES = {
    'VALIDATION_ERROR': 400,
    'UNAUTHORIZED': 401,
    'NOT_FOUND': 404,
    'CONFLICT': 409,
    'STORE_FAILURE': 500,
}


def status_code_for(error: DomainError) -> int:
    """Return the HTTP status code for a domain error (500 if unknown)."""
    return ERROR_STATUS_CODES.get(error.code, 500)

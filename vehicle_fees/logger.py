"""
Structured logging utility for data-access operations.

Every DataAccess operation logs its lifecycle as single-line JSON on stdout
(collected by CloudWatch Logs when running in Lambda):
- operation start with correlation ID
- completion with latency
- domain errors (expected failures such as UNAUTHORIZED or CONFLICT)
- unexpected errors

Sensitive fields (passwords, tokens) are redacted before anything is written.
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, Optional

from ulid import ULID

from vehicle_fees.metrics import create_metrics_client


# Sensitive field names that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'old_password',
    'new_password',
    'token',
    'secret',
    'authorization',
    'credentials',
    'session_id',
    'sessionid',
}


class StructuredLogger:
    """
    Structured logger for one data-access operation.

    Usage:
        logger = StructuredLogger(correlation_id='01J...', operation='pay-fee')
        logger.log_request_start(feeType='tax')
        # ... perform operation ...
        logger.log_request_complete(vehicleNo='DHA-12-AB-1234')
        logger.publish_metrics()
    """

    def __init__(self, correlation_id: str, operation: str, cloudwatch: Optional[Any] = None):
        """
        Args:
            correlation_id: Unique identifier for request tracing
            operation: Operation name for logs and metrics
            cloudwatch: Optional boto3 CloudWatch client for metrics
        """
        self.correlation_id = correlation_id
        self.operation = operation
        self.start_time = time.monotonic()
        self.metrics = create_metrics_client(operation, cloudwatch)

    def _sanitize_data(self, data: Any) -> Any:
        """
        Recursively redact sensitive fields from log data.
        """
        if isinstance(data, list):
            return [self._sanitize_data(item) for item in data]
        if not isinstance(data, dict):
            return data

        sanitized = {}
        for key, value in data.items():
            if str(key).lower() in SENSITIVE_FIELDS:
                sanitized[key] = '[REDACTED]'
            else:
                sanitized[key] = self._sanitize_data(value)
        return sanitized

    def _latency_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)

    def _log(self, event: str, **kwargs: Any) -> None:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'correlationId': self.correlation_id,
            'operation': self.operation,
            'event': event,
            **self._sanitize_data(kwargs)
        }

        print(json.dumps(log_entry, default=str))

    def log_request_start(self, **additional_fields: Any) -> None:
        self._log('request_start', **additional_fields)

    def log_request_complete(self, **additional_fields: Any) -> None:
        """
        Log successful completion with latency and record count/latency metrics.
        """
        latency_ms = self._latency_ms()

        self._log('request_complete', latencyMs=latency_ms, **additional_fields)

        self.metrics.emit_request_count()
        self.metrics.emit_latency(latency_ms)

    def log_domain_error(self, error_code: str, error_message: str, **additional_fields: Any) -> None:
        """
        Log an expected business error (e.g. UNAUTHORIZED, CONFLICT).
        """
        latency_ms = self._latency_ms()

        self._log(
            'domain_error',
            errorCode=error_code,
            errorMessage=error_message,
            latencyMs=latency_ms,
            **additional_fields
        )

        self.metrics.emit_request_count()
        self.metrics.emit_error(error_code=error_code)
        self.metrics.emit_latency(latency_ms)

    def log_unexpected_error(self, error_type: str, error_message: str, **additional_fields: Any) -> None:
        """
        Log a system error that should not occur during normal operation.
        """
        latency_ms = self._latency_ms()

        self._log(
            'unexpected_error',
            errorType=error_type,
            errorMessage=error_message,
            latencyMs=latency_ms,
            **additional_fields
        )

        self.metrics.emit_request_count()
        self.metrics.emit_error(error_code='INTERNAL_ERROR')
        self.metrics.emit_latency(latency_ms)

    def publish_metrics(self) -> None:
        self.metrics.publish()


def create_logger(
    operation: str,
    correlation_id: Optional[str] = None,
    cloudwatch: Optional[Any] = None
) -> StructuredLogger:
    """
    Create a structured logger, generating a ULID correlation ID when none is given.
    """
    return StructuredLogger(correlation_id or str(ULID()), operation, cloudwatch)

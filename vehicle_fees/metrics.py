"""
CloudWatch metrics utility for data-access operations.

This module emits custom CloudWatch metrics for request count, error count
and latency per DataAccess operation. Metrics are batched in memory and sent
with ``put_metric_data`` when ``publish()`` is called; with no CloudWatch
client configured, publishing is skipped.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional, List


# Metric namespace for all vehicle fee metrics
METRIC_NAMESPACE = 'VehicleFees'

# CloudWatch PutMetricData limit per request
PUBLISH_BATCH_SIZE = 20


class MetricsClient:
    """
    CloudWatch metrics client for one operation.

    Usage:
        metrics = MetricsClient(operation='pay-fee', cloudwatch=boto3.client('cloudwatch'))
        metrics.emit_request_count()
        metrics.emit_latency(latency_ms=150)
        metrics.emit_error(error_code='NOT_FOUND')
        metrics.publish()
    """

    def __init__(self, operation: str, cloudwatch: Optional[Any] = None):
        """
        Initialize the metrics client.

        Args:
            operation: Operation name (e.g., 'pay-fee', 'view-history')
            cloudwatch: boto3 CloudWatch client; None disables publishing
        """
        if not operation or not operation.strip():
            raise ValueError('Operation name is required for metrics')

        self.operation = operation
        self.cloudwatch = cloudwatch
        self._metric_data: List[Dict[str, Any]] = []

    @property
    def pending(self) -> List[Dict[str, Any]]:
        return list(self._metric_data)

    def _add_metric(
        self,
        metric_name: str,
        value: float,
        unit: str,
        dimensions: Optional[List[Dict[str, str]]] = None
    ) -> None:
        all_dimensions = [{'Name': 'Operation', 'Value': self.operation}]
        if dimensions:
            all_dimensions.extend(dimensions)

        self._metric_data.append({
            'MetricName': metric_name,
            'Value': value,
            'Unit': unit,
            'Timestamp': datetime.now(timezone.utc),
            'Dimensions': all_dimensions
        })

    def emit_request_count(self, count: int = 1) -> None:
        self._add_metric(
            metric_name='RequestCount',
            value=float(count),
            unit='Count'
        )

    def emit_error(self, error_code: Optional[str] = None) -> None:
        """
        Emit error metric, optionally with the error code as a dimension.
        """
        dimensions = []
        if error_code:
            dimensions.append({
                'Name': 'ErrorCode',
                'Value': error_code
            })

        self._add_metric(
            metric_name='ErrorCount',
            value=1.0,
            unit='Count',
            dimensions=dimensions or None
        )

    def emit_latency(self, latency_ms: int) -> None:
        if latency_ms < 0:
            raise ValueError('Latency must be non-negative')

        self._add_metric(
            metric_name='Latency',
            value=float(latency_ms),
            unit='Milliseconds'
        )

    def publish(self) -> None:
        """
        Publish all accumulated metrics to CloudWatch in batches of 20.

        Publishing failures are printed and dropped; metrics never fail the
        operation they describe.
        """
        if not self._metric_data:
            return

        if self.cloudwatch is None:
            self._metric_data = []
            return

        try:
            for i in range(0, len(self._metric_data), PUBLISH_BATCH_SIZE):
                batch = self._metric_data[i:i + PUBLISH_BATCH_SIZE]

                self.cloudwatch.put_metric_data(
                    Namespace=METRIC_NAMESPACE,
                    MetricData=batch
                )
        except Exception as error:
            print(f'Failed to publish metrics: {error}')
        finally:
            self._metric_data = []


def create_metrics_client(operation: str, cloudwatch: Optional[Any] = None) -> MetricsClient:
    return MetricsClient(operation, cloudwatch)

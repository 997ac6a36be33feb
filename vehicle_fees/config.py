"""
Configuration for the DynamoDB data-access layer.

Configuration is read once from environment variables and validated
immediately; an invalid value fails fast with ValueError instead of
surfacing later as a confusing DynamoDB error.

Environment variables:
- TABLE_NAME: DynamoDB table (default: VehicleDB)
- AWS_REGION: client region (default: boto3's own resolution)
- DYNAMODB_ENDPOINT_URL: endpoint override, e.g. DynamoDB Local
- DYNAMODB_MAX_ATTEMPTS: botocore retry attempts, >= 1 (default: 3)
- DYNAMODB_RETRY_MODE: legacy, standard or adaptive (default: standard)
- METRICS_ENABLED: publish CloudWatch metrics (default: false)
"""

import os
from typing import Any, Mapping, Optional, TypedDict

import boto3
from botocore.config import Config as BotoConfig

from vehicle_fees.data_access import DynamoDataAccess

DEFAULT_TABLE_NAME = 'VehicleDB'
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_MODE = 'standard'
RETRY_MODES = ('legacy', 'standard', 'adaptive')

_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_FALSE_VALUES = ('0', 'false', 'no', 'off', '')


class Config(TypedDict):
    table_name: str
    region: Optional[str]
    endpoint_url: Optional[str]
    max_attempts: int
    retry_mode: str
    metrics_enabled: bool


def load_config(environ: Mapping[str, str] = os.environ) -> Config:
    """
    Load and validate configuration from environment variables.

    Args:
        environ: Variable mapping (defaults to the process environment)

    Returns:
        Validated configuration

    Raises:
        ValueError: If any variable holds an invalid value
    """
    errors = []

    table_name = environ.get('TABLE_NAME', DEFAULT_TABLE_NAME).strip()
    if not table_name:
        errors.append('TABLE_NAME must not be empty')

    raw_attempts = environ.get('DYNAMODB_MAX_ATTEMPTS', str(DEFAULT_MAX_ATTEMPTS)).strip()
    max_attempts = DEFAULT_MAX_ATTEMPTS
    try:
        max_attempts = int(raw_attempts)
        if max_attempts < 1:
            errors.append('DYNAMODB_MAX_ATTEMPTS must be at least 1')
    except ValueError:
        errors.append(f'DYNAMODB_MAX_ATTEMPTS must be an integer, got {raw_attempts!r}')

    retry_mode = environ.get('DYNAMODB_RETRY_MODE', DEFAULT_RETRY_MODE).strip().lower()
    if retry_mode not in RETRY_MODES:
        errors.append(f"DYNAMODB_RETRY_MODE must be one of {', '.join(RETRY_MODES)}")

    raw_metrics = environ.get('METRICS_ENABLED', 'false').strip().lower()
    if raw_metrics not in _TRUE_VALUES + _FALSE_VALUES:
        errors.append(f'METRICS_ENABLED must be a boolean, got {raw_metrics!r}')

    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return {
        'table_name': table_name,
        'region': environ.get('AWS_REGION') or None,
        'endpoint_url': environ.get('DYNAMODB_ENDPOINT_URL') or None,
        'max_attempts': max_attempts,
        'retry_mode': retry_mode,
        'metrics_enabled': raw_metrics in _TRUE_VALUES,
    }


def create_dynamodb_client(config: Config) -> Any:
    """Build the low-level DynamoDB client with the configured retry policy."""
    return boto3.client(
        'dynamodb',
        region_name=config['region'],
        endpoint_url=config['endpoint_url'],
        config=BotoConfig(retries={'max_attempts': config['max_attempts'], 'mode': config['retry_mode']})
    )


def create_data_access(config: Optional[Config] = None) -> DynamoDataAccess:
    """
    Build a DynamoDataAccess from configuration.

    Args:
        config: Configuration (default: ``load_config()``)
    """
    config = config or load_config()

    cloudwatch = None
    if config['metrics_enabled']:
        cloudwatch = boto3.client('cloudwatch', region_name=config['region'])

    return DynamoDataAccess(
        create_dynamodb_client(config),
        config['table_name'],
        cloudwatch=cloudwatch
    )

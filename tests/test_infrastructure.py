"""
Synthesis tests for the CDK table definition.

Skipped when the CDK toolchain (aws-cdk-lib and its Node.js runtime) is
not available.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'deployments'))

try:
    from aws_cdk import App
    from aws_cdk.assertions import Template
    from vehicles.vehicle_fees_stack import VehicleFeesStack
except Exception as error:  # jsii raises non-ImportError exceptions without Node.js
    pytest.skip(f'CDK toolchain unavailable: {error}', allow_module_level=True)


@pytest.fixture(scope='module')
def template():
    app = App()
    stack = VehicleFeesStack(app, 'vehicle-fees-test-stack', env_name='test', table_name='VehicleDB')
    return Template.from_stack(stack)


def test_single_table(template):
    template.resource_count_is('AWS::DynamoDB::Table', 1)


def test_table_settings(template):
    template.has_resource_properties('AWS::DynamoDB::Table', {
        'TableName': 'VehicleDB',
        'BillingMode': 'PAY_PER_REQUEST',
        'TimeToLiveSpecification': {'AttributeName': 'ttl', 'Enabled': True},
        'PointInTimeRecoverySpecification': {'PointInTimeRecoveryEnabled': True},
    })


def test_indexes(template):
    table = next(iter(template.find_resources('AWS::DynamoDB::Table').values()))
    properties = table['Properties']

    global_indexes = {index['IndexName'] for index in properties['GlobalSecondaryIndexes']}
    assert global_indexes == {f'GSI{n}' for n in range(1, 8)}
    assert [index['IndexName'] for index in properties['LocalSecondaryIndexes']] == ['LSI1']
    assert table['DeletionPolicy'] == 'Retain'

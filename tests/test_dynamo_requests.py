"""
Request-shape tests for the DynamoDB implementation.

These run DynamoDataAccess against a real botocore client with a Stubber
attached, asserting the exact parameters each operation sends and how
service errors are translated.
"""

from datetime import datetime, timezone

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError
from botocore.stub import Stubber, ANY

from vehicle_fees import codec
from vehicle_fees.data_access import DynamoDataAccess
from vehicle_fees.errors import ConflictError, NotFoundError, StoreFailure, UnauthorizedError
from conftest import make_vehicle

TABLE = 'VehicleDB'
NOW = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)
STAMP = '2024-01-15T09:00:00Z'
VEHICLE_KEY = {'PK': {'S': 'CAR#DHA12AB1234'}, 'SK': {'S': 'CAR#DHA12AB1234'}}


class PlainHasher:
    """Deterministic hasher so request parameters can be asserted exactly."""

    def hash(self, plain):
        return f'hashed:{plain}'

    def verify(self, plain, digest):
        return digest == self.hash(plain)


@pytest.fixture
def client():
    return boto3.client(
        'dynamodb',
        region_name='us-east-1',
        aws_access_key_id='testing',
        aws_secret_access_key='testing'
    )


@pytest.fixture
def stubber(client):
    with Stubber(client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def data(client):
    return DynamoDataAccess(client, TABLE, clock=lambda: NOW, hasher=PlainHasher())


def expect_session(stubber, token='tok', username='alice'):
    items = []
    if username:
        items.append({
            'PK': {'S': f'USER#{username}'},
            'SK': {'S': f'SESSION#{token}'},
            'GSI1PK': {'S': f'SESSION#{token}'},
            'GSI1SK': {'S': f'USER#{username}'},
        })
    stubber.add_response(
        'query',
        {'Items': items, 'Count': len(items)},
        {
            'TableName': TABLE,
            'IndexName': 'GSI1',
            'KeyConditionExpression': '#pk = :pk',
            'ExpressionAttributeNames': {'#pk': 'GSI1PK'},
            'ExpressionAttributeValues': {':pk': {'S': f'SESSION#{token}'}},
        }
    )


class TestUserRequests:

    def test_create_user_is_a_conditional_put(self, data, stubber):
        stubber.add_response('put_item', {}, {
            'TableName': TABLE,
            'Item': {
                'PK': {'S': 'USER#alice'},
                'SK': {'S': 'USER#alice'},
                'password': {'S': 'hashed:secret'},
                'created_at': {'S': STAMP},
            },
            'ConditionExpression': 'attribute_not_exists(#pk) AND attribute_not_exists(#sk)',
            'ExpressionAttributeNames': {'#pk': 'PK', '#sk': 'SK'},
        })

        data.create_user({'username': 'alice', 'password': 'secret'})

    def test_failed_uniqueness_condition_is_conflict(self, data, stubber):
        stubber.add_client_error('put_item', service_error_code='ConditionalCheckFailedException')

        with pytest.raises(ConflictError):
            data.create_user({'username': 'alice', 'password': 'secret'})

    def test_login_writes_session_with_ttl(self, data, stubber):
        stubber.add_response(
            'get_item',
            {'Item': {'PK': {'S': 'USER#alice'}, 'SK': {'S': 'USER#alice'}, 'password': {'S': 'hashed:secret'}}},
            {'TableName': TABLE, 'Key': {'PK': {'S': 'USER#alice'}, 'SK': {'S': 'USER#alice'}}}
        )
        stubber.add_response('put_item', {}, {'TableName': TABLE, 'Item': ANY})

        session = data.authenticate({'username': 'alice', 'password': 'secret'})

        assert session['expires_at'] == '2024-01-22T09:00:00Z'

    def test_unknown_token_stops_before_any_write(self, data, stubber):
        expect_session(stubber, token='nope', username=None)

        with pytest.raises(UnauthorizedError):
            data.add_vehicle('nope', make_vehicle())


class UnreachableWrites:
    """Reads go to the stubbed client; every write fails before reaching DynamoDB."""

    def __init__(self, client):
        self.client = client

    def __getattr__(self, name):
        return getattr(self.client, name)

    def put_item(self, **kwargs):
        raise EndpointConnectionError(endpoint_url='http://localhost:8000')

    update_item = put_item


class TestTransportFailures:

    @pytest.fixture
    def data(self, client):
        return DynamoDataAccess(UnreachableWrites(client), TABLE, clock=lambda: NOW, hasher=PlainHasher())

    def expect_user(self, stubber):
        stubber.add_response(
            'get_item',
            {'Item': {'PK': {'S': 'USER#alice'}, 'SK': {'S': 'USER#alice'}, 'password': {'S': 'hashed:secret'}}},
            {'TableName': TABLE, 'Key': {'PK': {'S': 'USER#alice'}, 'SK': {'S': 'USER#alice'}}}
        )

    def test_signup(self, data, stubber):
        with pytest.raises(StoreFailure) as exc_info:
            data.create_user({'username': 'alice', 'password': 'secret'})

        assert exc_info.value.details == {'operation': 'PutItem'}

    def test_login(self, data, stubber):
        self.expect_user(stubber)

        with pytest.raises(StoreFailure) as exc_info:
            data.authenticate({'username': 'alice', 'password': 'secret'})

        assert exc_info.value.details == {'operation': 'PutItem'}

    def test_change_password(self, data, stubber):
        expect_session(stubber)
        self.expect_user(stubber)

        with pytest.raises(StoreFailure) as exc_info:
            data.change_password('tok', 'secret', 'new secret')

        assert exc_info.value.details == {'operation': 'UpdateItem'}


class TestVehicleRequests:

    def test_add_vehicle_is_one_transaction(self, data, stubber):
        expect_session(stubber)
        condition = {'ConditionExpression': 'attribute_not_exists(#pk)', 'ExpressionAttributeNames': {'#pk': 'PK'}}
        stubber.add_response('transact_write_items', {}, {'TransactItems': [
            {'Put': {'TableName': TABLE, 'Item': codec.vehicle_to_item(make_vehicle(), STAMP), **condition}},
            {'Put': {
                'TableName': TABLE,
                'Item': {
                    'PK': {'S': 'SEARCH'},
                    'SK': {'S': 'SEARCH#DHA12AB1234'},
                    'LSI1SK': {'S': '1234'},
                    'vehicle_no': {'S': 'DHA-12-AB-1234'},
                },
                **condition
            }},
        ]})

        data.add_vehicle('tok', make_vehicle())

    def test_listing_follows_last_evaluated_key(self, data, stubber):
        expect_session(stubber)
        first = codec.vehicle_to_item(make_vehicle(vehicle_no='ABC-1001'), STAMP)
        second = codec.vehicle_to_item(make_vehicle(vehicle_no='ABC-1002'), STAMP)
        query = {
            'TableName': TABLE,
            'IndexName': 'GSI2',
            'KeyConditionExpression': '#pk = :pk',
            'ExpressionAttributeNames': {'#pk': 'GSI2PK'},
            'ExpressionAttributeValues': {':pk': {'S': 'VEHICLE'}},
        }
        last_key = {'PK': first['PK'], 'SK': first['SK'], 'GSI2PK': first['GSI2PK'], 'GSI2SK': first['GSI2SK']}
        stubber.add_response('query', {'Items': [first], 'LastEvaluatedKey': last_key}, query)
        stubber.add_response('query', {'Items': [second]}, {**query, 'ExclusiveStartKey': last_key})

        vehicles = data.list_vehicles('tok')

        assert [v['vehicle_no'] for v in vehicles] == ['ABC-1001', 'ABC-1002']

    def test_throttled_query_is_store_failure(self, data, stubber):
        stubber.add_client_error('query', service_error_code='ProvisionedThroughputExceededException')

        with pytest.raises(StoreFailure) as exc_info:
            data.list_vehicles('tok')

        assert exc_info.value.details == {
            'operation': 'Query',
            'errorCode': 'ProvisionedThroughputExceededException',
        }


class TestFeeRequests:

    def expect_vehicle(self, stubber):
        stubber.add_response(
            'get_item',
            {'Item': codec.vehicle_to_item(make_vehicle(tax_date='2024-01-14'), STAMP)},
            {'TableName': TABLE, 'Key': VEHICLE_KEY}
        )

    def test_payment_transaction(self, data, stubber):
        expect_session(stubber)
        self.expect_vehicle(stubber)
        stubber.add_response('transact_write_items', {}, {'TransactItems': [
            {'Update': {
                'TableName': TABLE,
                'Key': VEHICLE_KEY,
                'UpdateExpression': 'SET #tax_date = :tax_date, #updated_at = :updated_at',
                'ConditionExpression': 'attribute_exists(#pk)',
                'ExpressionAttributeNames': {'#pk': 'PK', '#tax_date': 'tax_date', '#updated_at': 'updated_at'},
                'ExpressionAttributeValues': {':tax_date': {'S': '2025-01-14'}, ':updated_at': {'S': STAMP}},
            }},
            {'Put': {
                'TableName': TABLE,
                'Item': {
                    'PK': {'S': 'CAR#DHA12AB1234'},
                    'SK': {'S': 'TRANSACTION#2024-01-14#tax'},
                    'payer': {'S': 'alice'},
                    'GSI3PK': {'S': 'HISTORY'},
                    'GSI3SK': {'S': 'TRANSACTION#2024-01-14'},
                    'new_date': {'S': '2025-01-14'},
                    'paid_at': {'S': STAMP},
                },
                'ConditionExpression': 'attribute_not_exists(#pk)',
                'ExpressionAttributeNames': {'#pk': 'PK'},
            }},
        ]})

        data.pay_fee('tok', 'tax', {'vehicle_no': 'DHA-12-AB-1234', 'tax_date': '2025-01-14'})

    def test_vehicle_deleted_mid_payment(self, data, stubber):
        expect_session(stubber)
        self.expect_vehicle(stubber)
        stubber.add_client_error(
            'transact_write_items',
            service_error_code='TransactionCanceledException',
            service_message='Transaction cancelled',
            modeled_fields={'CancellationReasons': [{'Code': 'ConditionalCheckFailed'}, {'Code': 'None'}]}
        )

        with pytest.raises(NotFoundError):
            data.pay_fee('tok', 'tax', {'vehicle_no': 'DHA-12-AB-1234', 'tax_date': '2025-01-14'})

    def test_history_window_query(self, data, stubber):
        expect_session(stubber)
        stubber.add_response('query', {'Items': []}, {
            'TableName': TABLE,
            'IndexName': 'GSI3',
            'KeyConditionExpression': '#pk = :pk AND #sk BETWEEN :start AND :end',
            'ExpressionAttributeNames': {'#pk': 'GSI3PK', '#sk': 'GSI3SK'},
            'ExpressionAttributeValues': {
                ':pk': {'S': 'HISTORY'},
                ':start': {'S': 'TRANSACTION#2023-12-16'},
                ':end': {'S': 'TRANSACTION#2024-01-15'},
            },
            'ScanIndexForward': False,
        })

        assert data.view_history('tok', 30) == []

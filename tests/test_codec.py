"""
Tests for the entity codec.
"""

from vehicle_fees import codec
from conftest import make_vehicle


class TestUserItems:

    def test_user_item_holds_digest_only(self):
        item = codec.user_to_item(
            {'username': 'alice', 'password': 'plaintext', 'phone': '+8801700000000'},
            'digest',
            '2024-01-15T09:00:00Z'
        )
        assert item['PK'] == item['SK'] == {'S': 'USER#alice'}
        assert item['password'] == {'S': 'digest'}
        assert 'plaintext' not in str(item)

        user = codec.user_from_item(item)
        assert user == {'username': 'alice', 'password': 'digest', 'phone': '+8801700000000'}

    def test_phone_is_optional(self):
        item = codec.user_to_item({'username': 'bob', 'password': 'x'}, 'digest', '2024-01-15T09:00:00Z')
        assert 'phone' not in item
        assert 'phone' not in codec.user_from_item(item)


class TestSessionItems:

    def test_session_item_projects_reverse_lookup_and_ttl(self):
        session = {
            'session_id': 'tok',
            'username': 'alice',
            'created_at': '2024-01-15T09:00:00Z',
            'expires_at': '2024-01-22T09:00:00Z',
        }
        item = codec.session_to_item(session, 1705914000)

        assert item['PK'] == {'S': 'USER#alice'}
        assert item['SK'] == {'S': 'SESSION#tok'}
        assert item['GSI1PK'] == {'S': 'SESSION#tok'}
        assert item['GSI1SK'] == {'S': 'USER#alice'}
        assert item['ttl'] == {'N': '1705914000'}
        assert codec.session_from_item(item) == session


class TestVehicleItems:

    def test_vehicle_item_projects_every_index(self):
        item = codec.vehicle_to_item(make_vehicle(), '2024-01-15T09:00:00Z')

        assert item['PK'] == item['SK'] == {'S': 'CAR#DHA12AB1234'}
        assert item['GSI2PK'] == {'S': 'VEHICLE'}
        assert item['GSI4PK'] == {'S': 'FEE#TAX'}
        assert item['GSI5PK'] == {'S': 'FEE#FITNESS'}
        assert item['GSI6PK'] == {'S': 'FEE#INSURANCE'}
        assert item['GSI7PK'] == {'S': 'FEE#ROUTE'}
        assert item['GSI7SK'] == {'S': 'CAR#DHA12AB1234'}
        assert codec.vehicle_from_item(item) == make_vehicle()

    def test_missing_attributes_decode_empty(self):
        vehicle = codec.vehicle_from_item({'PK': {'S': 'CAR#ABC1234'}, 'SK': {'S': 'CAR#ABC1234'}})
        assert vehicle['vehicle_no'] == 'ABC-1234'
        assert vehicle['owner'] == ''
        assert vehicle['tax_date'] == ''

    def test_search_entry_tail(self):
        item = codec.search_entry_to_item('DHA-12-AB-1234')
        assert item['PK'] == {'S': 'SEARCH'}
        assert item['SK'] == {'S': 'SEARCH#DHA12AB1234'}
        assert item['LSI1SK'] == {'S': '1234'}
        assert codec.search_entry_plate(item) == 'DHA-12-AB-1234'


class TestHistoryItems:

    def test_history_round_trip(self):
        history = {
            'vehicle_no': 'DHA-12-AB-1234',
            'date': '2024-01-10',
            'transaction_type': 'tax',
            'payer': 'alice',
            'new_date': '2025-01-10',
            'paid_at': '2024-01-15T09:00:00Z',
        }
        item = codec.history_to_item(history)

        assert item['SK'] == {'S': 'TRANSACTION#2024-01-10#tax'}
        assert item['GSI3PK'] == {'S': 'HISTORY'}
        assert item['GSI3SK'] == {'S': 'TRANSACTION#2024-01-10'}
        assert codec.history_from_item(item) == history
        assert codec.history_item_key(history) == {'PK': item['PK'], 'SK': item['SK']}

"""Shared fixtures: a moto-backed data-access layer with a signed-in user."""

from datetime import datetime, timezone

import pytest

from vehicle_fees.memory import InMemoryDataAccess

# Fixed clock start: 2024-01-15 09:00 UTC
START = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)
CREDENTIALS = {'username': 'alice', 'password': 'correct horse'}


def make_vehicle(vehicle_no='DHA-12-AB-1234', **dates):
    vehicle = {
        'vehicle_no': vehicle_no,
        'owner': 'Rahim',
        'tax_date': '2024-06-01',
        'fitness_date': '2024-07-01',
        'insurance_date': '2024-08-01',
        'route_date': '2024-09-01',
    }
    vehicle.update(dates)
    return vehicle


@pytest.fixture
def data():
    with InMemoryDataAccess(start=START) as data_access:
        yield data_access


@pytest.fixture
def token(data):
    data.create_user(dict(CREDENTIALS))
    return data.authenticate(dict(CREDENTIALS))['session_id']

"""
Property-based tests for validation and date handling.
Uses Hypothesis to generate test cases and verify properties hold across all inputs.
"""

import pytest
from datetime import date
from hypothesis import given, strategies as st, settings

from vehicle_fees.types import DueWindow
from vehicle_fees.validation import (
    canonical_date,
    parse_date,
    validate_user,
    validate_vehicle,
    validate_vehicle_update,
)

ANY_VALUE = st.one_of(st.text(), st.integers(), st.floats(), st.booleans(), st.none())


class TestDateProperties:
    """Property-based tests for date canonicalization."""

    @given(st.dates())
    @settings(max_examples=200)
    def test_unpadded_dates_canonicalize(self, day):
        """
        Property: any calendar date written without zero padding parses back
        to the same date and re-emits as YYYY-MM-DD.
        """
        assert canonical_date(f'{day.year}-{day.month}-{day.day}') == day.isoformat()

    @given(st.dates())
    def test_canonical_dates_are_fixed_points(self, day):
        assert canonical_date(day.isoformat()) == day.isoformat()

    @given(st.text(max_size=20))
    @settings(max_examples=200)
    def test_parse_date_only_raises_value_error(self, value):
        """
        Property: parsing arbitrary text either yields a date or raises ValueError.
        """
        try:
            assert isinstance(parse_date(value), date)
        except ValueError:
            pass


class TestValidatorProperties:
    """Validators never crash and always report field-level errors."""

    @given(st.dictionaries(
        keys=st.sampled_from(['username', 'password', 'phone', 'other']),
        values=ANY_VALUE,
        max_size=4
    ))
    @settings(max_examples=100)
    def test_user_validation_never_crashes(self, request):
        errors = validate_user(request)
        assert isinstance(errors, list)
        for error in errors:
            assert 'field' in error and 'message' in error

    @given(st.dictionaries(
        keys=st.sampled_from([
            'vehicle_no', 'owner', 'tax_date', 'fitness_date', 'insurance_date', 'route_date'
        ]),
        values=ANY_VALUE,
        max_size=6
    ))
    @settings(max_examples=100)
    def test_vehicle_validation_never_crashes(self, request):
        for validator in (validate_vehicle, validate_vehicle_update):
            try:
                errors = validator(request)
            except Exception as e:
                pytest.fail(f'{validator.__name__} crashed with input {request}: {e}')
            for error in errors:
                assert 'field' in error and 'message' in error


class TestDueWindowProperties:

    @given(st.integers(min_value=1, max_value=3650))
    def test_positive_days_mean_within(self, days):
        assert DueWindow.from_days(days) == DueWindow.within(days)
        assert not DueWindow.from_days(days).overdue_only

    def test_zero_days_means_overdue(self):
        assert DueWindow.from_days(0) == DueWindow.overdue()

    @given(st.integers(max_value=-1))
    def test_negative_days_rejected(self, days):
        with pytest.raises(ValueError):
            DueWindow.within(days)

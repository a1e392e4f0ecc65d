import datetime

import pytest

from app.services.validation_service import validate_registration
from app.utils import age_on, month_bounds

TODAY = datetime.date(2030, 6, 1)


@pytest.mark.parametrize('birth_date, expected', [
    (datetime.date(2016, 6, 1), 14),
    (datetime.date(2016, 6, 2), 13),
    (datetime.date(2000, 2, 29), 30),
])
def test_age_on(birth_date, expected):
    assert age_on(birth_date, TODAY) == expected


def test_month_bounds_handles_leap_years():
    start, end = month_bounds(2028, 2)
    assert start == datetime.datetime(2028, 2, 1)
    assert end.date() == datetime.date(2028, 2, 29)
    assert month_bounds(2030, 12)[1] == datetime.datetime(2030, 12, 31, 23, 59, 59, 999999)


def test_minor_needs_parent_email():
    result = validate_registration(datetime.date(2020, 1, 1), None, TODAY)
    assert not result.ok
    assert 'parent_email' in result.errors
    assert validate_registration(datetime.date(2020, 1, 1), 'parent@example.com', TODAY).ok


def test_fourteen_year_old_registers_alone():
    assert validate_registration(datetime.date(2016, 6, 1), '', TODAY).ok


@pytest.mark.parametrize('birth_date', [None, datetime.date(2031, 1, 1)])
def test_birth_date_is_checked(birth_date):
    result = validate_registration(birth_date, None, TODAY)
    assert list(result.errors) == ['birth_date']

"""Tests for the business-hours gate."""

from datetime import datetime

import pytest
import pytz
from pydantic import ValidationError

from src.domain.models import BusinessHours
from src.services.business_hours import is_business_hour

SEOUL = BusinessHours(tz_name="Asia/Seoul", start_hour=9, end_hour=18)


def _kst(*args: int) -> datetime:
    return pytz.timezone("Asia/Seoul").localize(datetime(*args))


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (_kst(2024, 5, 6, 9, 0), True),  # Monday opening
        (_kst(2024, 5, 6, 17, 59), True),
        (_kst(2024, 5, 6, 18, 0), False),  # closing hour is excluded
        (_kst(2024, 5, 6, 8, 59), False),
        (_kst(2024, 5, 10, 12, 0), True),  # Friday
        (_kst(2024, 5, 11, 12, 0), False),  # Saturday
        (_kst(2024, 5, 12, 12, 0), False),  # Sunday
    ],
)
def test_is_business_hour_in_local_time(now: datetime, expected: bool) -> None:
    assert is_business_hour(now, SEOUL) is expected


def test_utc_input_is_converted_to_local_zone() -> None:
    # Sunday 23:30 UTC is Monday 08:30 in Seoul
    assert not is_business_hour(datetime(2024, 5, 5, 23, 30, tzinfo=pytz.UTC), SEOUL)
    # Monday 00:30 UTC is Monday 09:30 in Seoul
    assert is_business_hour(datetime(2024, 5, 6, 0, 30, tzinfo=pytz.UTC), SEOUL)


def test_naive_input_is_treated_as_utc() -> None:
    assert is_business_hour(datetime(2024, 5, 6, 0, 30), SEOUL)


def test_custom_window() -> None:
    hours = BusinessHours(tz_name="UTC", start_hour=7, end_hour=8)

    assert is_business_hour(datetime(2024, 5, 6, 7, 15, tzinfo=pytz.UTC), hours)
    assert not is_business_hour(datetime(2024, 5, 6, 8, 0, tzinfo=pytz.UTC), hours)


def test_inverted_window_is_rejected() -> None:
    with pytest.raises(ValidationError):
        BusinessHours(start_hour=18, end_hour=9)

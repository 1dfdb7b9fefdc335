"""Business-hours gate for the poller."""

from datetime import datetime

import pytz

from src.domain.models import BusinessHours


def is_business_hour(now: datetime | None, hours: BusinessHours) -> bool:
    """Return True if ``now`` falls inside the configured working window.

    Args:
        now: Current time; naive values are treated as UTC, None means now
        hours: Working window and its time zone

    Returns:
        True on a working weekday within ``[start_hour, end_hour)`` local time

    Example:
        >>> hours = BusinessHours(tz_name="Asia/Seoul", start_hour=9, end_hour=18)
        >>> is_business_hour(datetime(2024, 5, 6, 1, 0, tzinfo=pytz.UTC), hours)
        True
    """
    if now is None:
        now = datetime.now(pytz.UTC)
    elif now.tzinfo is None:
        now = pytz.UTC.localize(now)

    local_now = now.astimezone(pytz.timezone(hours.tz_name))
    return (
        local_now.weekday() in hours.weekdays
        and hours.start_hour <= local_now.hour < hours.end_hour
    )

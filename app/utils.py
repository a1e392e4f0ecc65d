# alpine-connect/app/utils.py
import calendar
import datetime


def utcnow():
    """Naive UTC timestamp, the format every DateTime column is stored in."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def month_bounds(year, month):
    """
    First and last instant of a month.
    Example:
        Input: 2025, 2
        Output: (2025-02-01 00:00:00, 2025-02-28 23:59:59.999999)
    """
    last_day = calendar.monthrange(year, month)[1]
    start = datetime.datetime(year, month, 1)
    end = datetime.datetime(year, month, last_day, 23, 59, 59, 999999)
    return start, end


def age_on(birth_date, today):
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def isoformat(value):
    return value.isoformat() if value else None

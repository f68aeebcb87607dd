"""Date and timestamp helpers.

The ledger keeps naive ``datetime`` values in device-local time. Aware values
are converted to local time on the way in so calendar windows (start of month,
start of week) line up with what the user sees.
"""

import re
from datetime import date, datetime, time, timedelta

_DAY_FIRST = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")


def to_local_naive(value: datetime) -> datetime:
    """Normalize a datetime to naive local time."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def now_local() -> datetime:
    """Current local time as a naive datetime."""
    return datetime.now()


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to milliseconds since the Unix epoch."""
    if value.tzinfo is None:
        value = value.astimezone()
    return int(value.timestamp() * 1000)


def from_epoch_ms(ms: int) -> datetime:
    """Convert epoch milliseconds to a naive local datetime."""
    return datetime.fromtimestamp(ms / 1000)


def parse_date(text: str) -> datetime | None:
    """Parse a date in ISO or day/month/year form.

    Supported forms: ``YYYY-MM-DD``, full ISO-8601 timestamps,
    ``DD/MM/YYYY`` and ``DD-MM-YYYY``.

    Returns:
        datetime | None: Naive local datetime, or None if unparseable
    """
    text = text.strip()
    if not text:
        return None

    try:
        return to_local_naive(datetime.fromisoformat(text))
    except ValueError:
        pass

    match = _DAY_FIRST.match(text)
    if not match:
        return None

    day, month, year = (int(part) for part in match.groups())
    if year < 1900:
        return None
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)


def start_of_week(value: datetime, week_start: int = 6) -> datetime:
    """First instant of the week containing ``value``.

    Args:
        value: Reference datetime
        week_start: Weekday the week starts on (Monday=0 ... Sunday=6)
    """
    offset = (value.weekday() - week_start) % 7
    return start_of_day(value) - timedelta(days=offset)


def start_of_month(value: datetime | date) -> datetime:
    return datetime(value.year, value.month, 1)


def add_months(value: datetime, months: int) -> datetime:
    """Shift the first-of-month ``value`` by a whole number of months."""
    index = value.year * 12 + (value.month - 1) + months
    return value.replace(year=index // 12, month=index % 12 + 1, day=1)


def start_of_year(value: datetime) -> datetime:
    return datetime(value.year, 1, 1)


def last_instant_before(boundary: datetime) -> datetime:
    """The latest representable instant strictly before ``boundary``."""
    return boundary - timedelta(microseconds=1)

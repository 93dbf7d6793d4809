"""
UTC day helpers for daily aggregation.

All aggregation buckets are keyed by the start of a UTC calendar day.
Row keys embed that instant in a fixed-width digit format so that
lexicographic order matches chronological order.
"""

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Union

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

ROW_KEY_FORMAT = "%Y%m%d%H%M%S"
ROW_KEY_SEPARATOR = "|"

TimeInput = Union[datetime, str, int, float, Decimal]


def now_utc() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: TimeInput) -> datetime:
    """
    Coerce a timestamp into an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), ISO-8601 strings
    (a trailing ``Z`` is allowed) and unix epoch seconds.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, bool):
        raise TypeError(f"Unsupported timestamp value: {value!r}")

    if isinstance(value, (int, float, Decimal)):
        try:
            return EPOCH + timedelta(seconds=float(value))
        except OverflowError as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(text))

    raise TypeError(f"Unsupported timestamp value: {value!r}")


def start_of_day(value: TimeInput) -> datetime:
    """Midnight UTC of the calendar day containing ``value``."""
    moment = to_utc(value)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def retention_cutoff(now: datetime, offset: timedelta) -> datetime:
    """Start of the current UTC day minus ``offset``."""
    return start_of_day(now) - offset


def format_row_time(value: TimeInput) -> str:
    """Fixed-width, sortable encoding of a timestamp (``YYYYMMDDHHMMSS``)."""
    return to_utc(value).strftime(ROW_KEY_FORMAT)


def build_row_key(day: datetime, account: str) -> str:
    """Row key for an aggregate: encoded day start, separator, account."""
    return f"{format_row_time(start_of_day(day))}{ROW_KEY_SEPARATOR}{account}"


def parse_row_key(row_key: str) -> tuple[datetime, str]:
    """Inverse of :func:`build_row_key`."""
    encoded, separator, account = row_key.partition(ROW_KEY_SEPARATOR)
    if not separator or not account:
        raise ValueError(f"Malformed row key: {row_key!r}")
    day = datetime.strptime(encoded, ROW_KEY_FORMAT).replace(tzinfo=timezone.utc)
    return day, account

"""UTC clock helpers.

Every timestamp in the entity model is a timezone-aware UTC datetime with
millisecond precision, which is exactly what the columnar tables can hold.
"""

from datetime import datetime

import pytz


def now() -> datetime:
    """Current UTC time truncated to whole milliseconds."""
    current = datetime.now(pytz.utc)
    return current.replace(microsecond=(current.microsecond // 1000) * 1000)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to milliseconds since the unix epoch. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    delta = value - datetime(1970, 1, 1, tzinfo=pytz.utc)
    return (delta.days * 86_400_000) + (delta.seconds * 1000) + (delta.microseconds // 1000)


def from_epoch_ms(value: int) -> datetime:
    """Convert milliseconds since the unix epoch back to an aware UTC datetime."""
    seconds, millis = divmod(int(value), 1000)
    return datetime.fromtimestamp(seconds, pytz.utc).replace(microsecond=millis * 1000)

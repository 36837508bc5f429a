"""
Date Normalization
==================

The backends hand dates over in several shapes. Every supported shape is an
explicit member of ``DateInput``; ``to_datetime`` turns any of them into a
timezone-aware UTC ``datetime``. Codecs call it when documents cross the
data-access boundary, so display code only ever sees ``datetime`` objects.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

_RFC3339 = re.compile(
    r'^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})?$'
)


@dataclass(frozen=True)
class FirestoreTimestamp:
    """Seconds/nanos pair as the document database stores timestamps"""
    seconds: int
    nanos: int = 0

    def to_datetime(self) -> datetime:
        base = datetime.fromtimestamp(self.seconds, tz=timezone.utc)
        return base + timedelta(microseconds=self.nanos // 1000)

    @classmethod
    def from_datetime(cls, value: datetime) -> 'FirestoreTimestamp':
        value = to_datetime(value)
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        delta = value - epoch
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds=seconds, nanos=delta.microseconds * 1000)


@dataclass(frozen=True)
class EpochMillis:
    """Milliseconds since the Unix epoch, as browsers send them"""
    value: int

    def to_datetime(self) -> datetime:
        return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=self.value)


DateInput = Union[datetime, date, str, FirestoreTimestamp, EpochMillis]


def parse_rfc3339(text: str) -> datetime:
    """
    Parse an RFC 3339 timestamp such as ``2024-03-01T10:00:00.123456789Z``.

    Fractions longer than microseconds are truncated. A missing offset is
    read as UTC. A bare ``YYYY-MM-DD`` is midnight UTC.
    """
    text = text.strip()
    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), time(0), tzinfo=timezone.utc)

    match = _RFC3339.match(text)
    if not match:
        raise ValueError(f"Not an RFC 3339 timestamp: {text!r}")

    day, clock, fraction, offset = match.groups()
    parsed = datetime.strptime(f"{day}T{clock}", '%Y-%m-%dT%H:%M:%S')
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, '0')))

    if not offset or offset == 'Z':
        tz = timezone.utc
    else:
        sign = 1 if offset[0] == '+' else -1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    return parsed.replace(tzinfo=tz).astimezone(timezone.utc)


def to_datetime(value: DateInput) -> datetime:
    """
    Normalize any supported date representation to an aware UTC datetime.

    Raises:
        TypeError: value is not one of the ``DateInput`` members
        ValueError: a string could not be parsed
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time(0), tzinfo=timezone.utc)
    if isinstance(value, (FirestoreTimestamp, EpochMillis)):
        return value.to_datetime()
    if isinstance(value, str):
        return parse_rfc3339(value)
    raise TypeError(f"Unsupported date representation: {type(value).__name__}")


def to_rfc3339(value: DateInput) -> str:
    """Serialize to the ``...Z`` form the document database expects"""
    return to_datetime(value).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def add_months(value: datetime, months: int) -> datetime:
    """First day of the month ``months`` calendar months away (time kept)"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return value.replace(year=year, month=month, day=1)


def optional_datetime(value: Optional[DateInput]) -> Optional[datetime]:
    return None if value is None else to_datetime(value)

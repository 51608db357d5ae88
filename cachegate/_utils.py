from __future__ import annotations

import calendar
import time
import typing as tp
from datetime import datetime, timezone
from email.utils import formatdate, parsedate_tz

HEADERS_ENCODING = "iso-8859-1"

Timestamp = tp.Union[int, float, datetime]


class BaseClock:
    def now(self) -> int:
        raise NotImplementedError()


class Clock(BaseClock):
    def now(self) -> int:
        return int(time.time())


def parse_date(date: str) -> tp.Optional[int]:
    try:
        parsed = parsedate_tz(date)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    try:
        timestamp = calendar.timegm(parsed[:6])
    except (ValueError, OverflowError):
        return None
    # parsedate_tz keeps the zone offset apart from the broken-down time
    offset = parsed[9]
    if offset:
        timestamp -= offset
    return timestamp


def to_timestamp(value: tp.Optional[Timestamp]) -> tp.Optional[int]:
    """
    Normalize an instant to whole Unix seconds.

    HTTP dates have one-second resolution, so sub-second precision is dropped
    to keep equality comparisons against header dates meaningful.
    Naive datetimes are taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    return int(value)


def format_http_date(timestamp: Timestamp) -> str:
    """
    Format an instant as an IMF-fixdate.

    Example output: 'Sun, 06 Nov 1994 08:49:37 GMT'
    """
    return formatdate(timeval=to_timestamp(timestamp), localtime=False, usegmt=True)


def generate_http_date() -> str:
    """
    Generate a Date header value for HTTP responses.
    Returns date in RFC 1123 format (required by HTTP/1.1).

    Example output: 'Sun, 26 Oct 2025 12:34:56 GMT'
    """
    return formatdate(timeval=None, localtime=False, usegmt=True)

"""Timestamp parsing for CRM field values.

Field values reach the converter as Python objects (in-process callers) or
as JSON text (the HTTP API and CRM query results), so a date field may be a
``datetime``, a ``date`` or an ISO 8601 string such as the CRM's own
``2024-01-15T10:30:00.000+0000``.
"""

import re
from datetime import date, datetime, timezone

# Trailing "Z" or a "+HHMM"/"-HHMM" offset without the colon
_ZULU = re.compile(r"Z$")
_COMPACT_OFFSET = re.compile(r"(?<=[T ]\d\d:\d\d)(.*)([+-])(\d\d)(\d\d)$")


def _normalize_offset(text: str) -> str:
    text = _ZULU.sub("+00:00", text)
    return _COMPACT_OFFSET.sub(r"\1\2\3:\4", text)


def parse_iso_datetime(value) -> datetime | None:
    """Read a CRM timestamp as an aware datetime, or ``None``.

    Naive values and date-only values are taken as UTC (a bare date is
    midnight). Anything that is not a date, datetime or ISO 8601 string
    gives ``None``.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return date_to_datetime(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text[:1].isdigit():
        return None

    try:
        return ensure_utc(datetime.fromisoformat(_normalize_offset(text)))
    except ValueError:
        pass
    try:
        return date_to_datetime(date.fromisoformat(text))
    except ValueError:
        return None


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware ones are returned unchanged."""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def date_to_datetime(d: date) -> datetime:
    return datetime.combine(d, datetime.min.time(), tzinfo=timezone.utc)


def to_epoch_seconds(dt: datetime) -> int:
    """Whole seconds since the Unix epoch, truncated toward zero."""
    return int(ensure_utc(dt).timestamp())

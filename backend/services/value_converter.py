"""Value converter - turns raw record values into destination-typed values.

Conversion rules by mapping data type:
- Number: numeric parse of the value's string form; unparseable -> 0
- Boolean: true only for "true" (any case); other strings -> False
- Date: datetimes/dates (or ISO 8601 text) -> "$D_<epoch seconds>"
- Text and anything unrecognised: string form of the value
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from integrations.parsing_utils import parse_iso_datetime, to_epoch_seconds

logger = logging.getLogger(__name__)

DATE_PREFIX = "$D_"


def convert_value(value: Any, data_type: str | None) -> Any:
    """Convert a raw field value to the mapping's destination type.

    Args:
        value: Raw record value (any type).
        data_type: "Text", "Number", "Date" or "Boolean" (case-insensitive).

    Returns:
        The converted value, or None when value is None.
    """
    if value is None:
        return None

    kind = (data_type or "").strip().lower()
    if kind == "number":
        return to_number(value)
    if kind == "boolean":
        return to_boolean(value)
    if kind == "date":
        return to_date_token(value)
    return to_text(value)


def to_text(value: Any) -> str:
    """String form of a value, with lowercase booleans and ISO dates."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def to_number(value: Any) -> int | float:
    """Parse a number from the value's string form, falling back to 0."""
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int):
        return value
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.debug("Number conversion fell back to 0 for %r", value)
        return 0
    if not parsed.is_finite():
        logger.debug("Number conversion fell back to 0 for %r", value)
        return 0
    if parsed == parsed.to_integral_value():
        return int(parsed)
    return float(parsed)


def to_boolean(value: Any) -> bool:
    """Coerce to a boolean.

    Only the text "true" (case-insensitive, surrounding whitespace ignored)
    is true. Numbers are true when non-zero.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    return str(value).strip().lower() == "true"


def to_date_token(value: Any) -> str:
    """Encode a timestamp-bearing value as ``"$D_<epoch seconds>"``.

    Pure dates are read as midnight UTC. Values that carry no timestamp,
    including an already-encoded ``"$D_..."`` token, fall through to text.
    """
    if isinstance(value, str) and value.startswith(DATE_PREFIX):
        return value
    dt = parse_iso_datetime(value)
    if dt is None:
        return to_text(value)
    return f"{DATE_PREFIX}{to_epoch_seconds(dt)}"

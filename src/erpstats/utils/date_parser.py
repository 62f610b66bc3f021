"""Date parsing utilities.

Two families live here:

- ``parse_record_date`` / ``normalize_date`` normalize the heterogeneous date
  encodings found in ERP rows. They never raise; failures come back as an
  unparseable ``ParsedDate`` so callers can count them.
- ``parse_date`` / ``get_date_range`` resolve user input on the command line,
  including relative dates such as "last month".
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from erpstats.domain.entities import ParsedDate

MIN_YEAR = 1900
MAX_YEAR = 2100

# Epoch values below this magnitude are seconds, above it milliseconds
EPOCH_MILLIS_THRESHOLD = 1e11

UNPARSEABLE = "unparseable"

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})([T ].*)?$")
_DMY_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")
_YMD_SLASH_RE = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")
_EIGHT_DIGITS_RE = re.compile(r"^\d{8}$")
_EPOCH_RE = re.compile(r"^-?(\d{10}|\d{13})(\.\d+)?$")


def _in_range(year: int) -> bool:
    return MIN_YEAR <= year <= MAX_YEAR


def _build(year: int, month: int, day: int) -> Optional[date]:
    if not _in_range(year):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_epoch(value: float) -> tuple[Optional[date], str]:
    if abs(value) >= EPOCH_MILLIS_THRESHOLD:
        seconds, rule = value / 1000.0, "epoch_millis"
    else:
        seconds, rule = value, "epoch_seconds"
    try:
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None, rule
    if not _in_range(parsed.year):
        return None, rule
    return parsed, rule


def _from_eight_digits(text: str) -> tuple[Optional[date], str]:
    # YYYYMMDD wins when the leading segment is a plausible year
    if _in_range(int(text[:4])):
        parsed = _build(int(text[:4]), int(text[4:6]), int(text[6:]))
        if parsed is not None:
            return parsed, "yyyymmdd"
    if _in_range(int(text[4:])):
        parsed = _build(int(text[4:]), int(text[2:4]), int(text[:2]))
        if parsed is not None:
            return parsed, "ddmmyyyy"
    return None, UNPARSEABLE


def _from_string(text: str) -> tuple[Optional[date], str]:
    if _EIGHT_DIGITS_RE.match(text):
        return _from_eight_digits(text)

    if _EPOCH_RE.match(text):
        return _from_epoch(float(text))

    match = _DMY_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _build(year, month, day), "dmy"

    match = _YMD_SLASH_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _build(year, month, day), "ymd"

    match = _ISO_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups()[:3])
        parsed = _build(year, month, day)
        time_part = match.group(4)
        if parsed is not None and time_part:
            # Validates the time and offset; the calendar date is kept as written
            date_parser.isoparse(parsed.isoformat() + time_part)
        return parsed, "iso"

    return None, UNPARSEABLE


def parse_record_date(value: Any) -> ParsedDate:
    """Normalize a date value coming from an ERP row.

    Accepts:
    - date / datetime instances
    - ISO strings: "2024-03-15", "2024-3-5", "2024-03-15T10:20:00Z"
    - "15/03/2024", "15-03-2024", "15.03.2024" (day first)
    - "2024/03/15"
    - "20240315" and the ambiguous "15032024", as strings or integers
      (resolved by which 4-digit segment is a year in [1900, 2100])
    - epoch numbers, in seconds or milliseconds

    Args:
        value: Raw value from the record

    Returns:
        ParsedDate whose ``value`` is None when nothing matched, the calendar
        date was invalid or the year is outside [1900, 2100]
    """
    try:
        if value is None or isinstance(value, bool):
            return ParsedDate(raw=value, value=None, rule=UNPARSEABLE)
        if isinstance(value, datetime):
            parsed = value.date() if _in_range(value.year) else None
            return ParsedDate(raw=value, value=parsed, rule="datetime")
        if isinstance(value, date):
            parsed = value if _in_range(value.year) else None
            return ParsedDate(raw=value, value=parsed, rule="date")
        if isinstance(value, int) and 10_000_000 <= value <= 99_999_999:
            parsed, rule = _from_eight_digits(str(value))
            if parsed is not None:
                return ParsedDate(raw=value, value=parsed, rule=rule)
        if isinstance(value, (int, float)):
            parsed, rule = _from_epoch(float(value))
            return ParsedDate(raw=value, value=parsed, rule=rule)
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return ParsedDate(raw=value, value=None, rule=UNPARSEABLE)
            parsed, rule = _from_string(text)
            return ParsedDate(raw=value, value=parsed, rule=rule)
    except (ValueError, TypeError, OverflowError):
        pass
    return ParsedDate(raw=value, value=None, rule=UNPARSEABLE)


def normalize_date(value: Any) -> Optional[date]:
    """Return the normalized date for ``value`` or None."""
    return parse_record_date(value).value


def parse_date(date_str: str) -> date:
    """Parse a date string typed by a user into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "15/01/2024", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last "):
        period = date_str[5:]
        if period == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1) - relativedelta(years=1)
        elif period == "week":
            return today - timedelta(days=today.weekday() + 7)

    elif date_str.startswith("this "):
        period = date_str[5:]
        if period == "month":
            return today.replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1)
        elif period == "week":
            return today - timedelta(days=today.weekday())

    # Same encodings the ERP rows use come first
    record_date = parse_record_date(date_str)
    if record_date.ok:
        return record_date.value

    try:
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a specified period.

    Args:
        period: Period string (this-month, this-year, this-week, last-month, last-year, last-week)

    Returns:
        Tuple of (start_date, end_date) for the specified period

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = date.today()

    if period == "this-month":
        return (today.replace(day=1), today)

    elif period == "this-year":
        return (today.replace(month=1, day=1), today)

    elif period == "this-week":
        return (today - timedelta(days=today.weekday()), today)

    elif period == "last-month":
        start_date = (today - relativedelta(months=1)).replace(day=1)
        end_date = today.replace(day=1) - timedelta(days=1)
        return (start_date, end_date)

    elif period == "last-year":
        start_date = today.replace(month=1, day=1) - relativedelta(years=1)
        end_date = today.replace(month=1, day=1) - timedelta(days=1)
        return (start_date, end_date)

    elif period == "last-week":
        start_date = today - timedelta(days=today.weekday() + 7)
        end_date = start_date + timedelta(days=6)
        return (start_date, end_date)

    else:
        raise ValueError(
            f"Unknown period: '{period}'. Supported periods: this-month, "
            "this-year, this-week, last-month, last-year, last-week"
        )

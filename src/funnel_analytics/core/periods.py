"""Period keying - bucket timestamps into day/month/year keys in calendar order."""

import re
from datetime import date, datetime
from typing import Iterable, NamedTuple, Optional

import pytz

from funnel_analytics.core.constants import MONTH_ABBREVIATIONS
from funnel_analytics.core.models import Activity, Contact, DateLike, Granularity

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DAY_KEY = re.compile(r"^(\d{1,2}) ([A-Z][a-z]{2}) '(\d{2})$")
_MONTH_KEY = re.compile(r"^([A-Z][a-z]{2}) '(\d{2})$")
_YEAR_KEY = re.compile(r"^(\d{4})$")


class InvalidPeriodKeyError(ValueError):
    """Raised when a string is not a period key of the requested granularity."""
    pass


def parse_timestamp(value: Optional[DateLike]) -> Optional[datetime]:
    """
    Parse a timestamp into a datetime.

    Handles multiple formats:
    - 2025-01-15T10:30:00Z
    - 2025-01-15T10:30:00.000+00:00
    - 2025-01-15T10:30:00
    - 2025-01-15

    Returns None when the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    timestamp_str = value.strip()

    # Remove 'Z' if present and replace with +00:00
    if timestamp_str.endswith('Z'):
        timestamp_str = timestamp_str[:-1] + '+00:00'

    try:
        return datetime.fromisoformat(timestamp_str)
    except ValueError:
        pass

    # Last resort: parse date only
    try:
        return datetime.fromisoformat(timestamp_str.split('T')[0])
    except ValueError:
        return None


def to_local_date(value: Optional[DateLike], tz=pytz.UTC) -> Optional[date]:
    """
    Resolve a timestamp to a calendar date in the given timezone.

    Date-only values are taken as-is; naive datetimes are treated as UTC.
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and _DATE_ONLY.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None

    moment = parse_timestamp(value)
    if moment is None:
        return None

    try:
        if moment.tzinfo is None:
            moment = pytz.UTC.localize(moment)
        return moment.astimezone(tz).date()
    except (OverflowError, ValueError):
        return None


def resolve_activity_date(activity: Activity, tz=pytz.UTC) -> Optional[date]:
    """Channel date when usable, otherwise the creation timestamp."""
    resolved = to_local_date(activity.channel_date, tz)
    if resolved is None:
        resolved = to_local_date(activity.created_at, tz)
    return resolved


def resolve_contact_date(contact: Contact, tz=pytz.UTC) -> Optional[date]:
    return to_local_date(contact.created_at, tz)


def format_period_key(day: date, granularity: Granularity) -> str:
    """
    Format a date as a period key.

    Examples: "5 Jan '24" (day), "Jan '24" (month), "2024" (year).
    """
    month = MONTH_ABBREVIATIONS[day.month - 1]
    year = f"{day.year % 100:02d}"

    if granularity == Granularity.DAY:
        return f"{day.day} {month} '{year}"
    if granularity == Granularity.MONTH:
        return f"{month} '{year}"
    return str(day.year)


def period_key(
    value: Optional[DateLike],
    granularity: Granularity,
    tz=pytz.UTC
) -> Optional[str]:
    """Period key for a timestamp, or None when it has no resolvable date."""
    day = to_local_date(value, tz)
    if day is None:
        return None
    return format_period_key(day, granularity)


def parse_period_key(key: str, granularity: Granularity) -> date:
    """
    Parse a period key back into the first day of its bucket.

    Two-digit years map to 20YY.

    Raises:
        InvalidPeriodKeyError: If the key does not match the granularity
    """
    try:
        if granularity == Granularity.DAY:
            match = _DAY_KEY.match(key)
            if match:
                day, month, year = match.groups()
                return date(2000 + int(year), MONTH_ABBREVIATIONS.index(month) + 1, int(day))
        elif granularity == Granularity.MONTH:
            match = _MONTH_KEY.match(key)
            if match:
                month, year = match.groups()
                return date(2000 + int(year), MONTH_ABBREVIATIONS.index(month) + 1, 1)
        else:
            match = _YEAR_KEY.match(key)
            if match:
                return date(int(match.group(1)), 1, 1)
    except ValueError as e:
        raise InvalidPeriodKeyError(f"Invalid {granularity.value} period key {key!r}: {e}")

    raise InvalidPeriodKeyError(f"Invalid {granularity.value} period key {key!r}")


def sort_period_keys(keys: Iterable[str], granularity: Granularity) -> list[str]:
    """Deduplicate keys and order them by calendar date, never lexically."""
    return sorted(set(keys), key=lambda key: parse_period_key(key, granularity))


def build_period_list(
    dates: Iterable[Optional[date]],
    granularity: Granularity
) -> list[str]:
    """
    Build the ordered, deduplicated period list for a set of dates.

    None entries (records without a resolvable date) are ignored.
    """
    keys = (format_period_key(day, granularity) for day in dates if day is not None)
    return sort_period_keys(keys, granularity)


class DatedActivity(NamedTuple):
    """Activity paired with its resolved date and period key."""
    activity: Activity
    day: Optional[date]
    period: Optional[str]


def date_activities(
    activities: Iterable[Activity],
    granularity: Granularity,
    tz=pytz.UTC
) -> list[DatedActivity]:
    """
    Resolve every activity's date and period.

    Returns activities in chronological order; ties keep input order and
    activities without a resolvable date come last.
    """
    dated = []
    for activity in activities:
        day = resolve_activity_date(activity, tz)
        period = period_key(day, granularity, tz)
        dated.append(DatedActivity(activity, day, period))

    return sorted(dated, key=lambda item: (item.day is None, item.day or date.min))

"""
Date and timezone helpers.

All civil dates and datetimes are interpreted in an explicit IANA zone,
never in the host's local zone.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


logger = logging.getLogger(__name__)


DATE_FORMAT = "%Y-%m-%d"
LOCAL_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Graph emits up to 7 fractional digits ("2025-07-01T01:00:00.0000000")
_FRACTION_RE = re.compile(r"\.(\d+)")

# Windows zone names Graph echoes back for mailboxes configured in Outlook
WINDOWS_ZONES = {
    "Alaskan Standard Time": "America/Anchorage",
    "Arabian Standard Time": "Asia/Dubai",
    "Atlantic Standard Time": "America/Halifax",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "Central Europe Standard Time": "Europe/Budapest",
    "Central European Standard Time": "Europe/Warsaw",
    "Central Standard Time": "America/Chicago",
    "China Standard Time": "Asia/Shanghai",
    "E. Australia Standard Time": "Australia/Brisbane",
    "E. Europe Standard Time": "Europe/Chisinau",
    "E. South America Standard Time": "America/Sao_Paulo",
    "Eastern Standard Time": "America/New_York",
    "FLE Standard Time": "Europe/Kiev",
    "GMT Standard Time": "Europe/London",
    "Greenwich Standard Time": "Atlantic/Reykjavik",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "India Standard Time": "Asia/Kolkata",
    "Israel Standard Time": "Asia/Jerusalem",
    "Korea Standard Time": "Asia/Seoul",
    "Mountain Standard Time": "America/Denver",
    "New Zealand Standard Time": "Pacific/Auckland",
    "Pacific Standard Time": "America/Los_Angeles",
    "Romance Standard Time": "Europe/Paris",
    "Russian Standard Time": "Europe/Moscow",
    "SA Pacific Standard Time": "America/Bogota",
    "SE Asia Standard Time": "Asia/Bangkok",
    "Singapore Standard Time": "Asia/Singapore",
    "South Africa Standard Time": "Africa/Johannesburg",
    "Taipei Standard Time": "Asia/Taipei",
    "Tokyo Standard Time": "Asia/Tokyo",
    "Turkey Standard Time": "Europe/Istanbul",
    "US Mountain Standard Time": "America/Phoenix",
    "W. Australia Standard Time": "Australia/Perth",
    "W. Europe Standard Time": "Europe/Berlin",
}


def get_zone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name. Raises ValueError for unknown zones."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name!r}. Use an IANA name such as 'Asia/Manila'.")


def start_of_day(day: date, tz_name: str) -> datetime:
    """Midnight of a calendar date in the given zone, as an aware datetime."""
    return datetime(day.year, day.month, day.day, tzinfo=get_zone(tz_name))


def parse_local_datetime(value: str) -> datetime:
    """
    Parse a naive local datetime (YYYY-MM-DDTHH:MM:SS).

    Seconds are optional. Values carrying an offset are rejected: the
    timezone is always given separately.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid datetime {value!r}. Please use YYYY-MM-DDTHH:MM:SS format.")
    if parsed.tzinfo is not None:
        raise ValueError(f"Datetime {value!r} must not include an offset; pass the timezone separately.")
    if "T" not in value:
        raise ValueError(f"Invalid datetime {value!r}. Please use YYYY-MM-DDTHH:MM:SS format.")
    return parsed.replace(microsecond=0)


def format_local_datetime(value: datetime) -> str:
    return value.strftime(LOCAL_DATETIME_FORMAT)


def to_utc_string(value: datetime) -> str:
    """Render an aware datetime as a UTC instant (2025-06-30T16:00:00Z)."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def next_full_hour(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """Start of the next hour after now + 1h, in the given zone (naive civil time)."""
    zone = get_zone(tz_name)
    current = (now or datetime.now(timezone.utc)).astimezone(zone)
    start = current + timedelta(hours=1)
    return start.replace(minute=0, second=0, microsecond=0, tzinfo=None)


def today_in_zone(tz_name: str, now: Optional[datetime] = None) -> date:
    zone = get_zone(tz_name)
    return (now or datetime.now(timezone.utc)).astimezone(zone).date()


def parse_graph_datetime(value: str, tz_name: Optional[str] = None) -> datetime:
    """
    Parse a Graph dateTime string into an aware datetime.

    Graph returns the wall time and the zone separately
    ({"dateTime": "2025-07-01T01:00:00.0000000", "timeZone": "UTC"}).
    Windows zone names are mapped to IANA; missing zones are treated as
    UTC, and unrecognized ones are logged and treated as UTC.
    """
    text = value.rstrip("Z") if value.endswith("Z") else value
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        return parsed
    if value.endswith("Z") or not tz_name:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.replace(tzinfo=get_zone(WINDOWS_ZONES.get(tz_name, tz_name)))
    except ValueError:
        logger.warning(f"Unrecognized timezone {tz_name!r} on Graph dateTime {value!r}; reading it as UTC")
        return parsed.replace(tzinfo=timezone.utc)


def format_in_zone(value: datetime, tz_name: str, fmt: str) -> str:
    return value.astimezone(get_zone(tz_name)).strftime(fmt)


def format_event_time(value: datetime, tz_name: str) -> str:
    """Human-readable time, e.g. 'Jul 1, 2025 9:00 AM'."""
    local = value.astimezone(get_zone(tz_name))
    hour = local.hour % 12 or 12
    return f"{local.strftime('%b')} {local.day}, {local.year} {hour}:{local.strftime('%M %p')}"


def format_with_zone_name(value: datetime, tz_name: str) -> str:
    """Timestamp with zone abbreviation, e.g. '2025-07-01 09:00:00 PST'."""
    return format_in_zone(value, tz_name, "%Y-%m-%d %H:%M:%S %Z")

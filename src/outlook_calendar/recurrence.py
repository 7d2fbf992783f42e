"""
Recurrence translation.

Converts the flat recurrence description accepted by the create tool
(is_recurring, recurrence_type, days_of_week, ...) into the nested
patternedRecurrence resource Microsoft Graph expects:

    {
        "pattern": {"type", "interval", "daysOfWeek"?, "dayOfMonth"?, "index"?},
        "range": {"type", "startDate", "endDate"?, "numberOfOccurrences"?, "recurrenceTimeZone"}
    }

The flat form is first parsed into tagged pattern/range variants, then each
variant is rendered. Pattern fields the caller omits (weekday, day of month,
week index) are derived from the event start in the event's own timezone.
"""

import calendar
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Optional, Union

from outlook_calendar.utils.timezones import DATE_FORMAT, get_zone


class RecurrenceError(ValueError):
    """Recurrence description violates an invariant."""


class Weekday(str, Enum):
    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"

    @property
    def graph_name(self) -> str:
        """Graph spelling: leading uppercase ("Monday")."""
        return self.value[:1].upper() + self.value[1:]

    @classmethod
    def parse(cls, value: Union[str, "Weekday"]) -> "Weekday":
        if isinstance(value, Weekday):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise RecurrenceError(f"Invalid day of week: {value!r}")

    @classmethod
    def of(cls, day: date) -> "Weekday":
        """Weekday of a civil date (isoweekday 7 = sunday -> index 0)."""
        return WEEKDAYS[day.isoweekday() % 7]


# Indexed 0 (sunday) .. 6 (saturday)
WEEKDAYS = (
    Weekday.SUNDAY,
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
)


class WeekIndex(str, Enum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    FOURTH = "fourth"
    LAST = "last"


ORDINAL_WEEKS = (WeekIndex.FIRST, WeekIndex.SECOND, WeekIndex.THIRD, WeekIndex.FOURTH)


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"  # legacy alias for absoluteMonthly
    YEARLY = "yearly"
    ABSOLUTE_MONTHLY = "absoluteMonthly"
    RELATIVE_MONTHLY = "relativeMonthly"
    ABSOLUTE_YEARLY = "absoluteYearly"
    RELATIVE_YEARLY = "relativeYearly"


class RangeType(str, Enum):
    END_DATE = "endDate"
    NO_END = "noEnd"
    NUMBERED = "numbered"


# ============================================================================
# Pattern variants
# ============================================================================

@dataclass(frozen=True)
class Daily:
    interval: int = 1
    type_name: ClassVar[str] = "daily"


@dataclass(frozen=True)
class Weekly:
    interval: int = 1
    days: tuple = ()
    type_name: ClassVar[str] = "weekly"


@dataclass(frozen=True)
class AbsoluteMonthly:
    interval: int = 1
    day_of_month: Optional[int] = None
    type_name: ClassVar[str] = "absoluteMonthly"


@dataclass(frozen=True)
class RelativeMonthly:
    interval: int = 1
    week_day: Optional[Weekday] = None
    week_index: Optional[WeekIndex] = None
    type_name: ClassVar[str] = "relativeMonthly"


@dataclass(frozen=True)
class Yearly:
    interval: int = 1
    type_name: ClassVar[str] = "yearly"


@dataclass(frozen=True)
class AbsoluteYearly:
    interval: int = 1
    type_name: ClassVar[str] = "absoluteYearly"


@dataclass(frozen=True)
class RelativeYearly:
    interval: int = 1
    type_name: ClassVar[str] = "relativeYearly"


Pattern = Union[Daily, Weekly, AbsoluteMonthly, RelativeMonthly, Yearly, AbsoluteYearly, RelativeYearly]


# ============================================================================
# Range variants
# ============================================================================

@dataclass(frozen=True)
class NoEnd:
    type_name: ClassVar[str] = "noEnd"


@dataclass(frozen=True)
class EndDate:
    end: date
    type_name: ClassVar[str] = "endDate"


@dataclass(frozen=True)
class Numbered:
    occurrences: int
    type_name: ClassVar[str] = "numbered"


Range = Union[NoEnd, EndDate, Numbered]


# ============================================================================
# Flat inbound description
# ============================================================================

@dataclass
class RecurrenceDescription:
    """Flat recurrence options as received from the create tool."""
    is_recurring: bool = False
    type: Optional[str] = None
    interval: Optional[int] = None
    range_type: Optional[str] = None
    end_date: Optional[date] = None
    number_of_occurrences: Optional[int] = None
    days_of_week: list = field(default_factory=list)
    month_day: Optional[int] = None
    week_day: Optional[str] = None
    week_index: Optional[str] = None

    def check(self, start: date) -> None:
        """
        Validate cross-field invariants against the event start date.

        Raises RecurrenceError describing the first violation.
        """
        if not self.is_recurring:
            return
        if not self.type:
            raise RecurrenceError("recurrence_type is required when is_recurring is true")
        if not self.range_type:
            raise RecurrenceError("recurrence_range_type is required when is_recurring is true")
        if self.interval is not None and self.interval < 1:
            raise RecurrenceError("recurrence_interval must be a positive integer")

        range_type = RangeType(self.range_type)
        if range_type == RangeType.END_DATE:
            if self.end_date is None:
                raise RecurrenceError("recurrence_end_date is required when recurrence_range_type is 'endDate'")
            if self.end_date < start:
                raise RecurrenceError(
                    f"recurrence_end_date {self.end_date.isoformat()} is before the event start date {start.isoformat()}"
                )
        elif range_type == RangeType.NUMBERED:
            if not self.number_of_occurrences or self.number_of_occurrences < 1:
                raise RecurrenceError(
                    "recurrence_occurrences must be a positive integer when recurrence_range_type is 'numbered'"
                )

        if self.month_day is not None and not 1 <= self.month_day <= 31:
            raise RecurrenceError("month_day must be between 1 and 31")

    def to_pattern(self) -> Pattern:
        """Parse the flat type + options into a pattern variant."""
        interval = self.interval or 1
        kind = RecurrenceType(self.type)

        if kind == RecurrenceType.DAILY:
            return Daily(interval)
        if kind == RecurrenceType.WEEKLY:
            return Weekly(interval, tuple(Weekday.parse(d) for d in self.days_of_week or []))
        if kind in (RecurrenceType.ABSOLUTE_MONTHLY, RecurrenceType.MONTHLY):
            return AbsoluteMonthly(interval, self.month_day)
        if kind == RecurrenceType.RELATIVE_MONTHLY:
            return RelativeMonthly(
                interval,
                Weekday.parse(self.week_day) if self.week_day else None,
                WeekIndex(self.week_index) if self.week_index else None,
            )
        if kind == RecurrenceType.YEARLY:
            return Yearly(interval)
        if kind == RecurrenceType.ABSOLUTE_YEARLY:
            return AbsoluteYearly(interval)
        if kind == RecurrenceType.RELATIVE_YEARLY:
            return RelativeYearly(interval)
        raise RecurrenceError(f"Unsupported recurrence type: {self.type!r}")

    def to_range(self) -> Range:
        range_type = RangeType(self.range_type)
        if range_type == RangeType.END_DATE:
            return EndDate(self.end_date)
        if range_type == RangeType.NUMBERED:
            return Numbered(self.number_of_occurrences)
        return NoEnd()


# ============================================================================
# Derivation helpers
# ============================================================================

def last_day_of_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def relative_week_index(day: date) -> WeekIndex:
    """
    Week index of a date's weekday within its month.

    "last" when the same weekday does not occur again this month,
    otherwise the ordinal of ceil(day / 7).
    """
    if day.day + 7 > last_day_of_month(day):
        return WeekIndex.LAST
    week_of_month = math.ceil(day.day / 7)
    if 1 <= week_of_month <= len(ORDINAL_WEEKS):
        return ORDINAL_WEEKS[week_of_month - 1]
    return WeekIndex.LAST


# ============================================================================
# Rendering
# ============================================================================

def build_pattern(pattern: Pattern, start: date) -> dict:
    """Render a pattern variant, filling derived fields from the start date."""
    result = {"type": pattern.type_name, "interval": pattern.interval}

    if isinstance(pattern, (Daily, Yearly, AbsoluteYearly, RelativeYearly)):
        return result

    if isinstance(pattern, Weekly):
        days = pattern.days or (Weekday.of(start),)
        result["daysOfWeek"] = [d.graph_name for d in days]
        return result

    if isinstance(pattern, AbsoluteMonthly):
        result["dayOfMonth"] = pattern.day_of_month or start.day
        return result

    if isinstance(pattern, RelativeMonthly):
        week_day = pattern.week_day or Weekday.of(start)
        result["daysOfWeek"] = [week_day.graph_name]
        result["index"] = (pattern.week_index or relative_week_index(start)).value
        return result

    raise TypeError(f"Unknown recurrence pattern: {pattern!r}")


def build_range(recurrence_range: Range, start: date, timezone: str) -> dict:
    result = {
        "type": recurrence_range.type_name,
        "startDate": start.strftime(DATE_FORMAT),
        "recurrenceTimeZone": timezone,
    }

    if isinstance(recurrence_range, NoEnd):
        return result

    if isinstance(recurrence_range, EndDate):
        result["endDate"] = recurrence_range.end.strftime(DATE_FORMAT)
        return result

    if isinstance(recurrence_range, Numbered):
        result["numberOfOccurrences"] = recurrence_range.occurrences
        return result

    raise TypeError(f"Unknown recurrence range: {recurrence_range!r}")


def translate_recurrence(
    description: RecurrenceDescription,
    start: datetime,
    timezone: str,
) -> Optional[dict]:
    """
    Build the Graph patternedRecurrence for an event.

    Args:
        description: Flat recurrence options
        start: Event start as civil time in `timezone` (naive or aware)
        timezone: Event IANA timezone; also used as recurrenceTimeZone

    Returns:
        {"pattern": ..., "range": ...} or None when the event is not recurring.

    Raises:
        RecurrenceError: Invariant violated (missing type, end date before start, ...)
    """
    if not description.is_recurring:
        return None

    zone = get_zone(timezone)
    local_start = start.replace(tzinfo=zone) if start.tzinfo is None else start.astimezone(zone)
    start_date = local_start.date()

    description.check(start_date)

    return {
        "pattern": build_pattern(description.to_pattern(), start_date),
        "range": build_range(description.to_range(), start_date, timezone),
    }

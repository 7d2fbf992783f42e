"""Input models for the calendar tools."""

from datetime import date, timedelta
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from outlook_calendar.recurrence import RecurrenceDescription
from outlook_calendar.settings import get_settings
from outlook_calendar.utils.timezones import (
    format_local_datetime,
    get_zone,
    next_full_hour,
    parse_local_datetime,
    today_in_zone,
)


WeekdayName = Literal["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]

RecurrenceTypeName = Literal[
    "daily",
    "weekly",
    "monthly",
    "yearly",
    "absoluteMonthly",
    "relativeMonthly",
    "absoluteYearly",
    "relativeYearly",
]

DEFAULT_CONTENT = "<p>This is a scheduled team meeting. Please join on time with your updates and questions.</p>"


def _default_timezone() -> str:
    return get_settings().default_timezone


def _check_timezone(value: str) -> str:
    get_zone(value)
    return value


class GetCalendarEventsInput(BaseModel):
    """Input model for listing events in a date window."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(
        default="me",
        description="Microsoft Graph user ID or 'me' to use USER_ID from the environment. Example: me",
    )
    start_date: Optional[date] = Field(
        default=None,
        description="Start date in YYYY-MM-DD format (default: today in the requested timezone)",
    )
    end_date: Optional[date] = Field(
        default=None,
        description="End date in YYYY-MM-DD format, inclusive (default: tomorrow)",
    )
    timezone: str = Field(
        default_factory=_default_timezone,
        description="IANA timezone (default: Asia/Manila)",
    )

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        return _check_timezone(value)

    @model_validator(mode="after")
    def _fill_dates(self) -> "GetCalendarEventsInput":
        if self.start_date is None:
            self.start_date = today_in_zone(self.timezone)
        if self.end_date is None:
            self.end_date = self.start_date + timedelta(days=1)
        if self.start_date > self.end_date:
            raise ValueError("Invalid date range: start_date must not be after end_date")
        return self


class CreateCalendarEventInput(BaseModel):
    """Input model for creating a (possibly recurring) calendar event."""

    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(
        default="me",
        description="Microsoft Graph user ID or 'me' to use USER_ID from the environment. Example: me",
    )
    subject: str = Field(
        default="Team Sync Meeting",
        min_length=1,
        description="The subject of the event. Example: Team Sync Meeting",
    )
    content: str = Field(
        default=DEFAULT_CONTENT,
        description="The content/description of the event (HTML allowed). Example: <p>Weekly sync.</p>",
    )
    timezone: str = Field(
        default_factory=_default_timezone,
        description="IANA timezone for the event. Example: America/New_York",
    )
    start_datetime: Optional[str] = Field(
        default=None,
        description="Start in YYYY-MM-DDTHH:MM:SS format. Example: 2025-06-20T14:00:00 (default: next full hour)",
    )
    end_datetime: Optional[str] = Field(
        default=None,
        description="End in YYYY-MM-DDTHH:MM:SS format. Example: 2025-06-20T15:00:00 (default: one hour after start)",
    )
    is_online_meeting: bool = Field(
        default=True,
        description="Whether this is an online meeting. Example: true",
    )
    attendees: list[str] = Field(
        default_factory=list,
        description='Attendee email addresses. Entries without "@" are ignored. Example: ["user1@example.com"]',
    )
    location: Optional[str] = Field(
        default=None,
        description="The location of the event. Example: Conference Room A",
    )
    importance: str = Field(
        default="Normal",
        description="The importance of the event: Low, Normal or High",
    )
    is_recurring: bool = Field(
        default=False,
        description="Whether this is a recurring event. Example: true for weekly team meetings",
    )
    recurrence_type: Optional[RecurrenceTypeName] = Field(
        default=None,
        description="The type of recurrence. Required when is_recurring. 'monthly' is treated as absoluteMonthly",
    )
    days_of_week: Optional[list[WeekdayName]] = Field(
        default=None,
        description='Days for weekly recurrence. Defaults to the start weekday. Example: ["monday", "wednesday"]',
    )
    recurrence_interval: int = Field(
        default=1,
        ge=1,
        description="The interval between occurrences. Example: 2 for every other week",
    )
    recurrence_range_type: Optional[Literal["endDate", "noEnd", "numbered"]] = Field(
        default=None,
        description='How the recurrence ends: "endDate", "numbered" or "noEnd". Required when is_recurring',
    )
    recurrence_end_date: Optional[date] = Field(
        default=None,
        description="End date for endDate recurrence (YYYY-MM-DD). Example: 2025-12-31",
    )
    recurrence_occurrences: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of occurrences for numbered recurrence. Example: 10",
    )
    month_day: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Day of month for absoluteMonthly recurrence (default: the start day)",
    )
    week_day: Optional[WeekdayName] = Field(
        default=None,
        description="Weekday for relativeMonthly recurrence (default: the start weekday)",
    )
    week_index: Optional[Literal["first", "second", "third", "fourth", "last"]] = Field(
        default=None,
        description="Week of the month for relativeMonthly recurrence (default: derived from the start date)",
    )

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        return _check_timezone(value)

    @field_validator("days_of_week", "week_day", mode="before")
    @classmethod
    def _lowercase_days(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        if isinstance(value, list):
            return [v.strip().lower() if isinstance(v, str) else v for v in value]
        return value

    @field_validator("subject")
    @classmethod
    def _validate_subject(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Subject is required")
        return value

    @model_validator(mode="after")
    def _validate_window(self) -> "CreateCalendarEventInput":
        if self.start_datetime:
            start = parse_local_datetime(self.start_datetime)
        else:
            start = next_full_hour(self.timezone)

        if self.end_datetime:
            end = parse_local_datetime(self.end_datetime)
        else:
            end = start + timedelta(hours=1)

        if start > end:
            raise ValueError("Invalid time range: start_datetime must not be after end_datetime")

        self.start_datetime = format_local_datetime(start)
        self.end_datetime = format_local_datetime(end)

        self.recurrence_description().check(start.date())
        return self

    def recurrence_description(self) -> RecurrenceDescription:
        return RecurrenceDescription(
            is_recurring=self.is_recurring,
            type=self.recurrence_type,
            interval=self.recurrence_interval,
            range_type=self.recurrence_range_type,
            end_date=self.recurrence_end_date,
            number_of_occurrences=self.recurrence_occurrences,
            days_of_week=list(self.days_of_week or []),
            month_day=self.month_day,
            week_day=self.week_day,
            week_index=self.week_index,
        )

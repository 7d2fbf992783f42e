"""
Tests for the get-calendar-events tool and event projection.
"""

import asyncio
from datetime import date, datetime, timezone
from unittest.mock import patch

import httpx

from outlook_calendar.api.events import CALENDAR_VIEW_SELECT, format_event
from outlook_calendar.server import build_registry
from outlook_calendar.tools.calendar_events import query_window, render_summary
from outlook_calendar.tools.registry import ERROR_MARKER, decode_data_uri
from outlook_calendar.tools.schemas import GetCalendarEventsInput
from outlook_calendar.transport.mcp_server import to_mcp_result
from outlook_calendar.utils.timezones import to_utc_string

from conftest import FakeGraph, make_context


RAW_EVENT = {
    "id": "AAMk-1",
    "subject": "Standup",
    "start": {"dateTime": "2025-07-01T01:00:00.0000000", "timeZone": "UTC"},
    "end": {"dateTime": "2025-07-01T01:15:00.0000000", "timeZone": "UTC"},
    "organizer": {"emailAddress": {"name": "Dana", "address": "dana@contoso.com"}},
    "attendees": [
        {
            "type": "required",
            "status": {"response": "accepted", "time": "2025-06-30T10:00:00Z"},
            "emailAddress": {"name": "Lee", "address": "lee@contoso.com"},
        },
    ],
    "bodyPreview": "x" * 120,
    "webLink": "https://outlook.example/event/1",
}


def call(fake: FakeGraph, arguments: dict, **settings_overrides):
    context = make_context(fake, **settings_overrides)
    return asyncio.run(build_registry().call("get-calendar-events", arguments, context))


class TestQueryWindow:
    """Date window semantics."""

    def test_single_day_window_spans_to_next_midnight(self):
        start, end = query_window(date(2025, 7, 1), date(2025, 7, 1), "Asia/Manila")
        assert to_utc_string(start) == "2025-06-30T16:00:00Z"
        assert to_utc_string(end) == "2025-07-01T16:00:00Z"

    def test_window_across_dst_change(self):
        start, end = query_window(date(2025, 3, 8), date(2025, 3, 9), "America/New_York")
        assert to_utc_string(start) == "2025-03-08T05:00:00Z"
        assert to_utc_string(end) == "2025-03-10T04:00:00Z"


class TestInputModel:
    """Defaults and cross-field checks."""

    def test_defaults_today_and_tomorrow_in_zone(self):
        now = datetime(2025, 6, 30, 20, 0, tzinfo=timezone.utc)
        with patch("outlook_calendar.utils.timezones.datetime") as mock_datetime:
            mock_datetime.now.return_value = now
            params = GetCalendarEventsInput(timezone="Asia/Manila")

        assert params.start_date == date(2025, 7, 1)
        assert params.end_date == date(2025, 7, 2)
        assert params.user_id == "me"

    def test_start_after_end_rejected_without_upstream_call(self):
        fake = FakeGraph()

        result = call(fake, {"start_date": "2025-07-02", "end_date": "2025-07-01", "timezone": "UTC"})

        assert result.is_error
        assert "start_date must not be after end_date" in result.text[0]
        assert fake.requests == []

    def test_bad_date_format(self):
        fake = FakeGraph()
        result = call(fake, {"start_date": "July 1st"})
        assert result.is_error
        assert "start_date" in result.text[0]
        assert fake.requests == []


class TestProjection:
    """Raw Graph event to display shape."""

    def test_full_event(self):
        event = format_event(RAW_EVENT)

        assert event["subject"] == "Standup"
        assert event["organizer"] == {"name": "Dana", "email": "dana@contoso.com"}
        assert event["attendees"] == [
            {"name": "Lee", "email": "lee@contoso.com", "type": "required", "status": "accepted"},
        ]
        assert event["webLink"] == "https://outlook.example/event/1"

    def test_missing_organizer_and_subject(self):
        event = format_event({"id": "x", "start": None, "end": None})
        assert event["subject"] == "No subject"
        assert event["organizer"] == {"name": "Unknown"}
        assert event["attendees"] == []

    def test_snake_case_email_address(self):
        event = format_event({
            "organizer": {"email_address": {"name": "Kim", "address": "kim@contoso.com"}},
            "attendees": [{"type": "optional", "email_address": {"address": "pat@contoso.com"}}],
        })
        assert event["organizer"]["email"] == "kim@contoso.com"
        assert event["attendees"][0]["name"] == "Unknown"
        assert event["attendees"][0]["email"] == "pat@contoso.com"


class TestRendering:
    """Text summary."""

    def test_empty(self):
        text = render_summary([], date(2025, 7, 1), date(2025, 7, 1), "Asia/Manila")
        assert text == (
            "📅 Found 0 events between 2025-07-01 and 2025-07-01\n\n"
            "No events found in the specified date range."
        )

    def test_event_bullet(self):
        text = render_summary([format_event(RAW_EVENT)], date(2025, 7, 1), date(2025, 7, 1), "Asia/Manila")

        assert text.startswith("📅 Found 1 events between 2025-07-01 and 2025-07-01\n\n1. Standup\n")
        assert "   📅 Jul 1, 2025 9:00 AM - Jul 1, 2025 9:15 AM" in text
        assert "   👤 Organizer: Dana <dana@contoso.com>" in text
        assert "      • Lee <lee@contoso.com>" in text
        assert f"   📝 {'x' * 100}...\n" in text
        assert "   🔗 https://outlook.example/event/1" in text

    def test_no_attendees(self):
        event = format_event({**RAW_EVENT, "attendees": []})
        text = render_summary([event], date(2025, 7, 1), date(2025, 7, 1), "UTC")
        assert "   👥 No attendees" in text


class TestGetTool:
    """Full dispatch through the registry against a fake Graph."""

    def test_window_and_query_parameters(self):
        fake = FakeGraph()

        call(fake, {"start_date": "2025-07-01", "end_date": "2025-07-01", "timezone": "Asia/Manila"})

        request = fake.last_request
        assert request.method == "GET"
        assert fake.last_path() == "/v1.0/users/alex@contoso.com/calendar/calendarView"
        assert request.url.params["startDateTime"] == "2025-06-30T16:00:00Z"
        assert request.url.params["endDateTime"] == "2025-07-01T16:00:00Z"
        assert request.url.params["$select"] == CALENDAR_VIEW_SELECT
        assert request.url.params["$orderby"] == "start/dateTime"
        assert request.url.params["$top"] == "100"

    def test_pagination_drained_in_order(self):
        next_link = "https://graph.test/v1.0/users/alex@contoso.com/calendar/calendarView?$skiptoken=abc"
        second = {**RAW_EVENT, "id": "AAMk-2", "subject": "Retro"}
        fake = FakeGraph(
            httpx.Response(200, json={"value": [RAW_EVENT], "@odata.nextLink": next_link}),
            httpx.Response(200, json={"value": [second]}),
        )

        result = call(fake, {"start_date": "2025-07-01", "end_date": "2025-07-02", "timezone": "Asia/Manila"})

        assert len(fake.requests) == 2
        assert fake.requests[1].url.params["$skiptoken"] == "abc"
        events = result.payload("Formatted Events")
        assert [e["id"] for e in events] == ["AAMk-1", "AAMk-2"]
        assert "📅 Found 2 events" in result.text[0]

    def test_response_envelope(self):
        fake = FakeGraph(httpx.Response(200, json={"value": [RAW_EVENT]}))

        response = to_mcp_result(call(fake, {"start_date": "2025-07-01", "timezone": "Asia/Manila"}))

        kinds = [item.type for item in response.content]
        assert kinds == ["text", "resource", "resource"]

        detailed = response.content[1].resource
        assert detailed.text == "Detailed Calendar Events"
        assert detailed.mime_type == "application/json"
        payload = decode_data_uri(detailed.uri)
        assert payload["count"] == 1
        assert payload["events"][0]["start"] == "2025-07-01 09:00:00 PST"
        assert payload["events"][0]["end"] == "2025-07-01 09:15:00 PST"

        formatted = response.content[2].resource
        assert formatted.text == "Formatted Events"
        assert decode_data_uri(formatted.uri)[0]["subject"] == "Standup"

    def test_upstream_error(self):
        fake = FakeGraph(httpx.Response(
            403,
            json={"error": {"code": "ErrorAccessDenied", "message": "Access is denied."}},
        ))

        result = call(fake, {"start_date": "2025-07-01"})

        assert len(result.text) == 1
        assert result.resources == []
        assert result.text[0].startswith(ERROR_MARKER)
        assert "Failed to fetch calendar events" in result.text[0]
        assert "Access is denied." in result.text[0]
        assert result.meta["error"] is True
        assert result.is_error is True

"""
get-calendar-events tool.

List events (recurring series expanded) in a date window.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from outlook_calendar.api.events import format_events, list_calendar_view
from outlook_calendar.tools.registry import StructuredResource, ToolContext, ToolResult
from outlook_calendar.tools.schemas import GetCalendarEventsInput
from outlook_calendar.utils.timezones import (
    format_event_time,
    format_with_zone_name,
    parse_graph_datetime,
    start_of_day,
)


logger = logging.getLogger(__name__)


NAME = "get-calendar-events"
DESCRIPTION = (
    "Fetch calendar events for a user within a date range. "
    "Dates are whole days in the given timezone; end_date is inclusive."
)

PREVIEW_LENGTH = 100


def query_window(start_date: date, end_date: date, tz_name: str) -> tuple[datetime, datetime]:
    """[start_date 00:00, end_date + 1 day 00:00) in the given zone."""
    return start_of_day(start_date, tz_name), start_of_day(end_date + timedelta(days=1), tz_name)


def _instant(value: Optional[dict]) -> Optional[datetime]:
    if not value or not value.get("dateTime"):
        return None
    return parse_graph_datetime(value["dateTime"], value.get("timeZone"))


def _display_time(value: Optional[dict], tz_name: str) -> str:
    instant = _instant(value)
    return format_event_time(instant, tz_name) if instant else "Time not specified"


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def render_event(index: int, event: dict, tz_name: str) -> str:
    organizer = event.get("organizer") or {}
    organizer_email = f" <{organizer['email']}>" if organizer.get("email") else ""

    lines = [
        f"{index}. {event.get('subject') or 'No subject'}",
        f"   📅 {_display_time(event.get('start'), tz_name)} - {_display_time(event.get('end'), tz_name)}",
        f"   👤 Organizer: {organizer.get('name') or 'Unknown'}{organizer_email}",
    ]

    attendees = event.get("attendees") or []
    if attendees:
        lines.append("   👥 Attendees:")
        for attendee in attendees:
            email = f" <{attendee['email']}>" if attendee.get("email") else ""
            lines.append(f"      • {attendee.get('name') or 'Unknown'}{email}")
    else:
        lines.append("   👥 No attendees")

    if event.get("bodyPreview"):
        lines.append(f"   📝 {_preview(event['bodyPreview'])}")
    if event.get("webLink"):
        lines.append(f"   🔗 {event['webLink']}")

    return "\n".join(lines) + "\n"


def render_summary(events: list[dict], start_date: date, end_date: date, tz_name: str) -> str:
    header = f"📅 Found {len(events)} events between {start_date.isoformat()} and {end_date.isoformat()}\n\n"
    if not events:
        return header + "No events found in the specified date range."
    return header + "\n".join(render_event(i, e, tz_name) for i, e in enumerate(events, start=1))


def detailed_events(events: list[dict], tz_name: str) -> dict:
    """{count, events} with start/end rendered as zoned timestamps."""
    detailed = []
    for event in events:
        start = _instant(event.get("start"))
        end = _instant(event.get("end"))
        detailed.append({
            **event,
            "start": format_with_zone_name(start, tz_name) if start else None,
            "end": format_with_zone_name(end, tz_name) if end else None,
        })
    return {"count": len(detailed), "events": detailed}


async def get_calendar_events(params: GetCalendarEventsInput, context: ToolContext) -> ToolResult:
    """Fetch the window from Graph and render it both as text and JSON."""
    start, end = query_window(params.start_date, params.end_date, params.timezone)
    logger.info(
        f"Fetching events for '{params.user_id}' "
        f"{params.start_date} .. {params.end_date} ({params.timezone})"
    )

    raw_events = await list_calendar_view(context.graph, params.user_id, start, end)
    events = format_events(raw_events)

    return ToolResult(
        text=[render_summary(events, params.start_date, params.end_date, params.timezone)],
        resources=[
            StructuredResource("Detailed Calendar Events", detailed_events(events, params.timezone)),
            StructuredResource("Formatted Events", events),
        ],
    )

"""
create-calendar-event tool.

Create calendar events with attendees, online meeting links and
(optionally) a recurrence pattern.
"""

import logging
from typing import Optional

from outlook_calendar.api.events import create_event as api_create_event
from outlook_calendar.recurrence import translate_recurrence
from outlook_calendar.tools.registry import StructuredResource, ToolContext, ToolResult
from outlook_calendar.tools.schemas import CreateCalendarEventInput
from outlook_calendar.utils.timezones import (
    format_in_zone,
    LOCAL_DATETIME_FORMAT,
    parse_graph_datetime,
    parse_local_datetime,
)


logger = logging.getLogger(__name__)


NAME = "create-calendar-event"
DESCRIPTION = (
    "Create a new calendar event with the specified parameters. "
    "Supports attendees, online meetings and recurring events "
    "(daily, weekly, absoluteMonthly, relativeMonthly, yearly)."
)

IMPORTANCE_LEVELS = ("low", "normal", "high")


def normalize_importance(value: Optional[str]) -> str:
    """Lower-case importance; anything unrecognized becomes 'normal'."""
    importance = (value or "").strip().lower()
    return importance if importance in IMPORTANCE_LEVELS else "normal"


def build_attendees(emails: list[str]) -> list[dict]:
    """Required attendees for every entry that looks like an email address."""
    attendees = []
    for email in emails:
        if not isinstance(email, str) or "@" not in email:
            continue
        address = email.strip()
        attendees.append({
            "emailAddress": {
                "address": address,
                "name": address.split("@")[0],
            },
            "type": "required",
        })
    return attendees


def build_event_payload(params: CreateCalendarEventInput) -> dict:
    """
    Assemble the Graph event resource for a create request.

    Args:
        params: Validated tool input (datetimes already normalized)

    Returns:
        Event resource ready to POST to users/{id}/events.
    """
    payload = {
        "subject": params.subject,
        "body": {
            "contentType": "html",
            "content": params.content or "",
        },
        "start": {
            "dateTime": params.start_datetime,
            "timeZone": params.timezone,
        },
        "end": {
            "dateTime": params.end_datetime,
            "timeZone": params.timezone,
        },
        "isOnlineMeeting": params.is_online_meeting,
        "importance": normalize_importance(params.importance),
        "responseRequested": True,
    }

    if params.is_online_meeting:
        payload["onlineMeetingProvider"] = "teamsForBusiness"

    if params.location:
        payload["location"] = {"displayName": params.location}

    attendees = build_attendees(params.attendees)
    if attendees:
        payload["attendees"] = attendees

    recurrence = translate_recurrence(
        params.recurrence_description(),
        parse_local_datetime(params.start_datetime),
        params.timezone,
    )
    if recurrence is not None:
        payload["recurrence"] = recurrence

    return payload


# --- Rendering ---

def _event_time(value: Optional[dict], tz_name: str) -> str:
    if not value or not value.get("dateTime"):
        return "Time not specified"
    try:
        parsed = parse_graph_datetime(value["dateTime"], value.get("timeZone") or tz_name)
    except ValueError:
        return "Invalid date"
    return format_in_zone(parsed, tz_name, LOCAL_DATETIME_FORMAT)


def _location_name(event: dict) -> str:
    location = event.get("location")
    if isinstance(location, str) and location:
        return location
    if isinstance(location, dict) and location.get("displayName"):
        return location["displayName"]
    return "No location specified"


def _join_url(event: dict) -> Optional[str]:
    meeting = event.get("onlineMeeting")
    if isinstance(meeting, dict):
        return meeting.get("joinUrl")
    if isinstance(meeting, str):
        return meeting
    return None


def _attendee_line(attendee: dict) -> str:
    address = attendee.get("emailAddress") or attendee.get("email_address") or {}
    email = address.get("address") or "unknown"
    name = address.get("name") or email.split("@")[0]
    return f"   • {name} <{email}>"


def render_created_event(event: dict, tz_name: str) -> str:
    lines = [
        "✅ Event created successfully!",
        "",
        f"📅 {event.get('subject') or 'No subject'}",
        f"🕒 {_event_time(event.get('start'), tz_name)} - {_event_time(event.get('end'), tz_name)}",
        f"📍 {_location_name(event)}",
    ]

    join_url = _join_url(event)
    if join_url:
        lines.append(f"🔗 Join: {join_url}")

    attendees = event.get("attendees") or []
    if attendees:
        lines.extend(["", "👥 Attendees:"])
        lines.extend(_attendee_line(a) for a in attendees)

    return "\n".join(lines)


async def create_calendar_event(params: CreateCalendarEventInput, context: ToolContext) -> ToolResult:
    """Create the event upstream and summarize what Graph stored."""
    payload = build_event_payload(params)
    logger.info(
        f"Creating event '{params.subject}' for '{params.user_id}' "
        f"({params.start_datetime} - {params.end_datetime} {params.timezone}, "
        f"recurring={'recurrence' in payload})"
    )

    event = await api_create_event(context.graph, params.user_id, payload)

    return ToolResult(
        text=[render_created_event(event, params.timezone)],
        resources=[StructuredResource("Created Event", event)],
        meta={"success": True},
    )

"""
Microsoft Graph Events API wrapper.

Handles:
- Calendar view (date window) with pagination drained
- Create event
- Projection of raw events to a stable display shape
"""

import logging
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from outlook_calendar.api.client import GraphAPIError, GraphClient
from outlook_calendar.utils.timezones import to_utc_string


logger = logging.getLogger(__name__)


CALENDAR_VIEW_SELECT = "subject,start,end,organizer,attendees,bodyPreview,webLink"
CALENDAR_VIEW_PAGE_SIZE = 100


def _user_path(user_id: str) -> str:
    return f"users/{quote(user_id, safe='@')}"


async def list_calendar_view(
    client: GraphClient,
    user_id: str,
    start: datetime,
    end: datetime,
) -> list[dict]:
    """
    List events materialized in [start, end) for a user.

    Recurring series are expanded into occurrences by Graph.

    Args:
        client: Graph client
        user_id: Graph user ID or UPN
        start: Window start (aware datetime)
        end: Window end (aware datetime)

    Returns:
        Raw Graph event resources, ordered by start.
    """
    params = {
        "startDateTime": to_utc_string(start),
        "endDateTime": to_utc_string(end),
        "$select": CALENDAR_VIEW_SELECT,
        "$orderby": "start/dateTime",
        "$top": CALENDAR_VIEW_PAGE_SIZE,
    }

    try:
        return await client.get_all(f"{_user_path(user_id)}/calendar/calendarView", params=params)
    except GraphAPIError as e:
        logger.error(f"Error fetching calendar events for '{user_id}': {e}")
        raise GraphAPIError(
            f"Failed to fetch calendar events: {e.message}",
            status=e.status,
            code=e.code,
        ) from e


async def create_event(client: GraphClient, user_id: str, payload: dict) -> dict:
    """
    Create calendar event.

    Args:
        client: Graph client
        user_id: Graph user ID or UPN
        payload: Graph event resource (see tools.create_event.build_event_payload)

    Returns:
        Created event resource with id, webLink, onlineMeeting, etc.
    """
    try:
        return await client.post(f"{_user_path(user_id)}/events", payload)
    except GraphAPIError as e:
        logger.error(f"Error creating calendar event for '{user_id}': {e}")
        raise GraphAPIError(
            f"Failed to create calendar event: {e.message}",
            status=e.status,
            code=e.code,
        ) from e


# --- Helper functions ---

def _email_address(item: Optional[dict]) -> dict:
    """Graph spells it emailAddress; some proxies return email_address."""
    if not item:
        return {}
    return item.get("emailAddress") or item.get("email_address") or {}


def format_event(event: dict) -> dict:
    """
    Project a raw Graph event to the display shape.

    Missing organizer -> name "Unknown" and no email.
    Missing subject -> "No subject".
    """
    organizer_address = _email_address(event.get("organizer"))
    organizer = {"name": organizer_address.get("name") or "Unknown"}
    if organizer_address.get("address"):
        organizer["email"] = organizer_address["address"]

    attendees = []
    for attendee in event.get("attendees") or []:
        address = _email_address(attendee)
        attendees.append({
            "name": address.get("name") or "Unknown",
            "email": address.get("address"),
            "type": attendee.get("type"),
            "status": (attendee.get("status") or {}).get("response"),
        })

    return {
        "id": event.get("id"),
        "subject": event.get("subject") or "No subject",
        "start": event.get("start"),
        "end": event.get("end"),
        "organizer": organizer,
        "attendees": attendees,
        "bodyPreview": event.get("bodyPreview"),
        "webLink": event.get("webLink"),
    }


def format_events(events: list[dict]) -> list[dict]:
    return [format_event(e) for e in events]

"""
Calendar tools: get-calendar-events, create-calendar-event
"""

from outlook_calendar.tools import calendar_events, create_event
from outlook_calendar.tools.registry import ToolContext, ToolRegistry, ToolResult
from outlook_calendar.tools.schemas import CreateCalendarEventInput, GetCalendarEventsInput


def register_calendar_tools(registry: ToolRegistry) -> ToolRegistry:
    """Register both calendar tools on a registry."""
    registry.register(
        calendar_events.NAME,
        calendar_events.DESCRIPTION,
        GetCalendarEventsInput,
        calendar_events.get_calendar_events,
    )
    registry.register(
        create_event.NAME,
        create_event.DESCRIPTION,
        CreateCalendarEventInput,
        create_event.create_calendar_event,
    )
    return registry


__all__ = [
    "register_calendar_tools",
    "ToolContext",
    "ToolRegistry",
    "ToolResult",
]

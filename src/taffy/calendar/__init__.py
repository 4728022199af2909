"""Google Calendar scheduling.

Usage:
    from taffy.calendar import schedule_event

    # calendar is the CalendarCapability published by the session manager
    message = await schedule_event("team sync at 2:30pm", calendar)
"""

from __future__ import annotations

from taffy.calendar.client import CalendarCapability, EventResult
from taffy.calendar.scheduler import (
    build_event_resource,
    classify_schedule_error,
    parse_time_of_day,
    schedule_event,
)

__all__ = [
    "CalendarCapability",
    "EventResult",
    "schedule_event",
    "build_event_resource",
    "classify_schedule_error",
    "parse_time_of_day",
]

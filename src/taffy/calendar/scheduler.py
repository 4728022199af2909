"""Turn a free-text scheduling request into a calendar event.

Time extraction is a best-effort regex: the first ``H[:MM] am|pm`` in the
request becomes a one-hour event tomorrow, anything else becomes an all-day
event tomorrow.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from taffy.calendar.client import EventResult
from taffy.config import get_time_zone
from taffy.google.exceptions import (
    GenericScheduleError,
    PermissionDeniedError,
    ScheduleError,
    SessionExpiredError,
)

logger = logging.getLogger(__name__)

TITLE_PREFIX = "Scheduled by Taffy: "
TITLE_MAX_DETAILS = 50
ALL_DAY_SUFFIX = " (All Day - Time Unspecified)"
DESCRIPTION_TEMPLATE = 'Event scheduled by Taffy Assistant based on request: "{details}"'
EVENT_DURATION = timedelta(minutes=60)
CALENDAR_ID = "primary"

TIME_PATTERN = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*(am|pm)", re.IGNORECASE)
_CREDENTIALS_PATTERN = re.compile(r"(invalid|expired) credential", re.IGNORECASE)


class EventInserter(Protocol):
    async def insert_event(self, calendar_id: str, resource: dict[str, Any]) -> EventResult: ...


def parse_time_of_day(details: str) -> time | None:
    """Extract a time of day from free text.

    Returns:
        The time in 24-hour form, or None when nothing usable is found.
    """
    match = TIME_PATTERN.search(details)
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2)) if match.group(2) else 0
    period = match.group(3).lower()

    if period == "pm" and hours < 12:
        hours += 12
    if period == "am" and hours == 12:
        hours = 0

    if hours > 23 or minutes > 59:
        logger.warning(f"Ignoring out-of-range time: {match.group(0)!r}")
        return None
    return time(hours, minutes)


def build_event_resource(
    details: str,
    now: datetime,
    time_zone: str,
) -> dict[str, Any]:
    """Build the event resource for a request made at ``now``.

    Args:
        details: The user's request, embedded verbatim in the description.
        now: When the request was made; the event lands on the next day.
        time_zone: IANA zone name used for both endpoints of a timed event.

    Returns:
        Event resource in Calendar API shape.
    """
    zone = ZoneInfo(time_zone)
    local_now = now.astimezone(zone) if now.tzinfo else now.replace(tzinfo=zone)
    tomorrow: date = local_now.date() + timedelta(days=1)

    summary = f"{TITLE_PREFIX}{details[:TITLE_MAX_DETAILS]}"
    at = parse_time_of_day(details)

    if at is not None:
        start_dt = datetime.combine(tomorrow, at, tzinfo=zone)
        # Add elapsed time, not wall-clock time, across DST changes
        end_dt = (start_dt.astimezone(timezone.utc) + EVENT_DURATION).astimezone(zone)
        start = {"dateTime": start_dt.isoformat(), "timeZone": time_zone}
        end = {"dateTime": end_dt.isoformat(), "timeZone": time_zone}
    else:
        logger.warning("Could not parse time. Creating all-day event.")
        summary += ALL_DAY_SUFFIX
        start = {"date": tomorrow.isoformat()}
        end = {"date": tomorrow.isoformat()}

    resource = {
        "summary": summary,
        "description": DESCRIPTION_TEMPLATE.format(details=details),
        "start": start,
        "end": end,
    }
    _check_endpoints(resource)
    return resource


def _check_endpoints(resource: dict[str, Any]) -> None:
    """Both endpoints must be all-day or both timed."""
    start_all_day = "date" in resource["start"]
    end_all_day = "date" in resource["end"]
    if start_all_day != end_all_day:
        raise ValueError("Event start and end must both be all-day or both be timed")
    if not start_all_day:
        for when in (resource["start"], resource["end"]):
            if not when.get("timeZone"):
                raise ValueError("Timed event endpoints require a timeZone")


def classify_schedule_error(error: Exception) -> ScheduleError:
    """Map a failed insert onto the error the user should see."""
    status = getattr(error, "status", None)
    message = str(error) or "Unknown error"

    if status == 401 or _CREDENTIALS_PATTERN.search(message):
        return SessionExpiredError(message)
    if status == 403:
        return PermissionDeniedError(message)
    return GenericScheduleError(message)


async def schedule_event(
    details: str,
    calendar: EventInserter,
    *,
    now: datetime | None = None,
    time_zone: str | None = None,
) -> str:
    """Schedule ``details`` on the primary calendar.

    The caller is responsible for checking sign-in first.

    Args:
        details: Free-text request (e.g. "meeting tomorrow at 2pm").
        calendar: Ready calendar capability.
        now: Request time; defaults to the current time.
        time_zone: IANA zone name; defaults to the configured zone.

    Returns:
        A confirmation message, or a plain-language error message.
    """
    logger.info(f"Attempting to schedule: {details!r}")
    time_zone = time_zone or get_time_zone()
    resource = build_event_resource(details, now or datetime.now(ZoneInfo(time_zone)), time_zone)
    logger.debug(f"Creating event resource: {resource}")

    try:
        result = await calendar.insert_event(CALENDAR_ID, resource)
    except Exception as e:
        classified = classify_schedule_error(e)
        logger.error(f"Error creating event: {type(classified).__name__}: {e!r}")
        return str(classified)

    return f'Okay, I\'ve scheduled "{result.summary}" in your calendar. View it: {result.html_link}'

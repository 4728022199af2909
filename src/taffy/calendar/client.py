"""Calendar capability built from a discovery document."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.errors import HttpError

from taffy.google.exceptions import CalendarApiError

logger = logging.getLogger(__name__)


@dataclass
class EventResult:
    """Represents an event returned by the Calendar API."""

    id: str
    summary: str
    html_link: str | None = None
    status: str = "confirmed"
    start: datetime | date | None = None
    end: datetime | date | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_all_day(self) -> bool:
        """Check if event is all-day (date only)."""
        return isinstance(self.start, date) and not isinstance(self.start, datetime)


class CalendarCapability:
    """Calendar operations backed by a client built from a discovery document.

    Holds the single "current token" used for calendar calls. The token is
    installed by the sign-in path and cleared on sign-out.

    Usage:
        capability = CalendarCapability(document, api_key, googleapiclient.discovery)
        capability.set_token(access_token)
        result = await capability.insert_event("primary", resource)
    """

    def __init__(self, discovery_document: dict[str, Any], api_key: str | None, sdk: Any):
        """Initialize the capability.

        Args:
            discovery_document: Parsed Calendar API discovery document.
            api_key: Application API key sent with every request.
            sdk: Module exposing ``build_from_document`` (googleapiclient.discovery).
        """
        self._document = discovery_document
        self._api_key = api_key
        self._sdk = sdk
        self._token: str | None = None
        self._service = self._build()

    def _build(self) -> Any:
        """Build the API service for the current token."""
        return self._sdk.build_from_document(
            self._document,
            developerKey=self._api_key,
            credentials=GoogleCredentials(token=self._token),
        )

    def get_token(self) -> str | None:
        return self._token

    def set_token(self, access_token: str | None) -> None:
        """Replace the current token (None clears it)."""
        if access_token == self._token:
            return
        self._token = access_token
        self._service = self._build()
        logger.info(f"Calendar token {'installed' if access_token else 'cleared'}")

    async def insert_event(self, calendar_id: str, resource: dict[str, Any]) -> EventResult:
        """Insert an event.

        Args:
            calendar_id: Calendar ID or "primary".
            resource: Event resource in Calendar API shape.

        Returns:
            The created event.

        Raises:
            CalendarApiError: If the API rejects the request.
        """
        if not self._token:
            raise CalendarApiError("Invalid Credentials", status=401)

        request = self._service.events().insert(calendarId=calendar_id, body=resource)
        try:
            result = await asyncio.to_thread(request.execute)
        except HttpError as e:
            status = e.resp.status if e.resp is not None else None
            message = getattr(e, "reason", None) or str(e)
            logger.error(f"Calendar insert failed ({status}): {message}")
            raise CalendarApiError(message, status=status) from e

        logger.info(f"Event created: {result.get('htmlLink')}")
        return self._parse_event(result)

    def _parse_event(self, data: dict) -> EventResult:
        """Parse event from API response."""
        return EventResult(
            id=data.get("id", ""),
            summary=data.get("summary", ""),
            html_link=data.get("htmlLink"),
            status=data.get("status", "confirmed"),
            start=self._parse_when(data.get("start", {})),
            end=self._parse_when(data.get("end", {})),
            raw=data,
        )

    def _parse_when(self, when: dict) -> datetime | date | None:
        if "dateTime" in when:
            with contextlib.suppress(ValueError):
                return datetime.fromisoformat(when["dateTime"].replace("Z", "+00:00"))
        elif "date" in when:
            with contextlib.suppress(ValueError):
                return date.fromisoformat(when["date"])
        return None

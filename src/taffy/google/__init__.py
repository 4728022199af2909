"""Google sign-in and API client utilities."""

from taffy.google.exceptions import (
    AuthDeniedError,
    AuthInitError,
    CalendarApiError,
    ClientInitError,
    DiscoveryFetchError,
    GenericScheduleError,
    PermissionDeniedError,
    RedirectParseError,
    ScheduleError,
    ScriptLoadError,
    SessionExpiredError,
    TaffyError,
)
from taffy.google.oauth import SCOPES, TokenClientError, TokenRequester, init_token_client

__all__ = [
    "SCOPES",
    "TokenClientError",
    "TokenRequester",
    "init_token_client",
    "TaffyError",
    "ScriptLoadError",
    "DiscoveryFetchError",
    "ClientInitError",
    "AuthInitError",
    "AuthDeniedError",
    "RedirectParseError",
    "CalendarApiError",
    "ScheduleError",
    "SessionExpiredError",
    "PermissionDeniedError",
    "GenericScheduleError",
]

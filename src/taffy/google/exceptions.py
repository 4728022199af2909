"""Google session and scheduling exceptions."""


class TaffyError(Exception):
    """Base exception for session and scheduling errors."""

    pass


class ScriptLoadError(TaffyError):
    """Raised when an SDK bundle fails to load."""

    def __init__(self, name: str, cause: Exception | None = None):
        self.name = name
        self.cause = cause
        super().__init__(f"Failed to load {name.upper()} script.")


class DiscoveryFetchError(TaffyError):
    """Raised when the API discovery document cannot be fetched or parsed."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class ClientInitError(TaffyError):
    """Raised when the calendar client cannot be built from its discovery document."""

    pass


class AuthInitError(TaffyError):
    """Raised when the identity SDK is not ready yet.

    Advisory: resolves itself once the SDK finishes loading.
    """

    pass


class AuthDeniedError(TaffyError):
    """Raised when the user denies or dismisses the consent prompt."""

    def __init__(self, message: str, error_type: str | None = None):
        self.error_type = error_type
        super().__init__(message)


class RedirectParseError(TaffyError):
    """Raised when a redirect fragment carries malformed values."""

    pass


class CalendarApiError(TaffyError):
    """Raised when a Calendar API call fails."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class ScheduleError(TaffyError):
    """Base for user-facing scheduling failures."""

    def __init__(self, message: str, provider_message: str = ""):
        self.provider_message = provider_message
        super().__init__(message)


class SessionExpiredError(ScheduleError):
    """Calendar rejected the credentials (401)."""

    def __init__(self, provider_message: str = ""):
        super().__init__(
            "Your Google Calendar session might have expired. Please try signing in again.",
            provider_message,
        )


class PermissionDeniedError(ScheduleError):
    """Calendar refused the write (403)."""

    def __init__(self, provider_message: str = ""):
        super().__init__(
            "Sorry, I don't have permission to add events to this calendar. "
            "Please check your Google Calendar sharing settings or ensure you "
            f"granted the correct permissions. ({provider_message})",
            provider_message,
        )


class GenericScheduleError(ScheduleError):
    """Any other Calendar failure."""

    def __init__(self, provider_message: str = ""):
        super().__init__(
            f"Sorry, I couldn't schedule that. There was an error: {provider_message}",
            provider_message,
        )

"""Redirect (implicit grant) callback handling.

The alternate sign-in path: Google redirects the browser to the callback
route with the grant in the URL fragment::

    http://localhost:5173/oauth2callback#access_token=abc123&expires_in=3600

The handler turns that fragment into a persisted token (or a one-shot error
message) and always sends the user back to ``/``. The in-memory sign-in flag
of a running session is never touched here; the next reader of the store
decides sign-in state from the persisted token.
"""

from __future__ import annotations

import json
import logging
import re
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass

from taffy.google.exceptions import RedirectParseError
from taffy.google.oauth import parse_fragment
from taffy.session.storage import ERROR_KEY, TOKEN_KEY, SessionStorage

logger = logging.getLogger(__name__)

ROOT_PATH = "/"
_INTEGER = re.compile(r"[+-]?\d+")


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class AccessToken:
    """Persisted access token.

    ``expires_at`` is an absolute epoch-millisecond instant fixed when the
    token is stored.
    """

    access_token: str
    expires_at: int

    def is_expired(self, at: int | None = None) -> bool:
        return (now_ms() if at is None else at) >= self.expires_at

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> AccessToken:
        data = json.loads(raw)
        return cls(access_token=str(data["access_token"]), expires_at=int(data["expires_at"]))


class OAuthCallbackHandler:
    """One-shot processor for the redirect callback route.

    Example:
        >>> storage = SessionStorage()
        >>> handler = OAuthCallbackHandler(storage, navigate=print)
        >>> handler.handle("http://localhost/oauth2callback#error=access_denied")
        /
        >>> storage.get_item("oauth_error")
        'Google Sign-In Error: access_denied'
    """

    def __init__(
        self,
        storage: SessionStorage,
        navigate: Callable[[str], None],
        clock: Callable[[], int] = now_ms,
    ):
        """Initialize the handler.

        Args:
            storage: Cross-navigation store receiving the token or error.
            navigate: Performs the redirect; called exactly once with "/".
            clock: Returns the current epoch time in milliseconds.
        """
        self.storage = storage
        self.navigate = navigate
        self.clock = clock
        self._handled = False

    def handle(self, url: str) -> None:
        """Process the callback URL, then redirect to root."""
        if self._handled:
            logger.warning("OAuth callback already processed; ignoring")
            return
        self._handled = True

        logger.info("Processing OAuth callback fragment...")
        try:
            self._process(parse_fragment(url))
        except RedirectParseError as e:
            logger.error(f"Error processing OAuth callback: {e}")
            self.storage.set_item(ERROR_KEY, f"Error processing Google Sign-In callback: {e}")
        finally:
            self.navigate(ROOT_PATH)

    def _process(self, params: dict[str, str]) -> None:
        if not params:
            logger.warning("OAuth callback: no fragment found in URL")
            return

        if "error" in params:
            error = params["error"]
            logger.error(f"OAuth error received: {error}")
            self.storage.set_item(ERROR_KEY, f"Google Sign-In Error: {error}")
            return

        access_token = params.get("access_token")
        expires_in = params.get("expires_in")

        lifetime = _parse_expires_in(expires_in) if expires_in is not None else None

        if access_token and lifetime is not None:
            token = AccessToken(
                access_token=access_token,
                expires_at=self.clock() + lifetime * 1000,
            )
            self.storage.set_item(TOKEN_KEY, token.to_json())
            logger.info("Token stored in session storage")
            return

        if access_token is not None:
            logger.error("OAuth callback: token empty or expires_in missing in fragment")
            self.storage.set_item(ERROR_KEY, "Failed to get token from Google redirect.")
            return

        logger.warning("OAuth callback: fragment has neither a token nor an error")


def _parse_expires_in(value: str) -> int:
    if not _INTEGER.fullmatch(value.strip()):
        raise RedirectParseError("Invalid expires_in value received.")
    try:
        return int(value)
    except ValueError as e:
        # int() refuses digit strings past sys.get_int_max_str_digits()
        raise RedirectParseError("Invalid expires_in value received.") from e


def load_stored_token(storage: SessionStorage, at: int | None = None) -> AccessToken | None:
    """Read the persisted token, if one exists and is still valid.

    Expired tokens are left in place; staleness is only checked on read.
    """
    raw = storage.get_item(TOKEN_KEY)
    if raw is None:
        return None

    try:
        token = AccessToken.from_json(raw)
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Ignoring malformed stored token: {e}")
        return None

    if token.is_expired(at):
        logger.info("Stored token has expired")
        return None
    return token


def pop_oauth_error(storage: SessionStorage) -> str | None:
    """Read and clear the one-shot redirect error."""
    error = storage.get_item(ERROR_KEY)
    if error is not None:
        storage.remove_item(ERROR_KEY)
    return error

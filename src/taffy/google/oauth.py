"""Google token client (implicit grant) using Authlib.

The token client asks the user for consent and hands the resulting token
response to callbacks, mirroring the Google Identity Services popup flow:

- ``callback(response)`` receives the fragment parameters of the consent
  redirect; a granted request carries ``access_token``.
- ``error_callback(error)`` receives a ``TokenClientError`` when the prompt
  was dismissed or could not be shown.

Tokens obtained this way are short-lived and are never refreshed.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlsplit

import httpx

from taffy.google.exceptions import AuthInitError

logger = logging.getLogger(__name__)


SCOPES = {
    "calendar_events": "https://www.googleapis.com/auth/calendar.events",
    "calendar_readonly": "https://www.googleapis.com/auth/calendar.readonly",
}
DEFAULT_SCOPES = ["calendar_events", "calendar_readonly"]

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
REVOKE_URL = "https://oauth2.googleapis.com/revoke"

# Error types reported to error_callback
POPUP_CLOSED = "popup_closed_by_user"
POPUP_FAILED = "popup_failed_to_open"
STATE_MISMATCH = "state_mismatch"

ConsentPrompt = Callable[[str], Awaitable[str | None]]


@dataclass
class TokenClientError:
    """Non-response failure of a token request."""

    type: str
    message: str = ""


def parse_fragment(url: str) -> dict[str, str]:
    """Parse a URL fragment into parameters; the first occurrence of a key wins."""
    fragment = urlsplit(url).fragment
    params: dict[str, str] = {}
    for key, value in parse_qsl(fragment, keep_blank_values=True):
        params.setdefault(key, value)
    return params


def resolve_scopes(scopes: list[str]) -> list[str]:
    """Resolve scope names to full URLs."""
    resolved = []
    for scope in scopes:
        if scope.startswith("https://"):
            resolved.append(scope)
        elif scope in SCOPES:
            resolved.append(SCOPES[scope])
        else:
            raise ValueError(f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}")
    return resolved


class TokenRequester:
    """Requests access tokens through an interactive consent prompt.

    Example:
        >>> requester = init_token_client(env, client_id, redirect_uri,
        ...                               prompt, on_token, on_error)
        >>> await requester.request_access_token(prompt="consent")
    """

    def __init__(
        self,
        session: Any,
        consent_prompt: ConsentPrompt,
        callback: Callable[[dict[str, str]], None],
        error_callback: Callable[[TokenClientError], None],
    ):
        """Initialize the requester.

        Args:
            session: Authlib AsyncOAuth2Client bound to client ID, scopes and redirect URI.
            consent_prompt: Shows the authorization URL and returns the redirect URL,
                or None if the user dismissed it.
            callback: Receives the token response.
            error_callback: Receives prompt failures.
        """
        self.session = session
        self.consent_prompt = consent_prompt
        self.callback = callback
        self.error_callback = error_callback

    def get_authorization_url(self, prompt: str = "consent") -> tuple[str, str]:
        """Build the implicit grant authorization URL.

        Returns:
            Tuple of (authorization URL, state).
        """
        return self.session.create_authorization_url(
            AUTHORIZE_URL,
            response_type="token",
            prompt=prompt,
            include_granted_scopes="true",
        )

    async def request_access_token(self, prompt: str = "consent") -> None:
        """Run one consent round trip and report the outcome to the callbacks."""
        url, state = self.get_authorization_url(prompt)

        try:
            redirect_url = await self.consent_prompt(url)
        except Exception as e:
            logger.error(f"Consent prompt failed: {e}")
            self.error_callback(TokenClientError(POPUP_FAILED, str(e)))
            return

        if not redirect_url:
            self.error_callback(TokenClientError(POPUP_CLOSED))
            return

        response = parse_fragment(redirect_url)
        if response.get("state") and response["state"] != state:
            self.error_callback(TokenClientError(STATE_MISMATCH, "Redirect state does not match"))
            return

        self.callback(response)

    async def revoke(self, access_token: str) -> bool:
        """Revoke a token at Google.

        Returns:
            True if Google accepted the revocation.
        """
        try:
            response = await self.session.post(
                REVOKE_URL,
                params={"token": access_token},
                withhold_token=True,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to revoke token remotely: {e}")
            return False

        if response.is_error:
            logger.warning(f"Token revocation returned {response.status_code}")
            return False

        logger.info("Token revoked.")
        return True

    async def aclose(self) -> None:
        await self.session.aclose()


def init_token_client(
    environment: Any,
    client_id: str | None,
    redirect_uri: str,
    consent_prompt: ConsentPrompt,
    callback: Callable[[dict[str, str]], None],
    error_callback: Callable[[TokenClientError], None],
    scopes: list[str] | None = None,
) -> TokenRequester:
    """Build the token requester from the loaded identity SDK.

    Args:
        environment: SdkEnvironment holding the "gis" namespace.
        client_id: OAuth client ID.
        redirect_uri: Redirect URI registered for the client.
        consent_prompt: See TokenRequester.
        callback: See TokenRequester.
        error_callback: See TokenRequester.
        scopes: Scope names or URLs. Defaults to calendar events + read.

    Raises:
        AuthInitError: If the identity SDK is not loaded yet (advisory).
        ValueError: If the client ID is missing or a scope is unknown.
    """
    gis = environment.get("gis")
    if gis is None or not hasattr(gis, "AsyncOAuth2Client"):
        raise AuthInitError("Google Sign-In library not fully loaded. Please wait.")

    if not client_id:
        raise ValueError("GOOGLE_CLIENT_ID is not configured")

    session = gis.AsyncOAuth2Client(
        client_id=client_id,
        scope=" ".join(resolve_scopes(scopes or DEFAULT_SCOPES)),
        redirect_uri=redirect_uri,
    )
    logger.info("GIS Token Client initialized.")
    return TokenRequester(session, consent_prompt, callback, error_callback)

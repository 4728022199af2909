"""Google session lifecycle.

Loads the API client SDK and the identity SDK concurrently, initializes the
calendar capability and the token requester from them, and folds both
outcomes into one load status:

    LOADING --both initialized, no error--> READY
    LOADING --any load/init error---------> FAILED   (terminal)

Sign-in and sign-out only toggle ``is_signed_in``; they never change the load
status. The two branches settle independently, so callers should check the
capability they need (``calendar``, ``token_requester``) rather than
``status``.

A failure on one branch does not stop the other. If the other branch later
succeeds, its capability is still published, but the status stays FAILED.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from taffy.calendar.client import CalendarCapability
from taffy.google.discovery import initialize_calendar_client
from taffy.google.exceptions import (
    AuthDeniedError,
    AuthInitError,
    ClientInitError,
    DiscoveryFetchError,
    ScriptLoadError,
)
from taffy.google.oauth import (
    POPUP_CLOSED,
    ConsentPrompt,
    TokenClientError,
    TokenRequester,
    init_token_client,
)
from taffy.session.callback import load_stored_token
from taffy.session.loader import ScriptLoader, SdkEnvironment, SdkScript
from taffy.session.storage import TOKEN_KEY, SessionStorage

logger = logging.getLogger(__name__)

GAPI_MODULE = "googleapiclient.discovery"
GIS_MODULE = "authlib.integrations.httpx_client"

NOT_READY_MESSAGE = "Authentication service not ready. Please wait a moment and try again."


class LoadStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass
class LoadState:
    """Load progress of the two SDK branches.

    ``error`` is the first fatal load error and is never cleared.
    ``advisory`` holds a transient, non-fatal notice.
    """

    gapi_loaded: bool = False
    gis_loaded: bool = False
    error: str | None = None
    advisory: str | None = None

    @property
    def is_loading(self) -> bool:
        return not (self.gapi_loaded and self.gis_loaded) and self.error is None

    @property
    def status(self) -> LoadStatus:
        if self.error is not None:
            return LoadStatus.FAILED
        if self.gapi_loaded and self.gis_loaded:
            return LoadStatus.READY
        return LoadStatus.LOADING


class SessionManager:
    """Owns the SDKs, the calendar capability and the sign-in state.

    Only one instance should be active at a time: both instances would sign
    in against the same Google account and calendar token.

    Example:
        >>> async with SessionManager(api_key=key, client_id=cid,
        ...                           consent_prompt=prompt) as session:
        ...     await session.wait_settled()
        ...     if session.token_requester:
        ...         await session.sign_in()
    """

    def __init__(
        self,
        consent_prompt: ConsentPrompt,
        api_key: str | None = None,
        client_id: str | None = None,
        redirect_uri: str = "http://localhost:5173/oauth2callback",
        storage: SessionStorage | None = None,
        http_client: httpx.AsyncClient | None = None,
        importer: Callable[[str], Any] = importlib.import_module,
    ):
        """Initialize the session manager.

        Args:
            consent_prompt: Interactive consent step used by sign-in.
            api_key: Application API key for the calendar client.
            client_id: OAuth client ID for the token requester.
            redirect_uri: Redirect URI registered for the client.
            storage: Cross-navigation store; its token is removed on sign-out.
            http_client: Client for the discovery fetch. Created on mount if None.
            importer: Loads an SDK module by name.
        """
        self.consent_prompt = consent_prompt
        self.api_key = api_key
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.storage = storage or SessionStorage()

        self.load_state = LoadState()
        self.is_signed_in = False
        self.auth_error: str | None = None
        self.calendar: CalendarCapability | None = None
        self.token_requester: TokenRequester | None = None

        self.environment = SdkEnvironment()
        self._loader = ScriptLoader(
            self.environment,
            [
                SdkScript("gapi", GAPI_MODULE, self._on_gapi_loaded, self._on_script_error),
                SdkScript("gis", GIS_MODULE, self._on_gis_loaded, self._on_script_error),
            ],
            importer=importer,
        )
        self._http = http_client
        self._owns_http = http_client is None
        self._granted_token: str | None = None
        self._closed = False

    async def __aenter__(self) -> SessionManager:
        self.mount()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def status(self) -> LoadStatus:
        return self.load_state.status

    @property
    def is_loading(self) -> bool:
        return self.load_state.is_loading

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def error(self) -> str | None:
        """Message to show the user, most severe first."""
        return self.load_state.error or self.auth_error or self.load_state.advisory

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def mount(self) -> None:
        """Start loading both SDKs."""
        if self._closed:
            raise RuntimeError("SessionManager is closed")
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=None)
        logger.info("Loading Google SDKs...")
        self._loader.mount()

    async def wait_settled(self) -> LoadStatus:
        """Wait until both branches have finished and return the status."""
        await self._loader.wait()
        return self.status

    async def close(self) -> None:
        """Tear down; callbacks arriving afterwards are ignored."""
        if self._closed:
            return
        self._closed = True
        self._loader.unmount()

        if self.token_requester is not None:
            await self.token_requester.aclose()
        if self._owns_http and self._http is not None:
            await self._http.aclose()
        logger.info("Session manager closed")

    def _record_error(self, message: str) -> None:
        if self.load_state.error is None:
            self.load_state.error = message
            logger.info(
                f"Loading complete. GAPI: {self.load_state.gapi_loaded}, "
                f"GIS: {self.load_state.gis_loaded}, Error: {message}"
            )
        else:
            logger.warning(f"Additional load error ignored: {message}")

    def _log_if_settled(self) -> None:
        if self.status is LoadStatus.READY:
            logger.info("Loading complete. GAPI: True, GIS: True, Error: None")

    def _on_script_error(self, error: ScriptLoadError) -> None:
        if self._closed:
            return
        self._record_error(str(error))

    # =========================================================================
    # Calendar branch
    # =========================================================================

    async def _on_gapi_loaded(self, gapi: Any) -> None:
        if self._closed:
            return

        try:
            calendar = await initialize_calendar_client(gapi, self.api_key, self._http)
        except (DiscoveryFetchError, ClientInitError) as e:
            if self._closed:
                return
            logger.error(f"Error initializing GAPI client: {e}")
            self._record_error(f"GAPI Init Failed: {e}")
            return
        except Exception as e:
            # close() may shut the HTTP client under an in-flight fetch
            if not self._closed:
                raise
            logger.debug(f"Ignoring GAPI init failure after close: {e}")
            return

        if self._closed:
            return
        if self._granted_token:
            calendar.set_token(self._granted_token)
        self.calendar = calendar
        self.load_state.gapi_loaded = True
        self._log_if_settled()

    # =========================================================================
    # Identity branch
    # =========================================================================

    def _on_gis_loaded(self, _gis: Any) -> None:
        self.initialize_token_client()

    def initialize_token_client(self) -> bool:
        """Build the token requester if the identity SDK is available.

        Safe to call again after an advisory failure.

        Returns:
            True once the token requester exists.
        """
        if self._closed:
            return False
        if self.token_requester is not None:
            return True

        try:
            requester = init_token_client(
                self.environment,
                self.client_id,
                self.redirect_uri,
                self.consent_prompt,
                self._on_token_response,
                self._on_token_error,
            )
        except AuthInitError as e:
            logger.warning(f"GIS library not fully loaded before initialization: {e}")
            self.load_state.advisory = str(e)
            return False
        except Exception as e:
            logger.error(f"Error initializing GIS client: {e}")
            self._record_error(f"Failed to initialize Google Sign-In: {e}")
            return False

        self.token_requester = requester
        self.load_state.advisory = None
        self.load_state.gis_loaded = True
        self._log_if_settled()
        return True

    def _on_token_response(self, response: dict[str, str]) -> None:
        if self._closed:
            return

        access_token = response.get("access_token")
        if access_token:
            logger.info("Authentication successful.")
            self._granted_token = access_token
            if self.calendar is not None:
                self.calendar.set_token(access_token)
            self.auth_error = None
            self.is_signed_in = True
            return

        denied = AuthDeniedError("Authentication failed or access denied.", response.get("error"))
        logger.error(f"Authentication failed: error={response.get('error')!r}")
        self.auth_error = str(denied)
        self.is_signed_in = False

    def _on_token_error(self, error: TokenClientError) -> None:
        if self._closed:
            return

        if error.type == POPUP_CLOSED:
            logger.info("Consent prompt dismissed by user")
        else:
            denied = AuthDeniedError(
                f"Authentication error: {error.type or 'Unknown error'}", error.type
            )
            logger.error(f"GIS Token Client Error: {error.type} {error.message}")
            self.auth_error = str(denied)
        self.is_signed_in = False

    # =========================================================================
    # Sign-in / sign-out
    # =========================================================================

    async def sign_in(self) -> None:
        """Ask the user for consent and sign in.

        Gated on the token requester only; the calendar branch may still be
        loading.
        """
        if self._closed:
            raise RuntimeError("SessionManager is closed")
        if self.token_requester is None:
            logger.error("GIS Token Client not initialized yet.")
            self.auth_error = NOT_READY_MESSAGE
            return

        self.auth_error = None
        await self.token_requester.request_access_token(prompt="consent")

    async def sign_out(self) -> None:
        """Revoke the current tokens and forget them."""
        tokens = set()
        if self.calendar is not None and self.calendar.get_token():
            tokens.add(self.calendar.get_token())
        if self._granted_token:
            tokens.add(self._granted_token)
        stored = load_stored_token(self.storage)
        if stored is not None:
            tokens.add(stored.access_token)

        if self.token_requester is not None:
            for token in tokens:
                await self.token_requester.revoke(token)
        elif tokens:
            logger.warning("Identity SDK not loaded; clearing tokens without revoking")

        if self.calendar is not None:
            self.calendar.set_token(None)
        self._granted_token = None
        self.storage.remove_item(TOKEN_KEY)
        self.is_signed_in = False
        logger.info("Signed out.")

"""Google session lifecycle: SDK loading, sign-in state and the redirect callback.

Usage:
    from taffy.session import SessionManager, SessionStorage

    async with SessionManager(consent_prompt=prompt, api_key=key, client_id=cid) as session:
        status = await session.wait_settled()
        await session.sign_in()
"""

from taffy.session.callback import (
    AccessToken,
    OAuthCallbackHandler,
    load_stored_token,
    pop_oauth_error,
)
from taffy.session.loader import ScriptLoader, SdkEnvironment, SdkScript
from taffy.session.manager import LoadState, LoadStatus, SessionManager
from taffy.session.storage import ERROR_KEY, TOKEN_KEY, SessionStorage

__all__ = [
    "SessionManager",
    "LoadState",
    "LoadStatus",
    "ScriptLoader",
    "SdkEnvironment",
    "SdkScript",
    "OAuthCallbackHandler",
    "AccessToken",
    "load_stored_token",
    "pop_oauth_error",
    "SessionStorage",
    "TOKEN_KEY",
    "ERROR_KEY",
]

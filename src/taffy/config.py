"""Centralized configuration.

Settings are read from the environment, with a .env file in the repo root
auto-loaded on import:
    .env               - GOOGLE_API_KEY, GOOGLE_CLIENT_ID, TAFFY_* settings
    taffy/session.json - cross-navigation session store (token, one-shot errors)

Environment variables always take precedence over .env values.
"""

import os
from pathlib import Path

# __file__ is src/taffy/config.py, so 3 levels up
REPO_ROOT = Path(__file__).parent.parent.parent
STATE_DIR = REPO_ROOT / "taffy"

ENV_FILE = REPO_ROOT / ".env"
SESSION_FILE = STATE_DIR / "session.json"

DEFAULT_REDIRECT_URI = "http://localhost:5173/oauth2callback"
DEFAULT_MODEL = "gemini-2.0-flash"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def get_api_key() -> str | None:
    """API key shared by Gemini and the Calendar discovery client."""
    return os.environ.get("GOOGLE_API_KEY")


def get_client_id() -> str | None:
    """OAuth client ID for the token requester."""
    return os.environ.get("GOOGLE_CLIENT_ID")


def get_redirect_uri() -> str:
    return os.environ.get("TAFFY_REDIRECT_URI", DEFAULT_REDIRECT_URI)


def get_time_zone() -> str:
    """IANA time zone used for timed events."""
    return os.environ.get("TAFFY_TIME_ZONE") or os.environ.get("TZ") or "UTC"


def get_model() -> str:
    return os.environ.get("TAFFY_MODEL", DEFAULT_MODEL)


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Returns:
        Path to state directory.
    """
    STATE_DIR.mkdir(parents=True, exist_ok=True)
    return STATE_DIR


def get_config_status() -> dict:
    """Get status of all configured settings.

    Returns:
        Dictionary with configuration status.
    """
    return {
        "repo_root": str(REPO_ROOT),
        "env_file": ENV_FILE.exists(),
        "google": {
            "api_key": bool(get_api_key()),
            "client_id": bool(get_client_id()),
            "redirect_uri": get_redirect_uri(),
        },
        "session_file": SESSION_FILE.exists(),
        "time_zone": get_time_zone(),
        "model": get_model(),
    }


# Auto-load .env from repo root on import
_loaded = _load_env_file(ENV_FILE)

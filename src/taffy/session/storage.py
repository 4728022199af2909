"""Cross-navigation key/value store.

Survives a full-page redirect (a separate ``taffy callback`` run) within one
browsing session. Values are plain strings; callers JSON-encode structured
data themselves.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

TOKEN_KEY = "google_oauth_token"
ERROR_KEY = "oauth_error"


class SessionStorage:
    """String key/value store, optionally persisted to a JSON file.

    Example:
        >>> storage = SessionStorage()            # in-memory
        >>> storage.set_item("oauth_error", "Google Sign-In Error: access_denied")
        >>> storage.get_item("oauth_error")
        'Google Sign-In Error: access_denied'
    """

    def __init__(self, path: str | Path | None = None):
        """Initialize the store.

        Args:
            path: JSON file backing the store. If None, values live in memory only.
        """
        self.path = Path(path) if path else None
        self._items: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load session store {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed session store {self.path}")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._items, f, indent=2)

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._save()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._save()

    def clear(self) -> None:
        self._items.clear()
        self._save()

    def __contains__(self, key: str) -> bool:
        return key in self._items

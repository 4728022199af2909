"""Tests for the redirect callback handler."""

import json

import pytest

from taffy.session import (
    ERROR_KEY,
    TOKEN_KEY,
    AccessToken,
    OAuthCallbackHandler,
    SessionStorage,
    load_stored_token,
    pop_oauth_error,
)

NOW = 1_700_000_000_000
CALLBACK_URL = "http://localhost:5173/oauth2callback"


@pytest.fixture
def storage():
    return SessionStorage()


@pytest.fixture
def redirects():
    return []


@pytest.fixture
def handler(storage, redirects):
    return OAuthCallbackHandler(storage, navigate=redirects.append, clock=lambda: NOW)


class TestDecisionTable:
    """Test each branch of the fragment decision table."""

    def test_token_is_persisted(self, handler, storage, redirects):
        """Should store the token with an absolute expiry and redirect once."""
        handler.handle(f"{CALLBACK_URL}#access_token=abc123&expires_in=3600")

        stored = json.loads(storage.get_item(TOKEN_KEY))
        assert stored == {"access_token": "abc123", "expires_at": NOW + 3_600_000}
        assert storage.get_item(ERROR_KEY) is None
        assert redirects == ["/"]

    @pytest.mark.parametrize("token,seconds", [("T", 1), ("ya29.x-y_z", 59), ("tok", 86400)])
    def test_expiry_is_now_plus_seconds(self, handler, storage, token, seconds):
        """Should compute expires_at as now + expires_in * 1000."""
        handler.handle(f"{CALLBACK_URL}#access_token={token}&expires_in={seconds}")

        stored = AccessToken.from_json(storage.get_item(TOKEN_KEY))
        assert stored.access_token == token
        assert stored.expires_at == NOW + seconds * 1000

    def test_error_goes_to_error_slot(self, handler, storage, redirects):
        """Should persist the prefixed error and no token."""
        handler.handle(f"{CALLBACK_URL}#error=access_denied")

        assert storage.get_item(ERROR_KEY) == "Google Sign-In Error: access_denied"
        assert storage.get_item(TOKEN_KEY) is None
        assert redirects == ["/"]

    def test_error_takes_priority_over_token(self, handler, storage):
        """Should treat a fragment with both error and token as an error."""
        handler.handle(f"{CALLBACK_URL}#access_token=abc&expires_in=3600&error=denied")

        assert storage.get_item(ERROR_KEY) == "Google Sign-In Error: denied"
        assert storage.get_item(TOKEN_KEY) is None

    @pytest.mark.parametrize("expires_in", ["soon", "3600s", "1.5", ""])
    def test_non_integer_expires_in(self, handler, storage, redirects, expires_in):
        """Should write a processing error and never a token."""
        handler.handle(f"{CALLBACK_URL}#access_token=abc&expires_in={expires_in}")

        assert storage.get_item(TOKEN_KEY) is None
        error = storage.get_item(ERROR_KEY)
        assert error.startswith("Error processing Google Sign-In callback")
        assert redirects == ["/"]

    def test_oversized_expires_in(self, handler, storage, redirects):
        """Should report a digit string too long to convert as a processing error."""
        handler.handle(f"{CALLBACK_URL}#access_token=abc&expires_in={'9' * 5000}")

        assert storage.get_item(TOKEN_KEY) is None
        assert storage.get_item(ERROR_KEY) == (
            "Error processing Google Sign-In callback: Invalid expires_in value received."
        )
        assert redirects == ["/"]

    @pytest.mark.parametrize("fragment", ["access_token=&expires_in=3600", "access_token="])
    def test_empty_token(self, handler, storage, redirects, fragment):
        """Should treat an empty token as a failed redirect."""
        handler.handle(f"{CALLBACK_URL}#{fragment}")

        assert storage.get_item(TOKEN_KEY) is None
        assert storage.get_item(ERROR_KEY) == "Failed to get token from Google redirect."
        assert redirects == ["/"]

    def test_token_without_expiry(self, handler, storage, redirects):
        """Should report a missing expiry as a failed redirect."""
        handler.handle(f"{CALLBACK_URL}#access_token=abc")

        assert storage.get_item(TOKEN_KEY) is None
        assert storage.get_item(ERROR_KEY) == "Failed to get token from Google redirect."
        assert redirects == ["/"]

    @pytest.mark.parametrize(
        "url",
        [CALLBACK_URL, f"{CALLBACK_URL}#", f"{CALLBACK_URL}#state=xyz&scope=calendar"],
    )
    def test_nothing_to_do_redirects_silently(self, handler, storage, redirects, url):
        """Should redirect without writing anything."""
        handler.handle(url)

        assert storage.get_item(TOKEN_KEY) is None
        assert storage.get_item(ERROR_KEY) is None
        assert redirects == ["/"]

    def test_query_string_is_ignored(self, handler, storage, redirects):
        """Should only read the fragment, not the query string."""
        handler.handle(f"{CALLBACK_URL}?access_token=abc&expires_in=3600")

        assert storage.get_item(TOKEN_KEY) is None
        assert redirects == ["/"]

    def test_first_occurrence_wins(self, handler, storage):
        """Should use the first value of a repeated key."""
        handler.handle(f"{CALLBACK_URL}#access_token=first&access_token=second&expires_in=10")

        assert AccessToken.from_json(storage.get_item(TOKEN_KEY)).access_token == "first"


class TestOneShot:
    """Test single-use behavior."""

    def test_second_call_is_ignored(self, handler, storage, redirects):
        """Should process only the first URL."""
        handler.handle(f"{CALLBACK_URL}#access_token=abc&expires_in=3600")
        handler.handle(f"{CALLBACK_URL}#error=late")

        assert storage.get_item(ERROR_KEY) is None
        assert redirects == ["/"]

    def test_redirects_even_if_storage_fails(self, redirects):
        """Should still redirect when the store cannot be written."""

        class BrokenStorage(SessionStorage):
            def set_item(self, key, value):
                raise OSError("disk full")

        handler = OAuthCallbackHandler(BrokenStorage(), navigate=redirects.append)
        with pytest.raises(OSError):
            handler.handle(f"{CALLBACK_URL}#error=access_denied")
        assert redirects == ["/"]


class TestStoredToken:
    """Test on-demand reads of the persisted token."""

    def test_valid_token(self, storage):
        """Should return a token that has not expired."""
        storage.set_item(TOKEN_KEY, AccessToken("abc", NOW + 1000).to_json())
        token = load_stored_token(storage, at=NOW)
        assert token == AccessToken("abc", NOW + 1000)

    def test_expired_token_is_kept_but_ignored(self, storage):
        """Should treat an expired token as absent without deleting it."""
        storage.set_item(TOKEN_KEY, AccessToken("abc", NOW).to_json())
        assert load_stored_token(storage, at=NOW) is None
        assert storage.get_item(TOKEN_KEY) is not None

    def test_missing_token(self, storage):
        """Should return None when nothing is stored."""
        assert load_stored_token(storage) is None

    def test_malformed_token(self, storage):
        """Should return None for unreadable values."""
        storage.set_item(TOKEN_KEY, "not json")
        assert load_stored_token(storage) is None
        storage.set_item(TOKEN_KEY, json.dumps({"access_token": "abc"}))
        assert load_stored_token(storage) is None


class TestErrorSlot:
    """Test the one-shot error slot."""

    def test_pop_clears(self, storage):
        """Should return the error once and then nothing."""
        storage.set_item(ERROR_KEY, "Google Sign-In Error: access_denied")
        assert pop_oauth_error(storage) == "Google Sign-In Error: access_denied"
        assert pop_oauth_error(storage) is None

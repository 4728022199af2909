"""Tests for the cross-navigation session store."""

import json

from taffy.session import SessionStorage


class TestSessionStorage:
    """Test in-memory and file-backed storage."""

    def test_in_memory(self):
        """Should keep values without a backing file."""
        storage = SessionStorage()
        storage.set_item("k", "v")
        assert storage.get_item("k") == "v"
        assert "k" in storage
        storage.remove_item("k")
        assert storage.get_item("k") is None

    def test_survives_reload(self, tmp_path):
        """Should persist values across instances sharing a file."""
        path = tmp_path / "state" / "session.json"
        SessionStorage(path).set_item("oauth_error", "boom")

        assert SessionStorage(path).get_item("oauth_error") == "boom"
        with open(path) as f:
            assert json.load(f) == {"oauth_error": "boom"}

    def test_remove_persists(self, tmp_path):
        """Should write removals through to the file."""
        path = tmp_path / "session.json"
        storage = SessionStorage(path)
        storage.set_item("a", "1")
        storage.remove_item("a")

        assert SessionStorage(path).get_item("a") is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        """Should ignore an unreadable file."""
        path = tmp_path / "session.json"
        path.write_text("{not json")
        assert SessionStorage(path).get_item("anything") is None

    def test_clear(self, tmp_path):
        """Should drop every key."""
        path = tmp_path / "session.json"
        storage = SessionStorage(path)
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        storage.clear()
        assert SessionStorage(path).get_item("a") is None
        assert SessionStorage(path).get_item("b") is None

"""Tests for the chat assistant."""

from types import SimpleNamespace

import pytest

from taffy.calendar import EventResult
from taffy.chat import ChatAssistant, Sender, history_role
from taffy.chat.assistant import wants_to_schedule
from taffy.session import ERROR_KEY, TOKEN_KEY, AccessToken, LoadState, SessionStorage


class FakeCalendar:
    def __init__(self):
        self.token = None
        self.inserted = []

    def get_token(self):
        return self.token

    def set_token(self, token):
        self.token = token

    async def insert_event(self, calendar_id, resource):
        self.inserted.append((self.token, resource))
        return EventResult(id="e1", summary=resource["summary"], html_link="http://x")


def make_session(**overrides):
    state = dict(
        is_signed_in=False,
        is_loading=False,
        load_state=LoadState(gapi_loaded=True, gis_loaded=True),
        auth_error=None,
        calendar=None,
    )
    state.update(overrides)
    return SimpleNamespace(**state)


class RecordingGenerate:
    def __init__(self, reply="Sure!"):
        self.reply = reply
        self.calls = []

    async def __call__(self, user_input, history):
        self.calls.append((user_input, list(history)))
        return self.reply


class TestSenders:
    """Test sender handling."""

    def test_history_roles(self):
        """Should map every sender and leave system messages out."""
        assert history_role(Sender.USER) == "user"
        assert history_role(Sender.ASSISTANT) == "assistant"
        assert history_role(Sender.SYSTEM) is None

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Schedule a call at 3pm", True),
            ("book lunch", True),
            ("Dentist APPOINTMENT", True),
            ("what's the weather", False),
        ],
    )
    def test_schedule_keywords(self, text, expected):
        """Should detect scheduling intent by keyword."""
        assert wants_to_schedule(text) is expected


class TestRefresh:
    """Test transcript updates from session state."""

    def test_greeting_while_loading(self):
        """Should greet once and mention loading."""
        assistant = ChatAssistant(make_session(is_loading=True), SessionStorage(), RecordingGenerate())

        added = assistant.refresh()
        assert len(added) == 1
        assert added[0].sender is Sender.ASSISTANT
        assert "Loading Google services" in added[0].text
        assert assistant.refresh() == []

    def test_redirect_error_shown_once(self):
        """Should surface the redirect error once and clear it."""
        storage = SessionStorage()
        storage.set_item(ERROR_KEY, "Google Sign-In Error: access_denied")
        assistant = ChatAssistant(make_session(), storage, RecordingGenerate())

        added = assistant.refresh()
        assert [(m.sender, m.text) for m in added] == [
            (Sender.SYSTEM, "Google Sign-In Error: access_denied")
        ]
        assert storage.get_item(ERROR_KEY) is None
        assert assistant.refresh() == []

    def test_load_error_banner_once(self):
        """Should show a load failure once."""
        session = make_session(load_state=LoadState(error="GAPI Init Failed: 503"))
        assistant = ChatAssistant(session, SessionStorage(), RecordingGenerate())

        texts = [m.text for m in assistant.refresh()]
        assert "Error: GAPI Init Failed: 503" in texts
        assert assistant.refresh() == []

    def test_auth_error_shown_when_it_changes(self):
        """Should show each new sign-in error."""
        session = make_session()
        assistant = ChatAssistant(session, SessionStorage(), RecordingGenerate())
        assistant.refresh()

        session.auth_error = "Authentication failed or access denied."
        assert [m.text for m in assistant.refresh()] == [
            "Error: Authentication failed or access denied."
        ]
        assert assistant.refresh() == []


class TestSend:
    """Test message handling."""

    @pytest.mark.asyncio
    async def test_plain_reply(self):
        """Should reply with the generated text."""
        generate = RecordingGenerate("Hi there")
        assistant = ChatAssistant(make_session(), SessionStorage(), generate)

        reply = await assistant.send("hello")
        assert reply.text == "Hi there"
        assert reply.sender is Sender.ASSISTANT
        assert [m.sender for m in assistant.messages] == [Sender.USER, Sender.ASSISTANT]

    @pytest.mark.asyncio
    async def test_history_starts_with_user(self):
        """Should drop the greeting so history opens with a user turn."""
        generate = RecordingGenerate()
        assistant = ChatAssistant(make_session(), SessionStorage(), generate)
        assistant.refresh()

        await assistant.send("first")
        await assistant.send("second")

        assert generate.calls[0][1] == []
        roles = [m.role for m in generate.calls[1][1]]
        assert roles == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_empty_input_ignored(self):
        """Should ignore blank input."""
        generate = RecordingGenerate()
        assistant = ChatAssistant(make_session(), SessionStorage(), generate)
        assert await assistant.send("   ") is None
        assert generate.calls == []

    @pytest.mark.asyncio
    async def test_schedule_requires_sign_in(self):
        """Should ask the user to sign in first."""
        assistant = ChatAssistant(make_session(calendar=FakeCalendar()), SessionStorage(), RecordingGenerate())
        reply = await assistant.send("schedule a call at 3pm")
        assert reply.text.endswith("(Please sign in with Google first.)")

    @pytest.mark.asyncio
    async def test_schedule_when_signed_in(self):
        """Should append the scheduling result to the reply."""
        calendar = FakeCalendar()
        calendar.token = "tok-1"
        session = make_session(is_signed_in=True, calendar=calendar)
        assistant = ChatAssistant(session, SessionStorage(), RecordingGenerate("Will do."), time_zone="UTC")

        reply = await assistant.send("schedule a call at 2:30pm")

        assert reply.text.startswith("Will do.\n\n[Calendar] Okay, I've scheduled")
        assert "http://x" in reply.text
        assert len(calendar.inserted) == 1

    @pytest.mark.asyncio
    async def test_schedule_with_redirect_token(self):
        """Should use a valid stored token from the redirect path."""
        storage = SessionStorage()
        storage.set_item(TOKEN_KEY, AccessToken("redirect-tok", 2**62).to_json())
        calendar = FakeCalendar()
        assistant = ChatAssistant(make_session(calendar=calendar), storage, RecordingGenerate(), time_zone="UTC")

        assert assistant.is_signed_in is True
        reply = await assistant.send("book the dentist")

        assert "[Calendar]" in reply.text
        assert calendar.inserted[0][0] == "redirect-tok"

    @pytest.mark.asyncio
    async def test_schedule_calendar_not_ready(self):
        """Should say the calendar is not ready yet."""
        assistant = ChatAssistant(make_session(is_signed_in=True), SessionStorage(), RecordingGenerate())
        reply = await assistant.send("book the dentist")
        assert reply.text.endswith("(Google Calendar service not ready.)")

    @pytest.mark.asyncio
    async def test_generate_failure(self):
        """Should turn an unexpected failure into a reply."""

        async def broken(user_input, history):
            raise RuntimeError("model offline")

        assistant = ChatAssistant(make_session(), SessionStorage(), broken)
        reply = await assistant.send("hello")
        assert reply.text == "model offline"

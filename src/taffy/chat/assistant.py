"""Conversation flow: transcript, replies and scheduling hand-off."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import assert_never

from taffy.calendar.scheduler import schedule_event
from taffy.llm.models import Message
from taffy.session.callback import load_stored_token, pop_oauth_error
from taffy.session.manager import SessionManager
from taffy.session.storage import SessionStorage

logger = logging.getLogger(__name__)

GREETING = "Hello! I'm Taffy, your scheduling assistant. How can I help?"
SCHEDULE_KEYWORDS = ("schedule", "book", "add event", "meeting at", "appointment")

Generate = Callable[[str, Sequence[Message]], Awaitable[str]]


class Sender(Enum):
    USER = "user"
    ASSISTANT = "Taffy"
    SYSTEM = "System"


@dataclass(frozen=True)
class ChatMessage:
    id: int
    sender: Sender
    text: str


def history_role(sender: Sender) -> str | None:
    """Role of a transcript message in the model history (None = left out)."""
    match sender:
        case Sender.USER:
            return "user"
        case Sender.ASSISTANT:
            return "assistant"
        case Sender.SYSTEM:
            return None
        case _:
            assert_never(sender)


def wants_to_schedule(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in SCHEDULE_KEYWORDS)


class ChatAssistant:
    """Taffy's conversation state on top of a session manager.

    Usage:
        assistant = ChatAssistant(session, storage, Responder())
        for message in assistant.refresh():
            print(message.text)
        reply = await assistant.send("schedule a call at 2:30pm")
    """

    def __init__(
        self,
        session: SessionManager,
        storage: SessionStorage,
        generate: Generate,
        time_zone: str | None = None,
    ):
        self.session = session
        self.storage = storage
        self.generate = generate
        self.time_zone = time_zone
        self.messages: list[ChatMessage] = []
        self._ids = itertools.count(1)
        self._greeted = False
        self._load_error_shown = False
        self._last_auth_error: str | None = None
        self._busy = False

    def _add(self, sender: Sender, text: str) -> ChatMessage:
        message = ChatMessage(id=next(self._ids), sender=sender, text=text)
        self.messages.append(message)
        return message

    @property
    def is_signed_in(self) -> bool:
        """Signed in through the popup, or holding a valid redirect token."""
        return self.session.is_signed_in or load_stored_token(self.storage) is not None

    def refresh(self) -> list[ChatMessage]:
        """Bring the transcript up to date with the session.

        Returns:
            Messages added by this call.
        """
        added = []

        oauth_error = pop_oauth_error(self.storage)
        if oauth_error:
            added.append(self._add(Sender.SYSTEM, oauth_error))

        if not self._greeted and not self.messages:
            text = GREETING
            if self.session.is_loading:
                text += "\n(Loading Google services...)"
            elif not self.is_signed_in and not self.session.load_state.error:
                text += "\n(Connect to Google Calendar with /signin.)"
            added.append(self._add(Sender.ASSISTANT, text))
        self._greeted = True

        load_error = self.session.load_state.error
        if load_error and not self._load_error_shown:
            added.append(self._add(Sender.SYSTEM, f"Error: {load_error}"))
            self._load_error_shown = True

        auth_error = self.session.auth_error
        if auth_error and auth_error != self._last_auth_error:
            added.append(self._add(Sender.SYSTEM, f"Error: {auth_error}"))
        self._last_auth_error = auth_error

        return added

    def _history(self) -> list[Message]:
        history = []
        for message in self.messages:
            role = history_role(message.sender)
            if role is not None:
                history.append(Message(role=role, content=message.text))
        # The model history has to open with a user turn
        if not any(m.role == "user" for m in history):
            return []
        while history and history[0].role != "user":
            history.pop(0)
        return history

    async def send(self, user_input: str) -> ChatMessage | None:
        """Handle one user message.

        Returns:
            Taffy's reply, or None if the input was empty or a reply is pending.
        """
        user_input = user_input.strip()
        if not user_input or self._busy:
            return None

        history = self._history()
        self._add(Sender.USER, user_input)
        self._busy = True
        try:
            reply = await self.generate(user_input, history)
            if wants_to_schedule(user_input):
                reply += f"\n\n{await self._schedule(user_input)}"
        except Exception as e:
            logger.error(f"Error during message handling: {e}")
            reply = str(e) or "Error processing request."
        finally:
            self._busy = False

        return self._add(Sender.ASSISTANT, reply or "Sorry, I couldn't generate a response.")

    async def _schedule(self, details: str) -> str:
        calendar = self.session.calendar

        if not self.session.is_signed_in:
            token = load_stored_token(self.storage)
            if token is None:
                return "(Please sign in with Google first.)"
            if calendar is not None and calendar.get_token() != token.access_token:
                calendar.set_token(token.access_token)

        if calendar is None:
            return "(Google Calendar service not ready.)"

        result = await schedule_event(details, calendar, time_zone=self.time_zone)
        return f"[Calendar] {result}"

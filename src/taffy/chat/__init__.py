"""Chat front-end for the Taffy scheduling assistant."""

from taffy.chat.assistant import ChatAssistant, ChatMessage, Sender, history_role

__all__ = ["ChatAssistant", "ChatMessage", "Sender", "history_role"]

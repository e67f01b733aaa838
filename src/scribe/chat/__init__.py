"""Chat platform transports."""

from scribe.chat.base import ChatTransport, EventHandler, Subscription
from scribe.chat.events import AIState, ChatEvent, ChatMessage, EventType
from scribe.chat.memory import InMemoryTransport

# TelegramTransport is not exported here so aiogram is only imported when used.
# Import directly from scribe.chat.telegram where needed.

__all__ = [
    "AIState",
    "ChatEvent",
    "ChatMessage",
    "ChatTransport",
    "EventHandler",
    "EventType",
    "InMemoryTransport",
    "Subscription",
]

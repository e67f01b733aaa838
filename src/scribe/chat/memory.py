"""In-process chat transport.

Backs the console chat command and the test suite. Every outbound call is
recorded so callers can inspect exactly what a channel would have seen.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import Any

from scribe.chat.base import ChatTransport
from scribe.chat.events import AIState, ChatEvent, ChatMessage, EventType

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[ChatMessage], None]
EventCallback = Callable[[ChatEvent], None]


class InMemoryTransport(ChatTransport):
    """Chat transport that keeps messages and events in memory."""

    def __init__(
        self,
        on_update: UpdateCallback | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        super().__init__()
        self._on_update = on_update
        self._on_event = on_event
        self._ids = itertools.count(1)
        self.messages: dict[str, ChatMessage] = {}
        self.updates: list[tuple[str, str]] = []  # (message_id, text)
        self.events: list[ChatEvent] = []

    @property
    def name(self) -> str:
        return "memory"

    async def send_message(
        self,
        conversation_id: str,
        text: str,
        *,
        ai_generated: bool = False,
    ) -> ChatMessage:
        message = ChatMessage(
            id=f"msg-{next(self._ids)}",
            conversation_id=conversation_id,
            text=text,
            ai_generated=ai_generated,
        )
        self.messages[message.id] = message
        return message

    async def update_message_text(self, message_id: str, text: str) -> None:
        message = self.messages.get(message_id)
        if message is None:
            raise KeyError(f"Message '{message_id}' not found")
        message.text = text
        self.updates.append((message_id, text))
        if self._on_update:
            self._on_update(message)

    async def send_event(self, event: ChatEvent) -> None:
        self.events.append(event)
        if self._on_event:
            self._on_event(event)

    async def post_user_message(
        self,
        conversation_id: str,
        text: str,
        *,
        user_id: str = "user",
        custom: dict[str, Any] | None = None,
    ) -> ChatMessage:
        """Store a user message and deliver it to message.new subscribers."""
        message = ChatMessage(
            id=f"msg-{next(self._ids)}",
            conversation_id=conversation_id,
            text=text,
            user_id=user_id,
            custom=dict(custom or {}),
        )
        self.messages[message.id] = message
        logger.debug(
            "incoming_message",
            extra={
                "messaging.message_id": message.id,
                "messaging.conversation_id": conversation_id,
            },
        )
        await self.dispatch(ChatEvent.new_message(message))
        return message

    async def request_stop(self, message_id: str) -> None:
        """Deliver a stop-generating request for a message."""
        message = self.messages.get(message_id)
        await self.dispatch(
            ChatEvent.stop(
                message_id, message.conversation_id if message else None
            )
        )

    def updates_for(self, message_id: str) -> list[str]:
        return [text for mid, text in self.updates if mid == message_id]

    def events_of(
        self, event_type: EventType, *, ai_state: AIState | None = None
    ) -> list[ChatEvent]:
        return [
            event
            for event in self.events
            if event.type == event_type
            and (ai_state is None or event.ai_state == ai_state)
        ]

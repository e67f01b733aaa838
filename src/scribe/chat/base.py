"""Abstract chat transport interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from scribe.chat.events import ChatEvent, ChatMessage, EventType

logger = logging.getLogger(__name__)

# Type for inbound event handler callbacks
EventHandler = Callable[[ChatEvent], Awaitable[None]]


class Subscription:
    """Handle for an event subscription.

    Releasing is idempotent, so every terminal path of the owner can
    release without tracking whether another path already did.
    """

    def __init__(
        self, transport: ChatTransport, event_type: EventType, handler: EventHandler
    ):
        self._transport = transport
        self.event_type = event_type
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        self._transport._remove_subscription(self)


class ChatTransport(ABC):
    """Abstract interface for chat platforms.

    Transports deliver outbound message edits and status events, and fan
    inbound events (new messages, stop requests) out to subscribers.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[EventType, list[Subscription]] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport identifier (e.g., 'telegram', 'memory')."""
        ...

    @abstractmethod
    async def send_message(
        self,
        conversation_id: str,
        text: str,
        *,
        ai_generated: bool = False,
    ) -> ChatMessage:
        """Post a new message to a conversation.

        Args:
            conversation_id: Conversation to post to.
            text: Initial message text (may be empty for placeholders).
            ai_generated: Whether the message is authored by the assistant.

        Returns:
            The stored message, including its platform-assigned id.
        """
        ...

    @abstractmethod
    async def update_message_text(self, message_id: str, text: str) -> None:
        """Overwrite a message's text. Last write wins."""
        ...

    @abstractmethod
    async def send_event(self, event: ChatEvent) -> None:
        """Send a status event to the channel."""
        ...

    def subscribe(self, event_type: EventType, handler: EventHandler) -> Subscription:
        subscription = Subscription(self, event_type, handler)
        self._subscriptions.setdefault(event_type, []).append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.event_type, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscriptions.get(event_type, []))

    async def dispatch(self, event: ChatEvent) -> None:
        """Deliver an inbound event to every current subscriber.

        Handlers run sequentially. A failing handler is logged and does not
        prevent delivery to the others.
        """
        for subscription in list(self._subscriptions.get(event.type, [])):
            if not subscription.active:
                continue
            try:
                await subscription.handler(event)
            except Exception:
                logger.exception(
                    "event_handler_failed",
                    extra={
                        "event.type": event.type.value,
                        "messaging.message_id": event.message_id,
                    },
                )

"""Chat messages and channel events."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    """Channel event type."""

    MESSAGE_NEW = "message.new"
    AI_INDICATOR_UPDATE = "ai_indicator.update"
    AI_INDICATOR_CLEAR = "ai_indicator.clear"
    AI_INDICATOR_STOP = "ai_indicator.stop"


class AIState(str, Enum):
    """Phase of an in-progress AI response, shown to channel observers."""

    THINKING = "AI_STATE_THINKING"
    EXTERNAL_SOURCES = "AI_STATE_EXTERNAL_SOURCES"
    ERROR = "AI_STATE_ERROR"


@dataclass
class ChatMessage:
    """A message stored by the chat platform."""

    id: str
    conversation_id: str
    text: str = ""
    user_id: str | None = None
    ai_generated: bool = False
    custom: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatEvent:
    """An event flowing to or from the chat channel."""

    type: EventType
    conversation_id: str | None = None
    message_id: str | None = None
    ai_state: AIState | None = None
    message: ChatMessage | None = None

    @classmethod
    def new_message(cls, message: ChatMessage) -> "ChatEvent":
        return cls(
            type=EventType.MESSAGE_NEW,
            conversation_id=message.conversation_id,
            message_id=message.id,
            message=message,
        )

    @classmethod
    def status_update(
        cls, state: AIState, conversation_id: str, message_id: str
    ) -> "ChatEvent":
        return cls(
            type=EventType.AI_INDICATOR_UPDATE,
            conversation_id=conversation_id,
            message_id=message_id,
            ai_state=state,
        )

    @classmethod
    def status_clear(cls, conversation_id: str, message_id: str) -> "ChatEvent":
        return cls(
            type=EventType.AI_INDICATOR_CLEAR,
            conversation_id=conversation_id,
            message_id=message_id,
        )

    @classmethod
    def stop(cls, message_id: str, conversation_id: str | None = None) -> "ChatEvent":
        return cls(
            type=EventType.AI_INDICATOR_STOP,
            conversation_id=conversation_id,
            message_id=message_id,
        )

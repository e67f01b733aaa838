"""LLM message types and data structures."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Message role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class StreamEventType(str, Enum):
    """Stream event type."""

    TEXT_DELTA = "text_delta"
    TOOL_USE_START = "tool_use_start"
    TOOL_USE_DELTA = "tool_use_delta"
    TOOL_USE_END = "tool_use_end"
    MESSAGE_START = "message_start"
    MESSAGE_END = "message_end"
    ERROR = "error"


@dataclass
class Message:
    """A message in the conversation."""

    role: Role
    content: str


@dataclass
class ToolDefinition:
    """Tool definition for LLM."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class StreamChunk:
    """A low-level event from a provider's streaming response."""

    type: StreamEventType
    content: str | dict[str, Any] | None = None
    tool_use_id: str | None = None
    tool_name: str | None = None


@dataclass
class ToolCall:
    """A backend-issued request to invoke a named tool.

    ``args`` is opaque: usually a mapping, but a provider may hand back a bare
    primitive (or a string it could not decode as JSON).
    """

    name: str
    args: Any = None
    id: str | None = None


@dataclass
class GenerationChunk:
    """One element of a generation stream: optional text and/or tool calls."""

    text: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)

"""LLM provider abstraction layer."""

from scribe.llm.anthropic import AnthropicProvider
from scribe.llm.base import LLMProvider
from scribe.llm.chunks import GenerationError, ToolCallAccumulator, generation_chunks
from scribe.llm.openai import OpenAIProvider
from scribe.llm.registry import ProviderName, create_llm_provider
from scribe.llm.types import (
    GenerationChunk,
    Message,
    Role,
    StreamChunk,
    StreamEventType,
    ToolCall,
    ToolDefinition,
)

__all__ = [
    # Base
    "LLMProvider",
    # Providers
    "AnthropicProvider",
    "OpenAIProvider",
    "ProviderName",
    "create_llm_provider",
    # Generation stream
    "GenerationError",
    "ToolCallAccumulator",
    "generation_chunks",
    # Types
    "GenerationChunk",
    "Message",
    "Role",
    "StreamChunk",
    "StreamEventType",
    "ToolCall",
    "ToolDefinition",
]

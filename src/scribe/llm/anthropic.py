"""Anthropic Claude LLM provider."""

import logging
from collections.abc import AsyncGenerator
from typing import Any

import anthropic

from scribe.llm.base import LLMProvider
from scribe.llm.types import (
    Message,
    Role,
    StreamChunk,
    StreamEventType,
    ToolDefinition,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider."""

    def __init__(self, api_key: str | None = None):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return DEFAULT_MODEL

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        return [
            {"role": msg.role.value, "content": msg.content}
            for msg in messages
            if msg.role != Role.SYSTEM
        ]

    def _convert_tools(
        self, tools: list[ToolDefinition] | None
    ) -> list[dict[str, Any]] | None:
        if not tools:
            return None
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.input_schema,
            }
            for tool in tools
        ]

    def _build_request_kwargs(
        self,
        messages: list[Message],
        model: str | None,
        tools: list[ToolDefinition] | None,
        system: str | None,
        max_tokens: int,
        temperature: float | None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": self._convert_messages(messages),
            "max_tokens": max_tokens,
        }

        if temperature is not None:
            kwargs["temperature"] = temperature

        if system:
            kwargs["system"] = system

        converted_tools = self._convert_tools(tools)
        if converted_tools:
            kwargs["tools"] = converted_tools

        return kwargs

    async def stream(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[ToolDefinition] | None = None,
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        kwargs = self._build_request_kwargs(
            messages, model, tools, system, max_tokens, temperature
        )
        current_tool_id: str | None = None

        logger.debug(f"Streaming {kwargs['model']}")
        async with self._client.messages.stream(**kwargs) as stream:
            async for event in stream:
                if event.type == "message_start":
                    yield StreamChunk(type=StreamEventType.MESSAGE_START)

                elif event.type == "content_block_start":
                    if event.content_block.type == "tool_use":
                        current_tool_id = event.content_block.id
                        yield StreamChunk(
                            type=StreamEventType.TOOL_USE_START,
                            tool_use_id=current_tool_id,
                            tool_name=event.content_block.name,
                        )

                elif event.type == "content_block_delta":
                    if event.delta.type == "text_delta":
                        yield StreamChunk(
                            type=StreamEventType.TEXT_DELTA,
                            content=event.delta.text,
                        )
                    elif event.delta.type == "input_json_delta":
                        yield StreamChunk(
                            type=StreamEventType.TOOL_USE_DELTA,
                            content=event.delta.partial_json,
                            tool_use_id=current_tool_id,
                        )

                elif event.type == "content_block_stop":
                    if current_tool_id:
                        yield StreamChunk(
                            type=StreamEventType.TOOL_USE_END,
                            tool_use_id=current_tool_id,
                        )
                        current_tool_id = None

                elif event.type == "message_stop":
                    yield StreamChunk(type=StreamEventType.MESSAGE_END)
        logger.debug("Stream complete")

"""OpenAI LLM provider (Responses API)."""

import logging
from collections.abc import AsyncGenerator
from typing import Any

import openai

from scribe.llm.base import LLMProvider
from scribe.llm.types import (
    Message,
    Role,
    StreamChunk,
    StreamEventType,
    ToolDefinition,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5.2"


class OpenAIProvider(LLMProvider):
    """OpenAI provider using the Responses API."""

    def __init__(self, api_key: str | None = None):
        self._client = openai.AsyncOpenAI(api_key=api_key)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return DEFAULT_MODEL

    def _convert_input(
        self, messages: list[Message]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Split system messages into instructions, keep the rest as input items."""
        instructions: str | None = None
        result: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == Role.SYSTEM:
                instructions = msg.content
                continue
            result.append({"role": msg.role.value, "content": msg.content})

        return instructions, result

    def _convert_tools(
        self, tools: list[ToolDefinition] | None
    ) -> list[dict[str, Any]] | None:
        if not tools:
            return None
        return [
            {
                "type": "function",
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
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
        msg_instructions, input_items = self._convert_input(messages)
        # Prefer explicit system param, fall back to system message from conversation
        instructions = system or msg_instructions

        kwargs: dict[str, Any] = {
            "model": model or self.default_model,
            "input": input_items,
            "max_output_tokens": max_tokens,
        }

        if instructions:
            kwargs["instructions"] = instructions

        if temperature is not None:
            kwargs["temperature"] = temperature

        converted_tools = self._convert_tools(tools)
        if converted_tools:
            kwargs["tools"] = converted_tools
            kwargs["tool_choice"] = "auto"

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
        kwargs["stream"] = True

        current_tool_calls: dict[str, str] = {}  # call_id -> accumulated arguments
        logger.debug(f"Streaming {kwargs['model']}")
        response_stream = await self._client.responses.create(**kwargs)

        yield StreamChunk(type=StreamEventType.MESSAGE_START)

        async for event in response_stream:
            event_type = event.type

            if event_type == "response.output_text.delta":
                yield StreamChunk(type=StreamEventType.TEXT_DELTA, content=event.delta)

            elif event_type == "response.output_item.added":
                if event.item.type == "function_call":
                    call_id = event.item.call_id
                    current_tool_calls[call_id] = ""
                    yield StreamChunk(
                        type=StreamEventType.TOOL_USE_START,
                        tool_use_id=call_id,
                        tool_name=event.item.name,
                    )

            elif event_type == "response.function_call_arguments.delta":
                call_id = event.call_id
                if call_id in current_tool_calls:
                    current_tool_calls[call_id] += event.delta
                    yield StreamChunk(
                        type=StreamEventType.TOOL_USE_DELTA,
                        content=event.delta,
                        tool_use_id=call_id,
                    )

            elif event_type == "response.function_call_arguments.done":
                call_id = event.call_id
                if call_id in current_tool_calls:
                    yield StreamChunk(
                        type=StreamEventType.TOOL_USE_END,
                        tool_use_id=call_id,
                        content=current_tool_calls[call_id],
                    )

            elif event_type == "error":
                yield StreamChunk(
                    type=StreamEventType.ERROR,
                    content=getattr(event, "message", None) or "Generation failed",
                )

            elif event_type == "response.completed":
                yield StreamChunk(type=StreamEventType.MESSAGE_END)

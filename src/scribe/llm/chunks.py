"""Fold provider stream events into generation chunks.

Providers emit fine-grained events (text deltas, tool-use start/delta/end).
A response run consumes coarser :class:`GenerationChunk` elements: one per
text delta, and one per batch of completed tool calls.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

from scribe.llm.types import GenerationChunk, StreamChunk, StreamEventType, ToolCall

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The generation backend reported an error mid-stream."""


@dataclass
class _PendingCall:
    name: str
    arguments: list[str] = field(default_factory=list)


def decode_arguments(raw: str) -> Any:
    """Decode streamed tool arguments.

    Empty input decodes to an empty mapping. Input that is not valid JSON is
    passed through as the raw string.
    """
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("tool_arguments_not_json", extra={"arguments": raw[:200]})
        return raw


class ToolCallAccumulator:
    """Assembles complete tool calls from streamed fragments."""

    def __init__(self) -> None:
        self._pending: dict[str, _PendingCall] = {}
        self._completed: list[ToolCall] = []

    def start(self, call_id: str, name: str) -> None:
        self._pending[call_id] = _PendingCall(name=name)

    def feed(self, call_id: str, delta: str) -> None:
        if call_id in self._pending:
            self._pending[call_id].arguments.append(delta)

    def finish(self, call_id: str, arguments: str | None = None) -> None:
        pending = self._pending.pop(call_id, None)
        if pending is None:
            return
        raw = arguments if arguments is not None else "".join(pending.arguments)
        self._completed.append(
            ToolCall(name=pending.name, args=decode_arguments(raw), id=call_id)
        )

    def drain(self) -> list[ToolCall]:
        """Return completed calls in completion order and reset."""
        completed, self._completed = self._completed, []
        return completed


async def generation_chunks(
    events: AsyncGenerator[StreamChunk, None],
) -> AsyncGenerator[GenerationChunk, None]:
    """Turn a provider event stream into a generation stream.

    Completed tool calls are held back until the next text delta or the end
    of the message, so calls issued together are delivered in one chunk.

    Raises:
        GenerationError: If the provider emits an error event.
    """
    accumulator = ToolCallAccumulator()

    async with aclosing(events):
        async for event in events:
            if event.type == StreamEventType.TEXT_DELTA:
                if calls := accumulator.drain():
                    yield GenerationChunk(tool_calls=calls)
                if isinstance(event.content, str) and event.content:
                    yield GenerationChunk(text=event.content)

            elif event.type == StreamEventType.TOOL_USE_START:
                if event.tool_use_id and event.tool_name:
                    accumulator.start(event.tool_use_id, event.tool_name)

            elif event.type == StreamEventType.TOOL_USE_DELTA:
                if event.tool_use_id and isinstance(event.content, str):
                    accumulator.feed(event.tool_use_id, event.content)

            elif event.type == StreamEventType.TOOL_USE_END:
                if event.tool_use_id:
                    content = event.content if isinstance(event.content, str) else None
                    accumulator.finish(event.tool_use_id, content)

            elif event.type == StreamEventType.MESSAGE_END:
                if calls := accumulator.drain():
                    yield GenerationChunk(tool_calls=calls)

            elif event.type == StreamEventType.ERROR:
                raise GenerationError(str(event.content or "Generation failed"))

    if calls := accumulator.drain():
        yield GenerationChunk(tool_calls=calls)

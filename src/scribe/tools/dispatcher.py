"""Tool dispatch for backend-issued tool calls."""

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from scribe.chat.base import ChatTransport
from scribe.chat.events import AIState, ChatEvent
from scribe.llm.types import ToolCall
from scribe.tools.base import ToolOutput
from scribe.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

TOOL_FAILURE_MESSAGE = "failed to call tool"


@dataclass(frozen=True)
class RecognizedArguments:
    """The call carried the provider's primary argument."""

    query: str

    def resolve_query(self) -> str:
        return self.query


@dataclass(frozen=True)
class UnrecognizedArguments:
    """The call's payload had no recognizable query; it is forwarded as-is."""

    raw: Any

    def resolve_query(self) -> str:
        if isinstance(self.raw, Mapping):
            return _compact_json(dict(self.raw))
        if isinstance(self.raw, list):
            return _compact_json(self.raw)
        return str(self.raw)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


ToolArguments = RecognizedArguments | UnrecognizedArguments


def parse_tool_arguments(args: Any, key: str = "query") -> ToolArguments:
    """Extract the primary argument from a tool call payload.

    >>> parse_tool_arguments({"query": "cats"}).resolve_query()
    'cats'
    >>> parse_tool_arguments({"q": "cats"}).resolve_query()
    '{"q":"cats"}'
    """
    # A null primary argument counts as missing
    if isinstance(args, Mapping) and args.get(key) is not None:
        value = args[key]
        return RecognizedArguments(value if isinstance(value, str) else str(value))
    return UnrecognizedArguments(args)


def _is_empty(args: Any) -> bool:
    return args is None or (isinstance(args, (Mapping, list, str)) and not args)


class ToolDispatcher:
    """Executes the tool calls found in one generation chunk.

    Calls run sequentially in issue order. Every call yields exactly one
    :class:`ToolOutput`; provider faults are contained as error markers.
    """

    def __init__(self, registry: ToolRegistry, transport: ChatTransport):
        self._registry = registry
        self._transport = transport

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def dispatch(
        self,
        calls: list[ToolCall],
        *,
        conversation_id: str,
        message_id: str,
        is_cancelled: Callable[[], bool] = lambda: False,
    ) -> list[ToolOutput]:
        """Dispatch a batch of calls.

        Emits one EXTERNAL_SOURCES status before any provider is invoked.
        Returns an empty list if ``is_cancelled`` reports true at any point.
        """
        if not calls:
            return []

        await self._transport.send_event(
            ChatEvent.status_update(
                AIState.EXTERNAL_SOURCES, conversation_id, message_id
            )
        )

        outputs: list[ToolOutput] = []
        for call in calls:
            if is_cancelled():
                break
            outputs.append(await self._execute(call, message_id))

        if is_cancelled():
            logger.info(
                "tool_results_discarded",
                extra={
                    "messaging.message_id": message_id,
                    "tool_call_count": len(calls),
                },
            )
            return []
        return outputs

    async def _execute(self, call: ToolCall, message_id: str) -> ToolOutput:
        if call.name not in self._registry:
            logger.error(
                "tool_not_found",
                extra={"gen_ai.tool.name": call.name, "error.type": "KeyError"},
            )
            return ToolOutput(call, {"error": f"Tool '{call.name}' not found"})

        if _is_empty(call.args):
            logger.warning(
                "tool_call_missing_arguments", extra={"gen_ai.tool.name": call.name}
            )
            return ToolOutput(call, {"error": "Missing tool arguments"})

        provider = self._registry.get(call.name)
        arguments = parse_tool_arguments(call.args, provider.primary_argument)
        query = arguments.resolve_query()

        log_extra: dict[str, Any] = {
            "gen_ai.tool.name": call.name,
            "gen_ai.tool.call.id": call.id,
            "gen_ai.tool.call.arguments": query,
            "messaging.message_id": message_id,
        }
        if isinstance(arguments, UnrecognizedArguments):
            logger.debug("tool_arguments_unrecognized", extra=log_extra)

        start_time = time.monotonic()
        try:
            result = json.loads(await provider.invoke(query))
        except Exception:
            logger.exception("tool_execution_failed", extra=log_extra)
            result = {"error": TOOL_FAILURE_MESSAGE}

        log_extra["duration_ms"] = int((time.monotonic() - start_time) * 1000)
        output = ToolOutput(call, result)
        if output.is_error:
            log_extra["error.message"] = str(result["error"])[:500]
            logger.error("tool_executed", extra=log_extra)
        else:
            logger.info("tool_executed", extra=log_extra)
        return output

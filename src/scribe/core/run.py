"""Response runs: one generation stream relayed into one chat message.

A run drains its stream in order, pushing throttled partial-text edits to
the placeholder message, dispatching tool calls as they appear, and
reacting to stop requests and stream faults. Every path ends in exactly
one disposal.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from enum import Enum

from scribe.chat.base import ChatTransport
from scribe.chat.events import AIState, ChatEvent, ChatMessage, EventType
from scribe.llm.types import GenerationChunk
from scribe.tools.base import ToolOutput
from scribe.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Error generating the message"


class RunState(str, Enum):
    """Lifecycle state of a response run."""

    INITIALIZING = "initializing"
    STREAMING = "streaming"
    AWAITING_TOOL = "awaiting_tool"
    FINALIZING = "finalizing"
    ERROR_FINALIZING = "error_finalizing"
    DISPOSED = "disposed"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.INITIALIZING: frozenset(
        {RunState.STREAMING, RunState.FINALIZING, RunState.DISPOSED}
    ),
    RunState.STREAMING: frozenset(
        {
            RunState.AWAITING_TOOL,
            RunState.FINALIZING,
            RunState.ERROR_FINALIZING,
            RunState.DISPOSED,
        }
    ),
    RunState.AWAITING_TOOL: frozenset(
        {
            RunState.STREAMING,
            RunState.FINALIZING,
            RunState.ERROR_FINALIZING,
            RunState.DISPOSED,
        }
    ),
    RunState.FINALIZING: frozenset({RunState.ERROR_FINALIZING, RunState.DISPOSED}),
    RunState.ERROR_FINALIZING: frozenset({RunState.DISPOSED}),
    RunState.DISPOSED: frozenset(),
}

# States in which a stop request still has an effect
_STOPPABLE = frozenset(
    {RunState.INITIALIZING, RunState.STREAMING, RunState.AWAITING_TOOL}
)


class RunStateError(Exception):
    """An illegal run state transition was attempted."""

    def __init__(self, current: RunState, target: RunState):
        super().__init__(f"Illegal run transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target


ReleaseCallback = Callable[["ResponseRun"], None]


class ResponseRun:
    """Relays one generation stream into one outbound chat message."""

    def __init__(
        self,
        stream: AsyncIterator[GenerationChunk],
        transport: ChatTransport,
        message: ChatMessage,
        dispatcher: ToolDispatcher,
        on_dispose: ReleaseCallback | None = None,
        *,
        update_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Create a run and subscribe it to stop requests.

        Args:
            stream: Generation stream to drain. Consumed once.
            transport: Chat transport owning the placeholder message.
            message: The placeholder message this run fills in.
            dispatcher: Tool dispatcher for backend-issued calls.
            on_dispose: Called once when the run is disposed.
            update_interval: Minimum seconds between non-final edits.
            clock: Monotonic time source.
        """
        self._stream = stream
        self._transport = transport
        self._dispatcher = dispatcher
        self._on_dispose = on_dispose
        self._update_interval = update_interval
        self._clock = clock

        self.message_id = message.id
        self.conversation_id = message.conversation_id

        self._state = RunState.INITIALIZING
        self._aborted = False
        self._accumulated_text = ""
        self._chunk_count = 0
        self._last_flush_time: float | None = None
        self._tool_outputs: list[ToolOutput] = []

        self._stop_subscription = transport.subscribe(
            EventType.AI_INDICATOR_STOP, self._handle_stop
        )

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._state == RunState.DISPOSED

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def accumulated_text(self) -> str:
        return self._accumulated_text

    @property
    def chunk_count(self) -> int:
        return self._chunk_count

    @property
    def last_flush_time(self) -> float | None:
        return self._last_flush_time

    @property
    def tool_outputs(self) -> list[ToolOutput]:
        return list(self._tool_outputs)

    def _transition(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RunStateError(self._state, target)
        logger.debug(
            "run_state_changed",
            extra={
                "messaging.message_id": self.message_id,
                "run.state.from": self._state.value,
                "run.state.to": target.value,
            },
        )
        self._state = target

    def _halted(self) -> bool:
        return self._aborted or self.is_disposed

    async def run(self) -> None:
        """Drain the stream until it ends, faults, or the run is stopped.

        Faults are reported to the channel rather than raised. Task
        cancellation still disposes the run before propagating.
        """
        if self._halted():
            await self._close_stream()
            self.dispose()
            return

        self._transition(RunState.STREAMING)
        logger.info(
            "run_started",
            extra={
                "messaging.message_id": self.message_id,
                "messaging.conversation_id": self.conversation_id,
            },
        )

        try:
            async for chunk in self._stream:
                if self._halted():
                    break
                await self._process_chunk(chunk)
                if self._halted():
                    break
            if not self._halted():
                await self._finalize()
        except asyncio.CancelledError:
            logger.info(
                "run_cancelled", extra={"messaging.message_id": self.message_id}
            )
            self.dispose()
            raise
        except Exception as e:
            await self._handle_error(e)
        finally:
            await self._close_stream()
            self.dispose()

    async def _process_chunk(self, chunk: GenerationChunk) -> None:
        if chunk.tool_calls:
            self._transition(RunState.AWAITING_TOOL)
            outputs = await self._dispatcher.dispatch(
                chunk.tool_calls,
                conversation_id=self.conversation_id,
                message_id=self.message_id,
                is_cancelled=self._halted,
            )
            if self._halted():
                return
            self._tool_outputs.extend(outputs)
            self._transition(RunState.STREAMING)

        if chunk.text:
            self._accumulated_text += chunk.text
            self._chunk_count += 1
            await self._maybe_flush()

    async def _maybe_flush(self) -> None:
        now = self._clock()
        if (
            self._last_flush_time is None
            or now - self._last_flush_time >= self._update_interval
        ):
            await self._flush(now)

    async def _flush(self, now: float | None = None) -> None:
        self._last_flush_time = self._clock() if now is None else now
        await self._transport.update_message_text(
            self.message_id, self._accumulated_text
        )

    async def _finalize(self) -> None:
        self._transition(RunState.FINALIZING)
        await self._flush()
        await self._transport.send_event(
            ChatEvent.status_clear(self.conversation_id, self.message_id)
        )
        logger.info(
            "run_completed",
            extra={
                "messaging.message_id": self.message_id,
                "run.chunk_count": self._chunk_count,
                "run.tool_call_count": len(self._tool_outputs),
                "output.length": len(self._accumulated_text),
            },
        )
        self.dispose()

    async def _handle_error(self, error: Exception) -> None:
        if self._halted():
            logger.debug(
                "run_error_after_termination",
                extra={"messaging.message_id": self.message_id},
                exc_info=error,
            )
            return

        logger.error(
            "run_failed",
            extra={"messaging.message_id": self.message_id},
            exc_info=error,
        )
        self._transition(RunState.ERROR_FINALIZING)
        try:
            await self._transport.send_event(
                ChatEvent.status_update(
                    AIState.ERROR, self.conversation_id, self.message_id
                )
            )
            await self._transport.update_message_text(
                self.message_id, f"Error: {str(error) or DEFAULT_ERROR_MESSAGE}"
            )
        except Exception:
            logger.exception(
                "run_error_report_failed",
                extra={"messaging.message_id": self.message_id},
            )
        finally:
            self.dispose()

    async def _handle_stop(self, event: ChatEvent) -> None:
        if event.message_id != self.message_id:
            return
        if self._state not in _STOPPABLE:
            logger.debug(
                "stop_ignored",
                extra={
                    "messaging.message_id": self.message_id,
                    "run.state": self._state.value,
                },
            )
            return

        self._aborted = True
        self._transition(RunState.FINALIZING)
        logger.info("run_stopped", extra={"messaging.message_id": self.message_id})
        try:
            await self._transport.send_event(
                ChatEvent.status_clear(self.conversation_id, self.message_id)
            )
        finally:
            self.dispose()

    async def _close_stream(self) -> None:
        aclose = getattr(self._stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception:
            logger.warning(
                "stream_close_failed",
                extra={"messaging.message_id": self.message_id},
                exc_info=True,
            )

    def dispose(self) -> None:
        """Release the run. Safe to call any number of times."""
        if self.is_disposed:
            return
        self._transition(RunState.DISPOSED)
        self._stop_subscription.release()
        logger.debug("run_disposed", extra={"messaging.message_id": self.message_id})
        if self._on_dispose:
            try:
                self._on_dispose(self)
            except Exception:
                logger.warning("dispose_callback_failed", exc_info=True)

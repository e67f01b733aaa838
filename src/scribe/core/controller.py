"""Agent controller: one response run per inbound message."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from scribe.chat.base import ChatTransport, Subscription
from scribe.chat.events import AIState, ChatEvent, EventType
from scribe.config.models import ModelConfig
from scribe.core.prompt import build_writing_prompt
from scribe.core.run import ResponseRun
from scribe.llm.base import LLMProvider
from scribe.llm.chunks import generation_chunks
from scribe.llm.types import Message, Role
from scribe.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


class AgentController:
    """Listens for new messages and drives a response run for each.

    The controller owns the set of live runs. A run removes itself through
    its release callback when it is disposed.
    """

    def __init__(
        self,
        transport: ChatTransport,
        llm: LLMProvider,
        dispatcher: ToolDispatcher,
        model_config: ModelConfig | None = None,
        *,
        update_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._transport = transport
        self._llm = llm
        self._dispatcher = dispatcher
        self._model_config = model_config or ModelConfig()
        self._update_interval = update_interval
        self._clock = clock

        self._runs: dict[str, ResponseRun] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._subscription: Subscription | None = None
        self._last_interaction = time.time()

    @property
    def runs(self) -> dict[str, ResponseRun]:
        """Live runs keyed by placeholder message id."""
        return dict(self._runs)

    @property
    def last_interaction(self) -> float:
        """Wall-clock timestamp of the last accepted user message."""
        return self._last_interaction

    @property
    def started(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def start(self) -> None:
        """Begin handling new messages."""
        if self.started:
            return
        self._subscription = self._transport.subscribe(
            EventType.MESSAGE_NEW, self.handle_message
        )
        logger.info(
            "controller_started",
            extra={
                "transport": self._transport.name,
                "gen_ai.provider.name": self._llm.name,
            },
        )

    async def stop(self) -> None:
        """Stop handling messages and tear down every live run."""
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None

        for run in list(self._runs.values()):
            run.dispose()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.info("controller_stopped")

    async def handle_message(self, event: ChatEvent) -> None:
        message = event.message
        if message is None or message.ai_generated:
            return
        if not message.text:
            return

        self._last_interaction = time.time()

        writing_task = message.custom.get("writing_task")
        prompt = build_writing_prompt(
            message.text, writing_task if isinstance(writing_task, str) else None
        )

        placeholder = await self._transport.send_message(
            message.conversation_id, "", ai_generated=True
        )
        await self._transport.send_event(
            ChatEvent.status_update(
                AIState.THINKING, placeholder.conversation_id, placeholder.id
            )
        )

        events = self._llm.stream(
            [Message(role=Role.USER, content=prompt)],
            model=self._model_config.model,
            tools=self._dispatcher.registry.get_definitions(),
            max_tokens=self._model_config.max_tokens,
            temperature=self._model_config.temperature,
        )

        run = ResponseRun(
            generation_chunks(events),
            self._transport,
            placeholder,
            self._dispatcher,
            self._release_run,
            update_interval=self._update_interval,
            clock=self._clock,
        )
        self._runs[placeholder.id] = run

        logger.info(
            "run_scheduled",
            extra={
                "messaging.message_id": placeholder.id,
                "messaging.conversation_id": placeholder.conversation_id,
                "reply_to.message_id": message.id,
                "writing_task": writing_task,
            },
        )
        task = asyncio.create_task(run.run(), name=f"response_run:{placeholder.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _release_run(self, run: ResponseRun) -> None:
        self._runs.pop(run.message_id, None)

    async def wait_idle(self) -> None:
        """Wait for every scheduled run to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

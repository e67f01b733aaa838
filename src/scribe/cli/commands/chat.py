"""Chat command for interactive console sessions."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import RenderableType
from rich.live import Live
from rich.markdown import Markdown
from rich.text import Text

from scribe.chat.events import AIState, ChatEvent, ChatMessage, EventType
from scribe.cli.console import console, dim, error

logger = logging.getLogger(__name__)

CONVERSATION_ID = "console"

_STATUS_LABELS = {
    AIState.THINKING: "Thinking...",
    AIState.EXTERNAL_SOURCES: "Searching the web...",
}


class ConsoleView:
    """Renders the in-progress response for the console transport."""

    def __init__(self) -> None:
        self.live: Live | None = None
        self.message_id: str | None = None
        self._text = ""
        self._status: str | None = None

    def reset(self) -> None:
        self.message_id = None
        self._text = ""
        self._status = None

    def render(self) -> RenderableType:
        if self._text:
            return Markdown(self._text)
        return Text(self._status or "", style="dim")

    def _refresh(self) -> None:
        if self.live is not None:
            self.live.update(self.render())

    def on_update(self, message: ChatMessage) -> None:
        if message.id != self.message_id:
            return
        self._text = message.text
        self._refresh()

    def on_event(self, event: ChatEvent) -> None:
        if event.type == EventType.AI_INDICATOR_UPDATE:
            if event.ai_state == AIState.THINKING:
                self.message_id = event.message_id
            if event.message_id != self.message_id:
                return
            self._status = _STATUS_LABELS.get(event.ai_state)  # type: ignore[arg-type]
        elif event.type == EventType.AI_INDICATOR_CLEAR:
            if event.message_id != self.message_id:
                return
            self._status = None
        self._refresh()


def register(app: typer.Typer) -> None:
    """Register the chat command."""

    @app.command()
    def chat(
        prompt: Annotated[
            str | None,
            typer.Argument(
                help="Single prompt to run (non-interactive mode)",
            ),
        ] = None,
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        task: Annotated[
            str | None,
            typer.Option(
                "--task",
                "-t",
                help="Writing task to attach to every message",
            ),
        ] = None,
    ) -> None:
        """Start an interactive writing session, or run a single prompt.

        Examples:
            scribe chat                                  # Interactive mode
            scribe chat "Tighten this intro: ..."        # Single prompt
            scribe chat --task "Cover letter" "Draft an opening paragraph"

        Press Ctrl+C while a response is streaming to stop it.
        """
        try:
            asyncio.run(_run_chat(prompt, config_path, task))
        except KeyboardInterrupt:
            console.print("\n[dim]Goodbye![/dim]")


async def _run_chat(
    prompt: str | None,
    config_path: Path | None,
    task: str | None,
) -> None:
    """Run the chat session asynchronously."""
    import signal as signal_module

    from rich.panel import Panel

    from scribe.chat.memory import InMemoryTransport
    from scribe.config import ConfigError, get_default_config, load_config
    from scribe.core import create_controller
    from scribe.logging import configure_logging

    # Suppress to WARNING so log lines don't tear the live view
    configure_logging(level="WARNING")

    try:
        scribe_config = load_config(config_path)
    except FileNotFoundError:
        if config_path is not None:
            error(f"Config file not found: {config_path}")
            raise typer.Exit(1) from None
        scribe_config = get_default_config()

    view = ConsoleView()
    transport = InMemoryTransport(on_update=view.on_update, on_event=view.on_event)

    try:
        components = create_controller(scribe_config, transport)
    except ConfigError as e:
        error(str(e))
        raise typer.Exit(1) from None

    controller = components.controller
    controller.start()
    loop = asyncio.get_running_loop()
    stop_requests: set[asyncio.Task[None]] = set()

    def request_stop() -> None:
        if view.message_id is None:
            return
        stop_task = loop.create_task(transport.request_stop(view.message_id))
        stop_requests.add(stop_task)
        stop_task.add_done_callback(stop_requests.discard)

    async def process_message(text: str) -> None:
        view.reset()
        custom = {"writing_task": task} if task else None
        loop.add_signal_handler(signal_module.SIGINT, request_stop)
        try:
            with Live(view.render(), console=console, refresh_per_second=8) as live:
                view.live = live
                await transport.post_user_message(CONVERSATION_ID, text, custom=custom)
                await controller.wait_idle()
                if stop_requests:
                    await asyncio.gather(*list(stop_requests))
        finally:
            view.live = None
            loop.remove_signal_handler(signal_module.SIGINT)
        console.print()

    try:
        if prompt:
            await process_message(prompt)
            return

        console.print(
            Panel(
                "[bold]Scribe[/bold]\n\n"
                "Type your message and press Enter. "
                "Type 'exit' or 'quit' to end the session.\n"
                "Press Ctrl+C to stop a response.",
                title="Welcome",
                border_style="blue",
            )
        )
        console.print()

        while True:
            try:
                user_input = console.input("[bold cyan]You:[/bold cyan] ").strip()
            except EOFError:
                break
            if not user_input:
                continue
            if user_input.lower() in ("exit", "quit", "/exit", "/quit"):
                dim("Goodbye!")
                break
            console.print()
            await process_message(user_input)
    finally:
        await components.aclose()

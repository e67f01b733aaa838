"""Server command for running Scribe against Telegram."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from scribe.cli.console import error

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Start the Telegram bot."""
        from scribe.config import ConfigError

        try:
            asyncio.run(_run_server(config))
        except FileNotFoundError:
            error("No configuration found. Create ~/.scribe/config.toml first.")
            raise typer.Exit(1) from None
        except ConfigError as e:
            error(str(e))
            raise typer.Exit(1) from None
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")


async def _run_server(config_path: Path | None = None) -> None:
    """Run the server asynchronously."""
    import signal as signal_module

    from scribe.logging import configure_logging

    # Configure logging with Rich for colorful server output
    configure_logging(use_rich=True)

    from scribe.chat.telegram import TelegramTransport
    from scribe.config import ConfigError, load_config
    from scribe.core import create_controller

    logger.info("Loading configuration")
    scribe_config = load_config(config_path)

    telegram_config = scribe_config.telegram
    if telegram_config is None or telegram_config.bot_token is None:
        raise ConfigError(
            "Telegram is not configured. Set TELEGRAM_BOT_TOKEN or "
            "[telegram].bot_token in config"
        )

    transport = TelegramTransport(
        bot_token=telegram_config.bot_token.get_secret_value(),
        allowed_users=telegram_config.allowed_users,
    )
    components = create_controller(scribe_config, transport)
    logger.debug(f"Tools: {', '.join(components.tool_registry.names)}")

    telegram_task: asyncio.Task[None] | None = None
    loop = asyncio.get_running_loop()

    def handle_signal() -> None:
        if telegram_task and not telegram_task.done():
            telegram_task.cancel()

    for sig in (signal_module.SIGTERM, signal_module.SIGINT):
        loop.add_signal_handler(sig, handle_signal)

    try:
        components.controller.start()
        logger.info("Starting Telegram polling")
        telegram_task = asyncio.create_task(transport.start())
        try:
            await telegram_task
        except asyncio.CancelledError:
            logger.info("Telegram polling cancelled")
    finally:
        for resource, method in [
            (components, "aclose"),
            (transport, "stop"),
        ]:
            try:
                await getattr(resource, method)()
            except Exception as e:
                logger.warning(f"Error during {method}: {e}")

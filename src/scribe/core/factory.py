"""Controller construction from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from scribe.chat.base import ChatTransport
from scribe.config.models import ScribeConfig
from scribe.core.controller import AgentController
from scribe.llm.base import LLMProvider
from scribe.llm.registry import create_llm_provider
from scribe.tools.dispatcher import ToolDispatcher
from scribe.tools.registry import ToolRegistry
from scribe.tools.web_search import WebSearchTool

logger = logging.getLogger(__name__)


@dataclass
class ControllerComponents:
    """Everything a running controller depends on."""

    controller: AgentController
    llm: LLMProvider
    tool_registry: ToolRegistry
    dispatcher: ToolDispatcher

    async def aclose(self) -> None:
        await self.controller.stop()
        await self.tool_registry.cleanup()


def create_controller(
    config: ScribeConfig,
    transport: ChatTransport,
    llm: LLMProvider | None = None,
) -> ControllerComponents:
    """Wire an agent controller for a transport.

    Raises:
        ConfigError: If no API key is available for the model provider.
    """
    if llm is None:
        llm = create_llm_provider(config.model.provider, config.require_api_key())

    tool_registry = ToolRegistry()
    # Registered even without a key so calls get the "not configured" payload
    tool_registry.register(WebSearchTool(config.tavily))
    if not config.tavily.web_search_configured:
        logger.info("Web search disabled: TAVILY_API_KEY not configured")

    dispatcher = ToolDispatcher(tool_registry, transport)
    controller = AgentController(
        transport,
        llm,
        dispatcher,
        config.model,
        update_interval=config.streaming.update_interval,
    )
    return ControllerComponents(
        controller=controller,
        llm=llm,
        tool_registry=tool_registry,
        dispatcher=dispatcher,
    )

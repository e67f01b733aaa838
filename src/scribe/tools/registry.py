"""Tool registry for managing available tools."""

import logging
from collections.abc import Iterator

from scribe.llm.types import ToolDefinition
from scribe.tools.base import ToolProvider

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry for tool providers, keyed by name."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolProvider] = {}

    def register(self, tool: ToolProvider) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> ToolProvider:
        if name not in self._tools:
            raise KeyError(f"Tool '{name}' not found")
        return self._tools[name]

    @property
    def names(self) -> list[str]:
        return list(self._tools.keys())

    def get_definitions(self) -> list[ToolDefinition]:
        return [tool.to_definition() for tool in self._tools.values()]

    async def cleanup(self) -> None:
        """Release resources held by every registered provider."""
        for tool in self._tools.values():
            try:
                await tool.cleanup()
            except Exception:
                logger.warning(
                    "tool_cleanup_failed",
                    extra={"gen_ai.tool.name": tool.name},
                    exc_info=True,
                )

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolProvider]:
        return iter(self._tools.values())

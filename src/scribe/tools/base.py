"""Abstract tool interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from scribe.llm.types import ToolCall, ToolDefinition


@dataclass
class ToolOutput:
    """Outcome of one backend-issued tool call.

    ``result`` is the provider's parsed payload, or an error marker of the
    form ``{"error": reason}``.
    """

    call: ToolCall
    result: Any

    @property
    def is_error(self) -> bool:
        return isinstance(self.result, dict) and "error" in self.result


class ToolProvider(ABC):
    """Abstract base class for tools the backend may call mid-stream.

    Providers take a single query string and return a serialized (JSON)
    result. Expected failures are reported inside the serialized result;
    unexpected ones may raise and are contained by the dispatcher.
    """

    # Argument key holding the query in a backend-issued call
    primary_argument: str = "query"

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this tool."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description for the LLM."""
        ...

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema for tool input parameters."""
        return {
            "type": "object",
            "properties": {
                self.primary_argument: {
                    "type": "string",
                    "description": "The search query.",
                },
            },
            "required": [self.primary_argument],
        }

    @abstractmethod
    async def invoke(self, query: str) -> str:
        """Run the tool.

        Args:
            query: Resolved query string.

        Returns:
            Serialized JSON result or error payload.
        """
        ...

    async def cleanup(self) -> None:
        """Release resources held by the provider."""

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
        )

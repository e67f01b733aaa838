"""Abstract LLM provider interface."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

from scribe.llm.types import Message, StreamChunk, ToolDefinition


class LLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g., 'anthropic', 'openai')."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Default model for this provider."""
        ...

    @abstractmethod
    def stream(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[ToolDefinition] | None = None,
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ) -> AsyncGenerator[StreamChunk, None]:
        """Generate a streaming completion.

        Implementations are async generators: the request is only issued
        once iteration starts, so connection failures surface while
        consuming the stream.

        Args:
            messages: Conversation history.
            model: Model to use (defaults to provider's default).
            tools: Available tools for the model.
            system: System prompt.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature. None = use API default.

        Yields:
            Stream chunks as they arrive.
        """
        ...

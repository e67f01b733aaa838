"""Shared test fixtures and factories."""

import json
from collections.abc import AsyncGenerator, Iterable
from pathlib import Path
from typing import Any

import pytest

from scribe.chat.memory import InMemoryTransport
from scribe.config.models import ModelConfig, ScribeConfig
from scribe.llm.types import (
    GenerationChunk,
    Message,
    StreamChunk,
    StreamEventType,
    ToolCall,
    ToolDefinition,
)
from scribe.tools.base import ToolProvider
from scribe.tools.dispatcher import ToolDispatcher
from scribe.tools.registry import ToolRegistry

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def minimal_config() -> ScribeConfig:
    """Minimal valid configuration."""
    return ScribeConfig(model=ModelConfig(provider="anthropic"))


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[model]
provider = "anthropic"
model = "claude-sonnet-4-5"
temperature = 0.5
max_tokens = 2048

[streaming]
update_interval_ms = 250

[tavily]
max_results = 3
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


# =============================================================================
# Clock and Stream Helpers
# =============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def text(value: str) -> GenerationChunk:
    return GenerationChunk(text=value)


def calls(*tool_calls: ToolCall) -> GenerationChunk:
    return GenerationChunk(tool_calls=list(tool_calls))


def search_call(args: Any = None, call_id: str | None = None) -> ToolCall:
    return ToolCall(name="web_search", args=args, id=call_id)


async def chunk_stream(
    chunks: Iterable[GenerationChunk],
    *,
    error: Exception | None = None,
) -> AsyncGenerator[GenerationChunk, None]:
    """Yield chunks, then optionally raise."""
    for chunk in chunks:
        yield chunk
    if error is not None:
        raise error


class RecordingStream:
    """Async iterator over chunks that records how it was consumed.

    ``on_pull`` runs before each chunk is handed out, letting a test inject
    a stop request or advance the clock at a precise point.
    """

    def __init__(self, chunks: Iterable[GenerationChunk], on_pull=None):
        self._chunks = list(chunks)
        self._index = 0
        self._on_pull = on_pull
        self.pulled = 0
        self.closed = False

    def __aiter__(self) -> "RecordingStream":
        return self

    async def __anext__(self) -> GenerationChunk:
        if self._index >= len(self._chunks):
            raise StopAsyncIteration
        if self._on_pull:
            await self._on_pull(self._index)
        chunk = self._chunks[self._index]
        self._index += 1
        self.pulled += 1
        return chunk

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Transport Fixtures
# =============================================================================


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


# =============================================================================
# Tool Fixtures
# =============================================================================


class FakeSearchTool(ToolProvider):
    """Tool provider returning a canned payload."""

    def __init__(
        self,
        name: str = "web_search",
        result: Any = None,
        raises: Exception | None = None,
        raw: str | None = None,
    ):
        self._name = name
        self._result = result if result is not None else {"results": []}
        self._raises = raises
        self._raw = raw
        self.queries: list[str] = []
        self.before_return = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Search for testing"

    async def invoke(self, query: str) -> str:
        self.queries.append(query)
        if self.before_return:
            await self.before_return()
        if self._raises is not None:
            raise self._raises
        if self._raw is not None:
            return self._raw
        return json.dumps(self._result)


@pytest.fixture
def search_tool() -> FakeSearchTool:
    return FakeSearchTool(result={"answer": "Cats are mammals.", "results": []})


@pytest.fixture
def tool_registry(search_tool: FakeSearchTool) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(search_tool)
    return registry


@pytest.fixture
def dispatcher(
    tool_registry: ToolRegistry, transport: InMemoryTransport
) -> ToolDispatcher:
    return ToolDispatcher(tool_registry, transport)


# =============================================================================
# LLM Fixtures
# =============================================================================


class MockLLMProvider:
    """Mock LLM provider for testing."""

    def __init__(
        self,
        stream_chunks: list[StreamChunk] | None = None,
        error: Exception | None = None,
    ):
        self.stream_chunks = stream_chunks or []
        self.error = error
        self.stream_calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def default_model(self) -> str:
        return "mock-model"

    async def stream(
        self,
        messages: list[Message],
        *,
        model: str | None = None,
        tools: list[ToolDefinition] | None = None,
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float | None = None,
    ):
        self.stream_calls.append(
            {
                "messages": messages,
                "model": model,
                "tools": tools,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )

        for chunk in self.stream_chunks:
            yield chunk

        if self.error is not None:
            raise self.error

        # Default streaming response if none provided
        if not self.stream_chunks:
            yield StreamChunk(type=StreamEventType.MESSAGE_START)
            yield StreamChunk(type=StreamEventType.TEXT_DELTA, content="Mock ")
            yield StreamChunk(type=StreamEventType.TEXT_DELTA, content="response")
            yield StreamChunk(type=StreamEventType.MESSAGE_END)


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    return MockLLMProvider()


# =============================================================================
# CLI Test Helpers
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})

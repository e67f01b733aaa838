"""Tools the generation backend can call mid-stream."""

from scribe.tools.base import ToolOutput, ToolProvider
from scribe.tools.dispatcher import (
    TOOL_FAILURE_MESSAGE,
    RecognizedArguments,
    ToolArguments,
    ToolDispatcher,
    UnrecognizedArguments,
    parse_tool_arguments,
)
from scribe.tools.registry import ToolRegistry
from scribe.tools.web_search import WebSearchTool

__all__ = [
    "RecognizedArguments",
    "TOOL_FAILURE_MESSAGE",
    "ToolArguments",
    "ToolDispatcher",
    "ToolOutput",
    "ToolProvider",
    "ToolRegistry",
    "UnrecognizedArguments",
    "WebSearchTool",
    "parse_tool_arguments",
]

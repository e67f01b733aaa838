"""CLI command modules."""

from scribe.cli.commands import chat, serve

__all__ = ["chat", "serve"]

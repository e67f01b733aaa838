"""Shared console utilities for CLI commands."""

from rich.console import Console
from rich.markup import escape

# Shared console instance for all CLI commands
console = Console()


def error(msg: str) -> None:
    """Print an error message in red."""
    # Config hints mention TOML sections like [telegram]
    console.print(f"[red]{escape(msg)}[/red]")


def dim(msg: str) -> None:
    """Print a dimmed message."""
    console.print(f"[dim]{msg}[/dim]")

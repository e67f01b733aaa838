"""Scribe - streaming writing assistant for chat platforms."""

__version__ = "0.1.0"

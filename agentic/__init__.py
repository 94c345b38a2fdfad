"""Agentic chat runtime package."""

__version__ = "0.1.0"

__all__ = [
    "config",
    "logging",
    "runtime",
    "server",
]

"""
Runtime Errors - Failure taxonomy for the agent runtime

WHAT: Exception types raised by stores, the tool layer, and the agent loop
WHERE: agentic/runtime/memory/errors.py - shared by every runtime module
WHO: Orchestrator, stores, and the web/console adapters mapping failures
TIME: N/A

Validation and not-found errors are raised before any side effect. Tool
failures never leave the tool layer; they are rendered as text for the model.
"""

from __future__ import annotations


class AgenticChatError(RuntimeError):
    """Base class for all runtime errors."""


class ValidationError(AgenticChatError):
    """Raised when an argument or identifier is empty or malformed."""


class NotFoundError(AgenticChatError):
    """Raised when a session (or switch target) does not exist."""


class ToolExecutionError(AgenticChatError):
    """Raised inside a tool handler; converted to a tool result, never propagated."""


class LoopExceeded(AgenticChatError):
    """Raised when the model keeps requesting tools past the iteration cap."""

    def __init__(self, iterations: int) -> None:
        super().__init__(f"Agent loop exceeded {iterations} model invocations without a final reply")
        self.iterations = iterations


class StorageLoadError(AgenticChatError):
    """Raised when a persisted document cannot be read or decoded."""


class StorageWriteError(AgenticChatError):
    """Raised when a persisted document cannot be written."""


class UpstreamApiError(AgenticChatError):
    """Raised when the completion endpoint fails after client-side retries."""


class ConfigurationError(AgenticChatError):
    """Raised when startup configuration is missing or invalid."""


__all__ = [
    "AgenticChatError",
    "ConfigurationError",
    "LoopExceeded",
    "NotFoundError",
    "StorageLoadError",
    "StorageWriteError",
    "ToolExecutionError",
    "UpstreamApiError",
    "ValidationError",
]

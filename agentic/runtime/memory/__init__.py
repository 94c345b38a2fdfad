"""
Agent Memory Runtime - Short-term window, long-term memory & tool loop

WHAT: Local library implementing a memory-augmented chat agent
WHERE: agentic/runtime/memory/ - runtime orchestration subsystem
WHO: Web service and console chat driving conversation turns
TIME: Per turn: one completion call per loop iteration plus small file IO

Memory tiers:
- short-term: the newest 20 messages of the session, sent with every request
- long-term: keyed facts the model manages itself through function calls

Operations exposed to the model:
- add_memory(key, content): insert or update a fact (case-insensitive key)
- search_memory(query): substring search over keys and contents
- get_all_memories(): the full memory list

Persistence:
- memory: one JSON array per owner (or one global file)
- sessions: one JSON document per session, or an in-process registry
"""

from .errors import (  # noqa: F401
    AgenticChatError,
    ConfigurationError,
    LoopExceeded,
    NotFoundError,
    StorageLoadError,
    StorageWriteError,
    ToolExecutionError,
    UpstreamApiError,
    ValidationError,
)
from .memory_store import EMPTY_MEMORY_PLACEHOLDER, JsonMemoryStore, MemoryStore  # noqa: F401
from .model_client import Completion, CompletionBackend, ModelBackendConfig, OpenAIChatClient, ToolCall  # noqa: F401
from .models import DEFAULT_TITLE, ChatSession, MemoryEntry, Message, derive_title  # noqa: F401
from .orchestrator import ConversationOrchestrator, LoopState, OrchestratorConfig, TurnResult  # noqa: F401
from .prompting import FocusDirective, compose_system_prompt  # noqa: F401
from .session import ChatService, per_owner_memory, shared_memory  # noqa: F401
from .session_store import FileSessionStore, InMemorySessionStore, SessionStore, validate_identifier  # noqa: F401
from .telemetry import (  # noqa: F401
    CaptureTelemetryClient,
    LoggingTelemetryClient,
    NoOpTelemetryClient,
    TelemetryClient,
    TelemetrySpan,
)
from .tools import ToolExecutor, ToolRegistry, ToolResult, ToolSpec  # noqa: F401
from .turn_manager import TurnManager  # noqa: F401

__all__ = [
    "AgenticChatError",
    "CaptureTelemetryClient",
    "ChatService",
    "ChatSession",
    "Completion",
    "CompletionBackend",
    "ConfigurationError",
    "ConversationOrchestrator",
    "DEFAULT_TITLE",
    "EMPTY_MEMORY_PLACEHOLDER",
    "FileSessionStore",
    "FocusDirective",
    "InMemorySessionStore",
    "JsonMemoryStore",
    "LoggingTelemetryClient",
    "LoopExceeded",
    "LoopState",
    "MemoryEntry",
    "MemoryStore",
    "Message",
    "ModelBackendConfig",
    "NoOpTelemetryClient",
    "NotFoundError",
    "OpenAIChatClient",
    "OrchestratorConfig",
    "SessionStore",
    "StorageLoadError",
    "StorageWriteError",
    "TelemetryClient",
    "TelemetrySpan",
    "ToolCall",
    "ToolExecutionError",
    "ToolExecutor",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "TurnManager",
    "TurnResult",
    "UpstreamApiError",
    "ValidationError",
    "compose_system_prompt",
    "derive_title",
    "per_owner_memory",
    "shared_memory",
    "validate_identifier",
]

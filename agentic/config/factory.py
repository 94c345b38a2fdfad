"""
Runtime Factory - Wire settings into stores, client, and service

WHAT: Build the SessionStore, completion client, and ChatService from AppSettings
WHERE: agentic/config/factory.py - composition root for web and console
WHO: agentic.server.create_app and scripts/agentic_chat.py
TIME: Startup only

The completion client is created once here and injected downward; nothing in
the runtime holds a process-wide client. Long-term memory is per owner unless
the caller supplies another factory; the single-user console passes
``console_memory(settings)`` to share one global memory file.
"""

from __future__ import annotations

from typing import Optional

from agentic.runtime.memory.memory_store import JsonMemoryStore
from agentic.runtime.memory.model_client import CompletionBackend, OpenAIChatClient
from agentic.runtime.memory.orchestrator import ConversationOrchestrator
from agentic.runtime.memory.prompting import FocusDirective
from agentic.runtime.memory.session import ChatService, MemoryFactory, per_owner_memory, shared_memory
from agentic.runtime.memory.session_store import FileSessionStore, InMemorySessionStore, SessionStore
from agentic.runtime.memory.telemetry import TelemetryClient

from .settings import AppSettings


def build_session_store(settings: AppSettings) -> SessionStore:
    if settings.session_backend == "memory":
        return InMemorySessionStore()
    return FileSessionStore(settings.sessions_root)


def console_memory(settings: AppSettings) -> MemoryFactory:
    """Single-user mode: every owner resolves to the global ``settings.memory_file``."""

    return shared_memory(JsonMemoryStore(settings.memory_file))


def build_chat_service(
    settings: AppSettings,
    *,
    client: Optional[CompletionBackend] = None,
    session_store: Optional[SessionStore] = None,
    memory_factory: Optional[MemoryFactory] = None,
    telemetry: Optional[TelemetryClient] = None,
    focus: Optional[FocusDirective] = None,
) -> ChatService:
    """Assemble a ChatService.

    Memory defaults to one file per owner under ``settings.memories_root``,
    whatever the session backend.
    """

    backend = client or OpenAIChatClient(settings.require_backend())
    orchestrator = ConversationOrchestrator(
        client=backend,
        config=settings.orchestrator_config(),
        telemetry=telemetry,
        focus=focus,
    )
    return ChatService(
        orchestrator=orchestrator,
        session_store=session_store or build_session_store(settings),
        memory_factory=memory_factory or per_owner_memory(settings.memories_root),
    )


__all__ = ["build_chat_service", "build_session_store", "console_memory"]

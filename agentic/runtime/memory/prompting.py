"""
Prompt Engineering - System prompt composition with memory injection

WHAT: Prompt templates and composition utilities for the memory agent
WHERE: agentic/runtime/memory/prompting.py - prompt generation layer
WHO: ConversationOrchestrator building the system message every turn
TIME: Prompt assembly <1ms

The system prompt has a single interpolation point: the current long-term
memory snapshot. It is rebuilt on every orchestrator invocation, so a memory
written during one turn is visible on the next.
"""

from __future__ import annotations

import threading
from typing import Optional

AGENT_CHAT_SYSTEM = (
    "You are a helpful, proactive AI assistant with persistent long-term memory.\n\n"
    "## Long-Term Memory (injected from previous sessions)\n"
    "{memories}\n\n"
    "## Guidelines\n"
    "- Use stored memories to personalise every response.\n"
    "- When the user shares something worth remembering (name, preferences, projects,\n"
    "  decisions), call `add_memory` to persist it for future sessions.\n"
    "- When you need specific recalled information, use `search_memory` to look it up.\n"
    "- Call `get_all_memories` when you need the complete list of what you know.\n"
    "- Be conversational, concise and helpful.\n"
)

GREETING_PROMPT = (
    "Before we begin, call get_all_memories to review everything you know "
    "about me, then give a short, friendly greeting that shows you remember "
    "relevant context. If no memories exist, just say hello."
)


def compose_system_prompt(memory_snapshot: str) -> str:
    return AGENT_CHAT_SYSTEM.format(memories=memory_snapshot.strip())


class FocusDirective:
    """A single pending hint, prepended once to the next user message."""

    def __init__(self) -> None:
        self._pending: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    def set(self, text: str) -> None:
        cleaned = (text or "").strip()
        with self._lock:
            self._pending = cleaned or None

    def clear(self) -> None:
        with self._lock:
            self._pending = None

    def apply(self, user_text: str) -> str:
        """Return ``user_text`` with the pending hint prepended, consuming it."""

        with self._lock:
            focus, self._pending = self._pending, None
        if not focus:
            return user_text
        return f"[Focus: {focus}] {user_text}"


__all__ = [
    "AGENT_CHAT_SYSTEM",
    "FocusDirective",
    "GREETING_PROMPT",
    "compose_system_prompt",
]

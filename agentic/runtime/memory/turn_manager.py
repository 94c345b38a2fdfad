"""
Turn Manager - Short-term conversation window

WHAT: Bounded FIFO view over the most recent conversation messages
WHERE: agentic/runtime/memory/turn_manager.py - orchestration subsystem
WHO: ConversationOrchestrator building the model context
TIME: Append O(1); window rebuild O(n) where n=window size

The window is derived from a session's full history: the session keeps every
message durably while the model only sees the newest ``max_turns`` entries.
Appending past the limit evicts the oldest entry.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, Iterable, List

from .models import Message

DEFAULT_WINDOW_SIZE = 20

# Roles carried over from history into the model context.
CONTEXT_ROLES = frozenset({"user", "assistant"})


class TurnManager:
    """Maintains the rolling short-term context."""

    def __init__(self, *, max_turns: int = DEFAULT_WINDOW_SIZE) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self._max_turns = max_turns
        self._turns: Deque[Message] = deque(maxlen=max_turns)

    @classmethod
    def from_history(cls, messages: Iterable[Message], *, max_turns: int = DEFAULT_WINDOW_SIZE) -> "TurnManager":
        manager = cls(max_turns=max_turns)
        manager.extend(m for m in messages if m.role in CONTEXT_ROLES)
        return manager

    @property
    def max_turns(self) -> int:
        return self._max_turns

    @property
    def turns(self) -> tuple[Message, ...]:
        return tuple(self._turns)

    def add_turn(self, message: Message) -> None:
        self._turns.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.add_turn(message)

    def to_api(self) -> List[Dict[str, Any]]:
        return [m.to_api() for m in self._turns]

    def summarize(self) -> Dict[str, Any]:
        """Return a lightweight summary used for telemetry and the console."""

        return {
            "turn_count": len(self._turns),
            "max_turns": self._max_turns,
            "roles": [t.role for t in self._turns],
        }

    def __len__(self) -> int:
        return len(self._turns)

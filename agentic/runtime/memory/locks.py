"""
Keyed Locks - per-entity serialization for shared stores

WHAT: Process-local registry of locks keyed by owner or (owner, session)
WHERE: agentic/runtime/memory/locks.py - concurrency helper
WHO: ChatService serializing turns per session
TIME: O(1) lock lookup

Stores do full-document load-modify-store. Serializing per entity removes lost
updates between concurrent requests touching the same session, while entries
themselves stay last-write-wins. Different keys never contend. An entry lives
only while some thread holds or waits on it, so the registry does not grow
with the number of sessions ever seen.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class KeyedLock:
    """Hands out one re-entrant lock per key, dropped once nobody uses it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["KeyedLock"]

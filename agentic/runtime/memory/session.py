"""
Chat Service - Session lifecycle around the orchestrator

WHAT: Resolves sessions and per-owner memory, runs turns, persists results
WHERE: agentic/runtime/memory/session.py - bridges orchestrator and storage
WHO: Web routes and the console REPL
TIME: Session load/save <10ms plus the orchestrator turn

Coordinates between ConversationOrchestrator (prompt building, tool loop) and
the stores. Sessions are saved only after a final reply was obtained; memory
mutations are written by the MemoryStore as the tools run. Turns on the same
(owner, session) are serialized in-process.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List

from .errors import LoopExceeded, NotFoundError, UpstreamApiError
from .locks import KeyedLock
from .memory_store import JsonMemoryStore, MemoryStore
from .models import ChatSession
from .orchestrator import ConversationOrchestrator, TurnResult
from .session_store import SessionStore

logger = logging.getLogger(__name__)

MemoryFactory = Callable[[str], MemoryStore]


def per_owner_memory(root: str | Path) -> MemoryFactory:
    """Factory giving each owner its own `{root}/{owner}_memory.json` store."""

    root_path = Path(root)
    root_path.mkdir(parents=True, exist_ok=True)
    return lambda owner: JsonMemoryStore.for_owner(root_path, owner)


def shared_memory(store: MemoryStore) -> MemoryFactory:
    """Factory returning one global store regardless of owner (single-user mode)."""

    return lambda owner: store


class _MemoryLease:
    __slots__ = ("store", "users")

    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.users = 0


class ChatService:
    """Runs conversation turns against a SessionStore and per-owner memory.

    One MemoryStore is cached per owner so that concurrent turns of the same
    owner mutate a single store. Stores not used by a running turn are evicted
    oldest first once more than ``max_cached_memories`` owners are cached.
    """

    def __init__(
        self,
        *,
        orchestrator: ConversationOrchestrator,
        session_store: SessionStore,
        memory_factory: MemoryFactory,
        locks: KeyedLock | None = None,
        max_cached_memories: int = 128,
    ) -> None:
        if max_cached_memories < 1:
            raise ValueError("max_cached_memories must be at least 1")
        self.orchestrator = orchestrator
        self.session_store = session_store
        self._memory_factory = memory_factory
        self._memories: "OrderedDict[str, _MemoryLease]" = OrderedDict()
        self._memories_guard = threading.Lock()
        self._max_cached_memories = max_cached_memories
        self._locks = locks or KeyedLock()

    @property
    def cached_memory_owners(self) -> List[str]:
        with self._memories_guard:
            return list(self._memories)

    def _lease_for(self, owner: str) -> _MemoryLease:
        lease = self._memories.get(owner)
        if lease is None:
            lease = _MemoryLease(self._memory_factory(owner))
            self._memories[owner] = lease
        else:
            self._memories.move_to_end(owner)
        return lease

    def _evict_idle(self) -> None:
        excess = len(self._memories) - self._max_cached_memories
        if excess <= 0:
            return
        idle = [owner for owner, lease in self._memories.items() if lease.users == 0]
        for owner in idle[:excess]:
            del self._memories[owner]

    def memory_for(self, owner: str) -> MemoryStore:
        with self._memories_guard:
            store = self._lease_for(owner).store
            self._evict_idle()
            return store

    @contextmanager
    def _memory_in_use(self, owner: str) -> Iterator[MemoryStore]:
        with self._memories_guard:
            lease = self._lease_for(owner)
            lease.users += 1
        try:
            yield lease.store
        finally:
            with self._memories_guard:
                lease.users -= 1
                self._evict_idle()

    # ---------------------- lifecycle ----------------------
    def create_session(self, owner: str, *, name: str | None = None, greet: bool = True) -> ChatSession:
        """Create and persist a session, then run the greeting turn.

        A failed greeting is logged and the empty session is still returned.
        """

        if name is not None:
            session = self.session_store.create_session(owner, name=name)  # type: ignore[call-arg]
        else:
            session = self.session_store.create_session(owner)
        if not greet:
            return session

        with self._locks.hold((session.owner, session.id)), self._memory_in_use(session.owner) as memory:
            try:
                result = self.orchestrator.greet(session, memory)
            except (UpstreamApiError, LoopExceeded) as exc:
                logger.warning(f"Greeting for session {session.id} failed: {exc}")
                return session
            if result.reply.strip():
                self.session_store.save(session)
        return session

    def list_sessions(self, owner: str) -> List[ChatSession]:
        return self.session_store.list_sessions(owner)

    def get_session(self, owner: str, session_id: str) -> ChatSession:
        session = self.session_store.get_session(owner, session_id)
        if session is None:
            raise NotFoundError(f"Session '{session_id}' not found.")
        return session

    # ---------------------- messaging ----------------------
    def send_message(self, owner: str, session_id: str, content: str) -> TurnResult:
        """Run one turn on a stored session and persist it when the turn succeeds."""

        with self._locks.hold((owner, session_id)):
            session = self.get_session(owner, session_id)
            with self._memory_in_use(session.owner) as memory:
                result = self.orchestrator.run_turn(session, content, memory)
            self.session_store.save(session)
        return result


__all__ = [
    "ChatService",
    "MemoryFactory",
    "per_owner_memory",
    "shared_memory",
]

"""
Session Store - Chat session registry and persistence

WHAT: Create, look up, list, and save chat sessions
WHERE: agentic/runtime/memory/session_store.py - session persistence layer
WHO: ChatService (web mode) and the console REPL
TIME: One small JSON file per session read/write

Two interchangeable implementations behind the SessionStore protocol:

- FileSessionStore: durable per-owner, per-session documents at
  {root}/{owner}/{session_id}.json; sessions survive restarts.
- InMemorySessionStore: in-process registry with a switchable "active"
  session (1-based index or case-insensitive name); nothing survives the run.

Saving is an idempotent whole-document overwrite.
"""

from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from .documents import read_document, write_document
from .errors import NotFoundError, StorageLoadError, ValidationError
from .models import ChatSession

logger = logging.getLogger(__name__)


def validate_identifier(value: str, *, field: str = "identifier") -> str:
    """Return the canonical form of a UUID-shaped token or raise ValidationError."""

    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must not be empty.")
    try:
        parsed = uuid.UUID(value.strip())
    except ValueError as exc:
        raise ValidationError(f"{field} '{value}' is not a well-formed identifier.") from exc
    return str(parsed)


class SessionStore(Protocol):
    """Abstract interface for session persistence."""

    def create_session(self, owner: str) -> ChatSession:
        """Create and persist an empty session."""

    def get_session(self, owner: str, session_id: str) -> Optional[ChatSession]:
        """Return the session or None when unknown."""

    def list_sessions(self, owner: str) -> List[ChatSession]:
        """All sessions of ``owner``, most recently updated first."""

    def save(self, session: ChatSession) -> None:
        """Overwrite the stored copy of ``session``."""


class FileSessionStore:
    """Durable per-owner session files."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _owner_dir(self, owner: str) -> Path:
        return self.root / validate_identifier(owner, field="owner")

    def _session_path(self, owner: str, session_id: str) -> Path:
        return self._owner_dir(owner) / f"{validate_identifier(session_id, field='session id')}.json"

    def _try_load(self, path: Path) -> Optional[ChatSession]:
        try:
            return ChatSession.from_doc(read_document(path))
        except (StorageLoadError, KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Ignoring unreadable session file {path}: {exc}")
            return None

    def create_session(self, owner: str) -> ChatSession:
        session = ChatSession(owner=validate_identifier(owner, field="owner"))
        self.save(session)
        logger.info(f"Created session {session.id} for owner {session.owner}")
        return session

    def get_session(self, owner: str, session_id: str) -> Optional[ChatSession]:
        path = self._session_path(owner, session_id)
        if not path.exists():
            return None
        return self._try_load(path)

    def list_sessions(self, owner: str) -> List[ChatSession]:
        owner_dir = self._owner_dir(owner)
        if not owner_dir.is_dir():
            return []
        sessions = [s for s in (self._try_load(p) for p in owner_dir.glob("*.json")) if s is not None]
        return sorted(sessions, key=lambda s: s.updated_at, reverse=True)

    def save(self, session: ChatSession) -> None:
        write_document(self._session_path(session.owner, session.id), session.to_doc())


class InMemorySessionStore:
    """Console-style registry with a named, switchable active session."""

    DEFAULT_NAME = "default"

    def __init__(self) -> None:
        self._sessions: List[ChatSession] = []
        self._by_id: Dict[str, ChatSession] = {}
        self._active: Optional[ChatSession] = None
        self._lock = threading.RLock()

    @property
    def sessions(self) -> tuple[ChatSession, ...]:
        return tuple(self._sessions)

    @property
    def active(self) -> Optional[ChatSession]:
        return self._active

    def create_session(self, owner: str, name: str | None = None) -> ChatSession:
        with self._lock:
            label = (name or "").strip()
            if not label:
                label = self.DEFAULT_NAME if not self._sessions else f"session-{len(self._sessions) + 1}"
            session = ChatSession(owner=owner, name=label)
            self._sessions.append(session)
            self._by_id[session.id] = session
            self._active = session
            return session

    def get_session(self, owner: str, session_id: str) -> Optional[ChatSession]:
        session = self._by_id.get(session_id)
        if session is None or session.owner != owner:
            return None
        return session

    def list_sessions(self, owner: str) -> List[ChatSession]:
        owned = [s for s in self._sessions if s.owner == owner]
        return sorted(owned, key=lambda s: s.updated_at, reverse=True)

    def save(self, session: ChatSession) -> None:
        with self._lock:
            if session.id not in self._by_id:
                self._sessions.append(session)
            self._by_id[session.id] = session

    def switch_to(self, token: str) -> ChatSession:
        """Activate a session by 1-based creation index or case-insensitive name.

        Raises NotFoundError and leaves the active session untouched when
        nothing matches.
        """

        target = (token or "").strip()
        with self._lock:
            found: Optional[ChatSession] = None
            if target.isdigit() and 1 <= int(target) <= len(self._sessions):
                found = self._sessions[int(target) - 1]
            else:
                folded = target.casefold()
                found = next((s for s in self._sessions if (s.name or "").casefold() == folded), None)

            if found is None:
                raise NotFoundError(f"No session matches '{target}'.")
            self._active = found
            return found


__all__ = [
    "FileSessionStore",
    "InMemorySessionStore",
    "SessionStore",
    "validate_identifier",
]

"""
Memory Store - Durable keyed long-term memory

WHAT: Case-insensitive keyed fact store backed by a single JSON document
WHERE: agentic/runtime/memory/memory_store.py - persistence for long-term memory
WHO: Memory tools (add/search/list) and the system-prompt builder
TIME: Load once at construction; full rewrite after each mutation

Provides a minimal MemoryStore interface with a JSON-file implementation. The
collection is loaded eagerly and rewritten wholesale after every mutation, no
append log and no partial writes. A missing or corrupt file yields an empty
store; construction never fails because of a bad file.

Entries are never deleted. Updating an entry keeps its creation timestamp.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from .documents import read_document, write_document
from .errors import StorageLoadError, ValidationError
from .models import MemoryEntry, utcnow

logger = logging.getLogger(__name__)

EMPTY_MEMORY_PLACEHOLDER = "(No long-term memories stored yet.)"


class MemoryStore(Protocol):
    """Abstract interface for long-term memory."""

    def add_or_update(self, key: str, content: str) -> str:
        """Insert or update (case-insensitive key); returns a confirmation sentence."""

    def search(self, query: str) -> List[MemoryEntry]:
        """Case-insensitive substring match on key or content; blank query returns all."""

    def get_all(self) -> List[MemoryEntry]:
        """All entries in insertion order."""

    def format_for_prompt(self) -> str:
        """Render entries as `- [key]: content` lines or a placeholder sentence."""


class JsonMemoryStore:
    """File-backed store; pass ``path=None`` for a purely in-process store."""

    def __init__(
        self,
        path: str | Path | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.path: Optional[Path] = Path(path) if path is not None else None
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: List[MemoryEntry] = self._load()

    @classmethod
    def for_owner(cls, root: str | Path, owner: str, **kwargs) -> "JsonMemoryStore":
        return cls(Path(root) / f"{owner}_memory.json", **kwargs)

    # ------------------ persistence ------------------
    def _load(self) -> List[MemoryEntry]:
        if self.path is None or not self.path.exists():
            return []
        try:
            raw = read_document(self.path)
            if not isinstance(raw, list):
                raise StorageLoadError(f"Expected a JSON array in '{self.path}'")
            return [MemoryEntry.from_doc(doc) for doc in raw]
        except (StorageLoadError, KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Failed to load memory file {self.path}: {exc}. Starting with empty memory.")
            return []

    def _save(self) -> None:
        if self.path is None:
            return
        write_document(self.path, [entry.to_doc() for entry in self._entries])

    # ------------------ operations ------------------
    def add_or_update(self, key: str, content: str) -> str:
        if not key or not key.strip():
            raise ValidationError("memory key must not be empty.")
        if not content or not content.strip():
            raise ValidationError("memory content must not be empty.")

        with self._lock:
            existing = self._find(key)
            now = self._clock()
            if existing is not None:
                existing.content = content
                existing.updated_at = now
                self._save()
                logger.info(f"Updated memory '{existing.key}'")
                return f"Memory '{key}' updated."

            self._entries.append(MemoryEntry(key=key, content=content, created_at=now, updated_at=now))
            self._save()
            logger.info(f"Added memory '{key}' ({len(self._entries)} total)")
            return f"Memory '{key}' added."

    def search(self, query: str) -> List[MemoryEntry]:
        with self._lock:
            if not query or not query.strip():
                return list(self._entries)
            return [entry for entry in self._entries if entry.matches(query)]

    def get_all(self) -> List[MemoryEntry]:
        with self._lock:
            return list(self._entries)

    def format_for_prompt(self) -> str:
        with self._lock:
            if not self._entries:
                return EMPTY_MEMORY_PLACEHOLDER
            return "\n".join(f"- [{entry.key}]: {entry.content}" for entry in self._entries)

    def _find(self, key: str) -> Optional[MemoryEntry]:
        folded = key.casefold()
        for entry in self._entries:
            if entry.key.casefold() == folded:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "EMPTY_MEMORY_PLACEHOLDER",
    "JsonMemoryStore",
    "MemoryStore",
]

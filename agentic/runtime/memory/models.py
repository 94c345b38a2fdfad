"""
Runtime Models - Type-safe data structures for memories and sessions

WHAT: Pydantic models for long-term memory entries, messages, and chat sessions
WHERE: agentic/runtime/memory/models.py - data layer
WHO: Stores persisting documents, orchestrator appending turns
TIME: Model validation <1ms

Documents are persisted with camelCase keys and ISO 8601 UTC timestamps:

- memory file: JSON array of {key, content, createdAt, updatedAt}
- session file: {id, owner, name, title, createdAt, updatedAt, turnCount, messages}

Message ordering inside a session is append-only. Titles are derived once from
the first user message and never change afterwards.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant", "tool"]

DEFAULT_TITLE = "New Session"
TITLE_MAX_CHARS = 60
TITLE_ELLIPSIS = "..."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def derive_title(text: str) -> str:
    """Return a session title for the first user message.

    Messages longer than 60 characters are cut to 57 characters plus "...".
    """
    if len(text) > TITLE_MAX_CHARS:
        return text[: TITLE_MAX_CHARS - len(TITLE_ELLIPSIS)] + TITLE_ELLIPSIS
    return text


class MemoryEntry(BaseModel):
    """A single long-term fact, unique per case-insensitive key."""

    key: str
    content: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def matches(self, query: str) -> bool:
        needle = query.casefold()
        return needle in self.key.casefold() or needle in self.content.casefold()

    def to_doc(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "content": self.content,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> MemoryEntry:
        return cls(
            key=doc["key"],
            content=doc["content"],
            created_at=_parse_ts(doc["createdAt"]),
            updated_at=_parse_ts(doc["updatedAt"]),
        )


class Message(BaseModel):
    """One chronological entry in a session's history."""

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    tool_call_id: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        """Render as a chat-completions message."""
        payload: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call_id:
            payload["tool_call_id"] = self.tool_call_id
        return payload

    def to_doc(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.tool_call_id:
            doc["toolCallId"] = self.tool_call_id
        return doc

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> Message:
        return cls(
            role=doc["role"],
            content=doc.get("content") or "",
            timestamp=_parse_ts(doc["timestamp"]),
            tool_call_id=doc.get("toolCallId"),
        )


class ChatSession(BaseModel):
    """A conversation owned by exactly one user (web) or process (console)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner: str
    name: Optional[str] = None
    title: str = DEFAULT_TITLE
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    turn_count: int = 0
    messages: List[Message] = Field(default_factory=list)

    @property
    def last_active_at(self) -> datetime:
        return self.updated_at

    @property
    def has_user_message(self) -> bool:
        return any(m.role == "user" for m in self.messages)

    def append(self, role: Role, content: str, *, timestamp: datetime | None = None) -> Message:
        message = Message(role=role, content=content, timestamp=timestamp or utcnow())
        self.messages.append(message)
        return message

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "updatedAt": self.updated_at.isoformat(),
            "messageCount": len(self.messages),
        }

    def to_doc(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "name": self.name,
            "title": self.title,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "turnCount": self.turn_count,
            "messages": [m.to_doc() for m in self.messages],
        }

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> ChatSession:
        return cls(
            id=doc["id"],
            owner=doc["owner"],
            name=doc.get("name"),
            title=doc.get("title") or DEFAULT_TITLE,
            created_at=_parse_ts(doc["createdAt"]),
            updated_at=_parse_ts(doc["updatedAt"]),
            turn_count=int(doc.get("turnCount", 0) or 0),
            messages=[Message.from_doc(m) for m in doc.get("messages", [])],
        )


__all__ = [
    "ChatSession",
    "DEFAULT_TITLE",
    "MemoryEntry",
    "Message",
    "Role",
    "derive_title",
    "utcnow",
]

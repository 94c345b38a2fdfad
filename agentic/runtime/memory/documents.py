"""
Document IO - whole-document JSON persistence helpers

WHAT: Read and atomically rewrite JSON documents on local disk
WHERE: agentic/runtime/memory/documents.py - used by memory and session stores
WHO: JsonMemoryStore, FileSessionStore
TIME: Single small-file read/write per call

Writes go to a sibling temp file which then replaces the target, so a reader
never observes a half-written document.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from .errors import StorageLoadError, StorageWriteError


def read_document(path: str | Path) -> Any:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise StorageLoadError(f"Cannot read '{p}': {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorageLoadError(f"Malformed JSON in '{p}': {exc}") from exc


def write_document(path: str | Path, payload: Any) -> None:
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=p.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, p)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise StorageWriteError(f"Cannot write '{p}': {exc}") from exc


__all__ = ["read_document", "write_document"]

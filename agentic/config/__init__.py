"""Configuration for the agentic chat runtime."""

from .factory import build_chat_service, build_session_store, console_memory  # noqa: F401
from .settings import AppSettings, resolve_backend  # noqa: F401

__all__ = [
    "AppSettings",
    "build_chat_service",
    "build_session_store",
    "console_memory",
    "resolve_backend",
]

"""HTTP surface for the agentic chat runtime."""

from .app import create_app, sessions_bp  # noqa: F401

__all__ = ["create_app", "sessions_bp"]

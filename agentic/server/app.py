"""Flask application factory and session routes for the chat service."""

from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Blueprint, Flask, current_app, g, jsonify, request

from agentic.config import AppSettings, build_chat_service
from agentic.logging import bind_request_context, clear_request_context
from agentic.runtime.memory.errors import (
    AgenticChatError,
    LoopExceeded,
    NotFoundError,
    StorageWriteError,
    UpstreamApiError,
    ValidationError,
)
from agentic.runtime.memory.session import ChatService
from agentic.runtime.memory.session_store import validate_identifier

logger = logging.getLogger(__name__)

SERVICE_KEY = "CHAT_SERVICE"

sessions_bp = Blueprint("sessions", __name__)


def _service() -> ChatService:
    return current_app.config[SERVICE_KEY]


def _error(code: str, message: str, status: int):
    return jsonify({"error": code, "message": message}), status


@sessions_bp.before_request
def _bind_log_context() -> None:
    args = request.view_args or {}
    g.log_keys = [key for key in ("owner", "session_id") if key in args]
    bind_request_context(**{key: args[key] for key in g.log_keys})


@sessions_bp.teardown_request
def _unbind_log_context(exc: Optional[BaseException]) -> None:
    clear_request_context(*getattr(g, "log_keys", ()))


@sessions_bp.errorhandler(ValidationError)
def _handle_validation(exc: ValidationError):
    return _error("validation_error", str(exc), 400)


@sessions_bp.errorhandler(NotFoundError)
def _handle_not_found(exc: NotFoundError):
    return _error("not_found", str(exc), 404)


@sessions_bp.errorhandler(LoopExceeded)
def _handle_loop_exceeded(exc: LoopExceeded):
    return _error("loop_exceeded", str(exc), 502)


@sessions_bp.errorhandler(UpstreamApiError)
def _handle_upstream(exc: UpstreamApiError):
    return _error("upstream_error", str(exc), 502)


@sessions_bp.errorhandler(StorageWriteError)
def _handle_storage(exc: StorageWriteError):
    logger.error(f"Storage write failed: {exc}")
    return _error("storage_error", "Failed to persist session state.", 500)


@sessions_bp.errorhandler(AgenticChatError)
def _handle_runtime(exc: AgenticChatError):
    logger.error(f"Unhandled runtime error: {exc}")
    return _error("runtime_error", str(exc), 500)


@sessions_bp.get("/sessions/<owner>")
def list_sessions(owner: str):
    owner = validate_identifier(owner, field="owner")
    return jsonify([session.summary() for session in _service().list_sessions(owner)])


@sessions_bp.post("/sessions/<owner>")
def create_session(owner: str):
    owner = validate_identifier(owner, field="owner")
    session = _service().create_session(owner)
    return jsonify(session.to_doc()), 201


@sessions_bp.get("/sessions/<owner>/<session_id>")
def get_session(owner: str, session_id: str):
    owner = validate_identifier(owner, field="owner")
    session_id = validate_identifier(session_id, field="session id")
    return jsonify(_service().get_session(owner, session_id).to_doc())


@sessions_bp.post("/sessions/<owner>/<session_id>/messages")
def send_message(owner: str, session_id: str):
    owner = validate_identifier(owner, field="owner")
    session_id = validate_identifier(session_id, field="session id")

    payload: Any = request.get_json(silent=True)
    content = payload.get("content") if isinstance(payload, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Request body must be a JSON object with a non-empty 'content' string.")

    result = _service().send_message(owner, session_id, content)
    return jsonify({"content": result.reply, "sessionTitle": result.session.title})


def create_app(settings: AppSettings | None = None, *, service: ChatService | None = None) -> Flask:
    """Create the Flask app; pass ``service`` to inject a pre-built ChatService."""

    app = Flask(__name__)
    if service is None:
        service = build_chat_service(settings or AppSettings.from_env())
    app.config[SERVICE_KEY] = service
    app.register_blueprint(sessions_bp)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


__all__ = ["create_app", "sessions_bp"]

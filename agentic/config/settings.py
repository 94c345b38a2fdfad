"""
Runtime Settings - Environment-driven configuration

WHAT: Dataclass settings for storage roots, loop limits, logging, and the
      completion backend
WHERE: agentic/config/settings.py - read once at process start
WHO: Web app factory and console script wiring the runtime together
TIME: Startup only

Backend selection follows a fixed priority:
1. AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY  (Azure OpenAI)
2. OPENAI_BASE_URL [+ OPENAI_API_KEY]           (any OpenAI-compatible endpoint)
3. OPENAI_API_KEY                               (OpenAI)
Absence of all three is a fatal configuration error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping, Optional

from agentic.runtime.memory.errors import ConfigurationError
from agentic.runtime.memory.model_client import ModelBackendConfig
from agentic.runtime.memory.orchestrator import OrchestratorConfig

SessionBackend = Literal["file", "memory"]

DEFAULT_MODEL = "gpt-4o"
DEFAULT_AZURE_API_VERSION = "2024-10-21"

MISSING_CREDENTIALS = (
    "No LLM credentials found. Set one of:\n"
    "  - AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY  (Azure OpenAI)\n"
    "  - OPENAI_BASE_URL [+ OPENAI_API_KEY]            (any OpenAI-compatible endpoint)\n"
    "  - OPENAI_API_KEY                                 (OpenAI)"
)


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _get_int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 0) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def resolve_backend(
    env: Mapping[str, str] | None = None,
    *,
    timeout: float = 60.0,
    max_retries: int = 3,
) -> ModelBackendConfig:
    """Pick the completion backend from credentials present in ``env``."""

    env = os.environ if env is None else env

    azure_endpoint = _get(env, "AZURE_OPENAI_ENDPOINT")
    azure_key = _get(env, "AZURE_OPENAI_API_KEY")
    if azure_endpoint and azure_key:
        return ModelBackendConfig(
            kind="azure",
            model=_get(env, "AZURE_OPENAI_DEPLOYMENT") or DEFAULT_MODEL,
            api_key=azure_key,
            azure_endpoint=azure_endpoint.rstrip("/"),
            api_version=_get(env, "AZURE_OPENAI_API_VERSION") or DEFAULT_AZURE_API_VERSION,
            timeout=timeout,
            max_retries=max_retries,
        )

    openai_key = _get(env, "OPENAI_API_KEY")
    model = _get(env, "OPENAI_MODEL") or DEFAULT_MODEL
    base_url = _get(env, "OPENAI_BASE_URL")
    if base_url:
        # Local servers often skip key validation; the SDK still wants a value.
        return ModelBackendConfig(
            kind="openai_compatible",
            model=model,
            api_key=openai_key or "none",
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            max_retries=max_retries,
        )

    if openai_key:
        return ModelBackendConfig(
            kind="openai",
            model=model,
            api_key=openai_key,
            timeout=timeout,
            max_retries=max_retries,
        )

    raise ConfigurationError(MISSING_CREDENTIALS)


@dataclass(slots=True)
class AppSettings:
    data_dir: Path = Path("data")
    session_backend: SessionBackend = "file"
    memory_file: Path = Path("memory.json")
    window_size: int = 20
    max_tool_iterations: int = 10
    request_timeout: float = 60.0
    max_retries: int = 3
    log_level: str = "INFO"
    log_format: str = "console"
    backend: Optional[ModelBackendConfig] = field(default=None, repr=False)

    @property
    def sessions_root(self) -> Path:
        return self.data_dir / "sessions"

    @property
    def memories_root(self) -> Path:
        return self.data_dir / "memories"

    def orchestrator_config(self) -> OrchestratorConfig:
        return OrchestratorConfig(window_size=self.window_size, max_iterations=self.max_tool_iterations)

    def require_backend(self) -> ModelBackendConfig:
        if self.backend is None:
            raise ConfigurationError(MISSING_CREDENTIALS)
        return self.backend

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, *, resolve_credentials: bool = True) -> "AppSettings":
        env = os.environ if env is None else env

        backend_name = (_get(env, "AGENTIC_SESSION_BACKEND") or "file").lower()
        if backend_name not in ("file", "memory"):
            raise ConfigurationError(f"AGENTIC_SESSION_BACKEND must be 'file' or 'memory', got '{backend_name}'")
        log_format = (_get(env, "AGENTIC_LOG_FORMAT") or "console").lower()
        if log_format not in ("console", "json"):
            raise ConfigurationError(f"AGENTIC_LOG_FORMAT must be 'console' or 'json', got '{log_format}'")

        timeout = _get_float(env, "AGENTIC_REQUEST_TIMEOUT", 60.0)
        max_retries = _get_int(env, "AGENTIC_MAX_RETRIES", 3)
        settings = cls(
            data_dir=Path(_get(env, "AGENTIC_DATA_DIR") or "data").expanduser(),
            session_backend=backend_name,  # type: ignore[arg-type]
            memory_file=Path(_get(env, "MEMORY_FILE_PATH") or "memory.json").expanduser(),
            window_size=_get_int(env, "AGENTIC_WINDOW_SIZE", 20, minimum=1),
            max_tool_iterations=_get_int(env, "AGENTIC_MAX_TOOL_ITERATIONS", 10, minimum=1),
            request_timeout=timeout,
            max_retries=max_retries,
            log_level=(_get(env, "AGENTIC_LOG_LEVEL") or "INFO").upper(),
            log_format=log_format,
        )
        if resolve_credentials:
            settings.backend = resolve_backend(env, timeout=timeout, max_retries=max_retries)
        return settings


__all__ = [
    "AppSettings",
    "DEFAULT_MODEL",
    "MISSING_CREDENTIALS",
    "resolve_backend",
]

"""
Telemetry - Timing spans for model calls and tool executions

WHAT: Span context managers plus pluggable sinks (discard, log, capture)
WHERE: agentic/runtime/memory/telemetry.py - observability layer
WHO: ConversationOrchestrator ("agent.model_complete") and
     ToolExecutor ("agent.tool_execute")
TIME: A perf_counter read on enter and exit; sinks run once per span

A span finishes with ``duration_ms`` and ``success`` set. When the wrapped block
raises, ``error`` holds the exception type name and the exception propagates.
Attributes bound on the client are merged into every span it emits.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

Attributes = Dict[str, Any]


class TelemetrySpan:
    """One timed block; mutate attributes with ``set_attribute`` while open."""

    def __init__(self, client: "TelemetryClient", name: str, attributes: Optional[Attributes] = None) -> None:
        self._client = client
        self.name = name
        self.attributes: Attributes = {**client.base_attributes, **(attributes or {})}
        self._started = 0.0

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def __enter__(self) -> "TelemetrySpan":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.attributes["duration_ms"] = round((time.perf_counter() - self._started) * 1000.0, 3)
        if exc_type is not None:
            self.attributes["success"] = False
            self.attributes["error"] = exc_type.__name__
        else:
            self.attributes.setdefault("success", True)
        self._client.emit_span(self.name, self.attributes)


class TelemetryClient:
    """Span factory; subclasses decide where finished spans go."""

    def __init__(self, **base_attributes: Any) -> None:
        self.base_attributes: Attributes = dict(base_attributes)

    def span(self, name: str, *, attributes: Optional[Attributes] = None) -> TelemetrySpan:
        return TelemetrySpan(self, name, attributes)

    def emit_span(self, name: str, attributes: Attributes) -> None:
        raise NotImplementedError


class NoOpTelemetryClient(TelemetryClient):
    """Discards spans. Default when no client is injected."""

    def emit_span(self, name: str, attributes: Attributes) -> None:
        return None


class LoggingTelemetryClient(TelemetryClient):
    """Writes each finished span to the runtime logger."""

    def __init__(self, level: int = logging.INFO, **base_attributes: Any) -> None:
        super().__init__(**base_attributes)
        self.level = level

    def emit_span(self, name: str, attributes: Attributes) -> None:
        fields = " ".join(f"{key}={attributes[key]}" for key in sorted(attributes))
        logger.log(self.level, f"span {name} {fields}")


class CaptureTelemetryClient(TelemetryClient):
    """Keeps finished spans in memory, for tests and ad-hoc inspection."""

    def __init__(self, **base_attributes: Any) -> None:
        super().__init__(**base_attributes)
        self.spans: List[Tuple[str, Attributes]] = []

    def emit_span(self, name: str, attributes: Attributes) -> None:
        self.spans.append((name, dict(attributes)))

    def names(self) -> List[str]:
        return [name for name, _ in self.spans]


__all__ = [
    "CaptureTelemetryClient",
    "LoggingTelemetryClient",
    "NoOpTelemetryClient",
    "TelemetryClient",
    "TelemetrySpan",
]

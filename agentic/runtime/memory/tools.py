"""
Memory Tools - Tool catalog and execution for model function calls

WHAT: Registry of callable memory tools plus a fault-isolating executor
WHERE: agentic/runtime/memory/tools.py - between orchestrator and MemoryStore
WHO: ConversationOrchestrator resolving tool calls emitted by the model
TIME: Tool execution <1ms plus one memory-file write for add_memory

Each tool is an explicit ToolSpec: name, JSON-schema parameters, and a handler
taking already-parsed string arguments. The executor parses the model's raw
JSON argument text, defaults missing fields to "", and converts every failure
into a "Tool error: ..." result so the model can see and correct its mistake.
Nothing raised inside a tool reaches the orchestrator.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .errors import AgenticChatError, ToolExecutionError
from .memory_store import MemoryStore
from .models import MemoryEntry
from .telemetry import NoOpTelemetryClient, TelemetryClient
from .templates.memory_tool_descriptions import TOOL_DESCRIPTIONS

logger = logging.getLogger(__name__)

NO_MATCHES = "No matching memories found."

ToolHandler = Callable[[Dict[str, str]], str]


@dataclass(slots=True, frozen=True)
class ToolSpec:
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: ToolHandler

    @property
    def argument_names(self) -> tuple[str, ...]:
        return tuple(self.parameters.get("properties", {}).keys())

    def to_api(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(slots=True)
class ToolResult:
    """Textual outcome of one tool call, always safe to hand back to the model."""

    name: str
    content: str
    ok: bool = True
    error: Optional[str] = None
    arguments: Dict[str, str] = field(default_factory=dict)
    raw_arguments: str = ""

    def trace_line(self) -> str:
        """One-line console echo: ``↳ [tool:name] <arguments as sent by the model>``."""

        line = f"↳ [tool:{self.name}] {self.raw_arguments or '{}'}"
        return line if self.ok else f"{line} -> {self.content}"


def _raw_text(raw: str | Mapping[str, Any] | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw.strip()
    return json.dumps(dict(raw), ensure_ascii=False)


def format_search_results(entries: Iterable[MemoryEntry]) -> str:
    lines = [f"[{entry.key}]: {entry.content}" for entry in entries]
    return "\n".join(lines) if lines else NO_MATCHES


def _add_memory(store: MemoryStore, args: Dict[str, str]) -> str:
    return store.add_or_update(args["key"], args["content"])


def _search_memory(store: MemoryStore, args: Dict[str, str]) -> str:
    return format_search_results(store.search(args["query"]))


def _get_all_memories(store: MemoryStore, args: Dict[str, str]) -> str:
    return store.format_for_prompt()


MEMORY_HANDLERS: Mapping[str, Callable[[MemoryStore, Dict[str, str]], str]] = {
    "add_memory": _add_memory,
    "search_memory": _search_memory,
    "get_all_memories": _get_all_memories,
}


class ToolRegistry:
    """Name -> ToolSpec map in declaration order."""

    def __init__(self, specs: Iterable[ToolSpec] = ()) -> None:
        self._tools: Dict[str, ToolSpec] = {}
        for spec in specs:
            self.register(spec)

    @classmethod
    def for_memory(cls, store: MemoryStore) -> "ToolRegistry":
        """Build the fixed memory catalog bound to ``store``."""

        specs = []
        for name, handler in MEMORY_HANDLERS.items():
            declared = TOOL_DESCRIPTIONS[name]
            specs.append(
                ToolSpec(
                    name=name,
                    description=declared["description"],
                    parameters=declared["parameters"],
                    handler=partial(handler, store),
                )
            )
        return cls(specs)

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool '{spec.name}' is already registered")
        self._tools[spec.name] = spec

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def definitions(self) -> List[Dict[str, Any]]:
        """Tool declarations in the chat-completions wire shape."""

        return [spec.to_api() for spec in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def parse_arguments(raw: str | Mapping[str, Any] | None, spec: ToolSpec) -> Dict[str, str]:
    """Decode a model argument payload into the declared string fields.

    Blank payloads mean "no arguments". Missing or null fields become "".
    """

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        payload: Any = {}
    elif isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ToolExecutionError(f"arguments are not valid JSON ({exc.msg})") from exc
    else:
        payload = raw

    if not isinstance(payload, Mapping):
        raise ToolExecutionError("arguments must be a JSON object")

    args: Dict[str, str] = {}
    for name in spec.argument_names:
        value = payload.get(name)
        if value is None:
            args[name] = ""
        elif isinstance(value, str):
            args[name] = value
        else:
            raise ToolExecutionError(f"argument '{name}' must be a string")
    return args


class ToolExecutor:
    """Runs tool calls against a registry, never raising."""

    def __init__(self, registry: ToolRegistry, *, telemetry: TelemetryClient | None = None) -> None:
        self.registry = registry
        self._telemetry = telemetry or NoOpTelemetryClient()

    def execute(self, name: str, raw_arguments: str | Mapping[str, Any] | None) -> ToolResult:
        raw_text = _raw_text(raw_arguments)
        spec = self.registry.get(name)
        if spec is None:
            logger.warning(f"Model requested unknown tool '{name}'")
            return ToolResult(
                name=name,
                content=f"Unknown tool: '{name}'.",
                ok=False,
                error="unknown_tool",
                raw_arguments=raw_text,
            )

        with self._telemetry.span("agent.tool_execute", attributes={"tool": name}) as span:
            try:
                args = parse_arguments(raw_arguments, spec)
                content = spec.handler(args)
            except AgenticChatError as exc:
                logger.info(f"Tool '{name}' failed: {exc}")
                result = ToolResult(
                    name=name, content=f"Tool error: {exc}", ok=False, error=type(exc).__name__, raw_arguments=raw_text
                )
            except Exception as exc:
                logger.exception(f"Unexpected failure in tool '{name}'")
                result = ToolResult(
                    name=name, content=f"Tool error: {exc}", ok=False, error=type(exc).__name__, raw_arguments=raw_text
                )
            else:
                result = ToolResult(name=name, content=content, arguments=args, raw_arguments=raw_text)
            span.set_attribute("success", result.ok)
            span.set_attribute("result_chars", len(result.content))
        return result


__all__ = [
    "NO_MATCHES",
    "ToolExecutor",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "format_search_results",
    "parse_arguments",
]

"""
Conversation Orchestrator - Central Coordination Point

WHAT: Drives request -> model -> tool calls -> model ... -> final reply
WHERE: agentic/runtime/memory/orchestrator.py - top of the runtime stack
WHO: ChatService (web and console) running one user turn at a time
TIME: One completion round trip per loop iteration, tools <1ms each

State machine per turn:

    ASSEMBLING_REQUEST -> AWAITING_MODEL -> (EXECUTING_TOOLS -> AWAITING_MODEL)* -> DONE

The request is [system prompt with memory snapshot] + short-term window + new
user message. Tool calls of one response run sequentially in the order given
and their results are appended in the same order. The loop is capped at
``max_iterations`` model invocations and raises LoopExceeded past that.

The session object is only mutated once a final reply exists, so a failed
turn leaves both the in-memory and the persisted session untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .errors import LoopExceeded, ValidationError
from .memory_store import MemoryStore
from .model_client import CompletionBackend
from .models import ChatSession, derive_title, utcnow
from .prompting import GREETING_PROMPT, FocusDirective, compose_system_prompt
from .telemetry import NoOpTelemetryClient, TelemetryClient
from .tools import ToolExecutor, ToolRegistry, ToolResult
from .turn_manager import DEFAULT_WINDOW_SIZE, TurnManager

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    ASSEMBLING_REQUEST = "assembling_request"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


@dataclass(slots=True)
class OrchestratorConfig:
    window_size: int = DEFAULT_WINDOW_SIZE
    max_iterations: int = 10
    tool_choice: str = "auto"


@dataclass(slots=True)
class PromptEnvelope:
    """Encapsulates a prepared request: messages plus the tool catalog."""

    messages: List[Dict[str, Any]]
    tools: List[Dict[str, Any]]
    user_text: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class LoopOutcome:
    reply: str
    iterations: int
    tool_results: List[ToolResult] = field(default_factory=list)


@dataclass(slots=True)
class TurnResult:
    reply: str
    session: ChatSession
    iterations: int
    tool_results: List[ToolResult] = field(default_factory=list)

    @property
    def memory_mutated(self) -> bool:
        return any(r.ok and r.name == "add_memory" for r in self.tool_results)


class ConversationOrchestrator:
    """Facade that coordinates prompt assembly, the tool loop, and session updates."""

    def __init__(
        self,
        *,
        client: CompletionBackend,
        config: OrchestratorConfig | None = None,
        telemetry: TelemetryClient | None = None,
        focus: FocusDirective | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._client = client
        self._config = config or OrchestratorConfig()
        if self._config.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._telemetry = telemetry or NoOpTelemetryClient()
        self._focus = focus or FocusDirective()
        self._clock = clock

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    @property
    def focus(self) -> FocusDirective:
        return self._focus

    @property
    def telemetry(self) -> TelemetryClient:
        return self._telemetry

    # ---------------------- assembly ----------------------
    def build_window(self, session: ChatSession) -> TurnManager:
        return TurnManager.from_history(session.messages, max_turns=self._config.window_size)

    def prepare_envelope(
        self,
        session: ChatSession,
        user_text: str,
        registry: ToolRegistry,
        memory: MemoryStore,
    ) -> PromptEnvelope:
        system = {"role": "system", "content": compose_system_prompt(memory.format_for_prompt())}
        window = self.build_window(session)
        messages = [system, *window.to_api(), {"role": "user", "content": user_text}]
        return PromptEnvelope(
            messages=messages,
            tools=registry.definitions(),
            user_text=user_text,
            metadata={"session_id": session.id, "window": len(window)},
        )

    # ---------------------- loop ----------------------
    def _transition(self, current: LoopState, target: LoopState, **details: Any) -> LoopState:
        logger.debug(f"agent loop {current.value} -> {target.value} {details}")
        return target

    def run_loop(self, envelope: PromptEnvelope, executor: ToolExecutor) -> LoopOutcome:
        """Call the model until it stops requesting tools; return the final text."""

        messages = list(envelope.messages)
        tool_results: List[ToolResult] = []
        state = self._transition(LoopState.ASSEMBLING_REQUEST, LoopState.AWAITING_MODEL)
        iterations = 0

        while True:
            if iterations >= self._config.max_iterations:
                logger.error(f"Agent loop aborted after {iterations} model invocations")
                raise LoopExceeded(iterations)
            iterations += 1

            with self._telemetry.span(
                "agent.model_complete",
                attributes={**envelope.metadata, "iteration": iterations, "message_count": len(messages)},
            ) as span:
                completion = self._client.complete(
                    messages,
                    tools=envelope.tools,
                    tool_choice=self._config.tool_choice,
                )
                span.set_attribute("finish_reason", completion.finish_reason)
                span.set_attribute("tool_calls", len(completion.tool_calls))

            if not completion.requests_tools:
                self._transition(state, LoopState.DONE, iterations=iterations)
                return LoopOutcome(
                    reply=completion.content or "",
                    iterations=iterations,
                    tool_results=tool_results,
                )

            state = self._transition(state, LoopState.EXECUTING_TOOLS, calls=len(completion.tool_calls))
            messages.append(completion.to_message())
            for call in completion.tool_calls:
                result = executor.execute(call.name, call.arguments)
                tool_results.append(result)
                messages.append({"role": "tool", "tool_call_id": call.id, "content": result.content})
            state = self._transition(state, LoopState.AWAITING_MODEL)

    # ---------------------- turns ----------------------
    def _executor_for(self, memory: MemoryStore) -> tuple[ToolRegistry, ToolExecutor]:
        registry = ToolRegistry.for_memory(memory)
        return registry, ToolExecutor(registry, telemetry=self._telemetry)

    def run_turn(self, session: ChatSession, user_text: str, memory: MemoryStore) -> TurnResult:
        """Run one user turn and, on success, append it to ``session``."""

        if not user_text or not user_text.strip():
            raise ValidationError("message content must not be empty.")

        registry, executor = self._executor_for(memory)
        envelope = self.prepare_envelope(session, self._focus.apply(user_text), registry, memory)
        outcome = self.run_loop(envelope, executor)

        now = self._clock()
        first_user_message = not session.has_user_message
        session.append("user", user_text, timestamp=now)
        session.append("assistant", outcome.reply, timestamp=now)
        if first_user_message:
            session.title = derive_title(user_text)
        session.turn_count += 1
        session.updated_at = now

        logger.info(
            f"Session {session.id} turn {session.turn_count} completed in "
            f"{outcome.iterations} model call(s), {len(outcome.tool_results)} tool call(s)"
        )
        return TurnResult(
            reply=outcome.reply,
            session=session,
            iterations=outcome.iterations,
            tool_results=outcome.tool_results,
        )

    def greet(self, session: ChatSession, memory: MemoryStore) -> TurnResult:
        """Run the hidden context-loading turn and store a non-blank greeting.

        Only the assistant greeting is kept in history; the instruction itself
        is not, and neither the title nor the turn count change.
        """

        registry, executor = self._executor_for(memory)
        system = {"role": "system", "content": compose_system_prompt(memory.format_for_prompt())}
        envelope = PromptEnvelope(
            messages=[system, {"role": "user", "content": GREETING_PROMPT}],
            tools=registry.definitions(),
            user_text=GREETING_PROMPT,
            metadata={"session_id": session.id, "greeting": True},
        )
        outcome = self.run_loop(envelope, executor)

        if outcome.reply.strip():
            now = self._clock()
            session.append("assistant", outcome.reply, timestamp=now)
            session.updated_at = now
        return TurnResult(
            reply=outcome.reply,
            session=session,
            iterations=outcome.iterations,
            tool_results=outcome.tool_results,
        )


__all__ = [
    "ConversationOrchestrator",
    "LoopOutcome",
    "LoopState",
    "OrchestratorConfig",
    "PromptEnvelope",
    "TurnResult",
]

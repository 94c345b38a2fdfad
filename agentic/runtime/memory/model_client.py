"""
Model Client - Chat-completions interface for the agent loop

WHAT: Thin wrapper over the OpenAI SDK (OpenAI, Azure OpenAI, or any
      OpenAI-compatible server) returning normalized completions
WHERE: agentic/runtime/memory/model_client.py - network edge of the runtime
WHO: ConversationOrchestrator, once per loop iteration
TIME: Network bound; request timeout and bounded retries set on the SDK client

The client is constructed once and injected into the orchestrator. Request
timeouts and retry-with-backoff are handled by the SDK client (`timeout`,
`max_retries`); whatever still fails surfaces as UpstreamApiError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Protocol, Sequence

import openai

from .errors import UpstreamApiError

logger = logging.getLogger(__name__)

BackendKind = Literal["azure", "openai_compatible", "openai"]

TOOL_CALLS_FINISH_REASON = "tool_calls"


@dataclass(slots=True)
class ModelBackendConfig:
    """Connection settings for the completion endpoint."""

    kind: BackendKind
    model: str = "gpt-4o"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    azure_endpoint: Optional[str] = None
    api_version: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = 3

    def client_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "api_key": self.api_key,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
        }
        if self.kind == "azure":
            kwargs["azure_endpoint"] = self.azure_endpoint
            kwargs["api_version"] = self.api_version
        elif self.kind == "openai_compatible":
            kwargs["base_url"] = self.base_url
        return kwargs


@dataclass(slots=True)
class ToolCall:
    id: str
    name: str
    arguments: str = ""

    def to_api(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(slots=True)
class Completion:
    """Normalized first choice of a chat-completions response."""

    finish_reason: Optional[str]
    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)

    @property
    def requests_tools(self) -> bool:
        return self.finish_reason == TOOL_CALLS_FINISH_REASON

    def to_message(self) -> Dict[str, Any]:
        """The assistant message as it must be echoed back in the next request."""

        message: Dict[str, Any] = {"role": "assistant", "content": self.content or ""}
        if self.tool_calls:
            message["tool_calls"] = [call.to_api() for call in self.tool_calls]
        return message


class CompletionBackend(Protocol):
    """Anything able to run one chat-completions request."""

    def complete(
        self,
        messages: Sequence[Dict[str, Any]],
        *,
        tools: Sequence[Dict[str, Any]],
        tool_choice: str = "auto",
    ) -> Completion:
        ...


class OpenAIChatClient:
    """Completion backend built on the official ``openai`` SDK."""

    def __init__(self, config: ModelBackendConfig, *, client: Any | None = None) -> None:
        self.config = config
        self._client = client or self._build_client(config)

    @staticmethod
    def _build_client(config: ModelBackendConfig) -> Any:
        kwargs = config.client_kwargs()
        if config.kind == "azure":
            return openai.AzureOpenAI(**kwargs)
        return openai.OpenAI(**kwargs)

    @property
    def model(self) -> str:
        return self.config.model

    def complete(
        self,
        messages: Sequence[Dict[str, Any]],
        *,
        tools: Sequence[Dict[str, Any]],
        tool_choice: str = "auto",
    ) -> Completion:
        request: Dict[str, Any] = {"model": self.config.model, "messages": list(messages)}
        if tools:
            request["tools"] = list(tools)
            request["tool_choice"] = tool_choice
        try:
            response = self._client.chat.completions.create(**request)
        except openai.APIError as exc:
            logger.error(f"Completion request to {self.config.kind} backend failed: {exc}")
            raise UpstreamApiError(f"Completion request failed: {exc}") from exc

        if not response.choices:
            raise UpstreamApiError("Completion response contained no choices")
        return self._normalize(response.choices[0])

    @staticmethod
    def _normalize(choice: Any) -> Completion:
        message = choice.message
        calls = [
            ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "")
            for call in (message.tool_calls or [])
        ]
        return Completion(finish_reason=choice.finish_reason, content=message.content, tool_calls=calls)


__all__ = [
    "BackendKind",
    "Completion",
    "CompletionBackend",
    "ModelBackendConfig",
    "OpenAIChatClient",
    "TOOL_CALLS_FINISH_REASON",
    "ToolCall",
]

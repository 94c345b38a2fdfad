import pytest

from agentic.runtime.memory.errors import LoopExceeded, UpstreamApiError, ValidationError
from agentic.runtime.memory.memory_store import JsonMemoryStore
from agentic.runtime.memory.model_client import Completion, ToolCall
from agentic.runtime.memory.models import DEFAULT_TITLE, ChatSession, derive_title
from agentic.runtime.memory.orchestrator import ConversationOrchestrator, OrchestratorConfig
from agentic.runtime.memory.prompting import GREETING_PROMPT, FocusDirective
from agentic.runtime.memory.telemetry import CaptureTelemetryClient


class ScriptedBackend:
    """Replays canned completions and records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def complete(self, messages, *, tools, tool_choice="auto"):
        self.requests.append({"messages": [dict(m) for m in messages], "tools": list(tools), "tool_choice": tool_choice})
        if self.responses:
            return self.responses.pop(0)
        return Completion(finish_reason="stop", content="ok")


class FailingBackend:
    def complete(self, messages, *, tools, tool_choice="auto"):
        raise UpstreamApiError("service unavailable")


def reply(text):
    return Completion(finish_reason="stop", content=text)


def tool_call(name, arguments="", call_id="call_1"):
    return Completion(finish_reason="tool_calls", tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)])


def test_plain_turn_appends_both_messages_and_sets_title():
    backend = ScriptedBackend(reply("Hi! How can I help?"))
    orchestrator = ConversationOrchestrator(client=backend)
    session = ChatSession(owner="o")

    result = orchestrator.run_turn(session, "Hello there", JsonMemoryStore())

    assert result.reply == "Hi! How can I help?"
    assert [(m.role, m.content) for m in session.messages] == [
        ("user", "Hello there"),
        ("assistant", "Hi! How can I help?"),
    ]
    assert session.turn_count == 1
    assert session.title == "Hello there"
    assert session.title != DEFAULT_TITLE

    request = backend.requests[0]
    assert request["messages"][0]["role"] == "system"
    assert request["messages"][-1] == {"role": "user", "content": "Hello there"}
    assert request["tool_choice"] == "auto"
    assert [t["function"]["name"] for t in request["tools"]] == ["add_memory", "search_memory", "get_all_memories"]


def test_get_all_memories_call_yields_one_tool_message_then_one_more_call():
    memory = JsonMemoryStore()
    memory.add_or_update("user_name", "Alice")
    backend = ScriptedBackend(tool_call("get_all_memories"), reply("You are Alice."))
    orchestrator = ConversationOrchestrator(client=backend)
    session = ChatSession(owner="o")

    result = orchestrator.run_turn(session, "Who am I?", memory)

    assert len(backend.requests) == 2
    follow_up = backend.requests[1]["messages"]
    tool_messages = [m for m in follow_up if m["role"] == "tool"]
    assert tool_messages == [{"role": "tool", "tool_call_id": "call_1", "content": memory.format_for_prompt()}]
    assert follow_up[-2]["role"] == "assistant"
    assert follow_up[-2]["tool_calls"][0]["function"]["name"] == "get_all_memories"
    assert result.reply == "You are Alice."
    assert [m.role for m in session.messages] == ["user", "assistant"]


def test_multiple_calls_run_in_order():
    memory = JsonMemoryStore()
    both = Completion(
        finish_reason="tool_calls",
        tool_calls=[
            ToolCall(id="a", name="add_memory", arguments='{"key": "city", "content": "Lisbon"}'),
            ToolCall(id="b", name="search_memory", arguments='{"query": "lisbon"}'),
        ],
    )
    backend = ScriptedBackend(both, reply("Noted."))
    result = ConversationOrchestrator(client=backend).run_turn(ChatSession(owner="o"), "I live in Lisbon", memory)

    tools = [m for m in backend.requests[1]["messages"] if m["role"] == "tool"]
    assert [m["tool_call_id"] for m in tools] == ["a", "b"]
    assert tools[1]["content"] == "[city]: Lisbon"
    assert result.memory_mutated


def test_memory_written_during_turn_is_in_next_system_prompt():
    memory = JsonMemoryStore()
    backend = ScriptedBackend(
        tool_call("add_memory", '{"key": "user_name", "content": "Alice"}'),
        reply("Nice to meet you."),
        reply("Hello Alice."),
    )
    orchestrator = ConversationOrchestrator(client=backend)
    session = ChatSession(owner="o")

    orchestrator.run_turn(session, "My name is Alice", memory)
    orchestrator.run_turn(session, "Hi again", memory)

    assert "- [user_name]: Alice" in backend.requests[2]["messages"][0]["content"]


def test_window_limits_history_sent_to_model():
    session = ChatSession(owner="o")
    for i in range(30):
        session.append("user" if i % 2 == 0 else "assistant", f"m{i}")
    backend = ScriptedBackend(reply("ok"))

    ConversationOrchestrator(client=backend).run_turn(session, "latest", JsonMemoryStore())

    sent = backend.requests[0]["messages"]
    assert len(sent) == 1 + 20 + 1
    assert sent[1]["content"] == "m10"
    assert len(session.messages) == 32


def test_loop_cap_raises_and_leaves_session_untouched():
    backend = ScriptedBackend(*[tool_call("get_all_memories") for _ in range(5)])
    orchestrator = ConversationOrchestrator(client=backend, config=OrchestratorConfig(max_iterations=3))
    session = ChatSession(owner="o")

    with pytest.raises(LoopExceeded):
        orchestrator.run_turn(session, "loop forever", JsonMemoryStore())

    assert len(backend.requests) == 3
    assert session.messages == []
    assert session.turn_count == 0
    assert session.title == DEFAULT_TITLE


def test_upstream_failure_leaves_session_untouched():
    session = ChatSession(owner="o")
    with pytest.raises(UpstreamApiError):
        ConversationOrchestrator(client=FailingBackend()).run_turn(session, "hello", JsonMemoryStore())
    assert session.messages == []


def test_blank_message_rejected_before_model_call():
    backend = ScriptedBackend()
    with pytest.raises(ValidationError):
        ConversationOrchestrator(client=backend).run_turn(ChatSession(owner="o"), "   ", JsonMemoryStore())
    assert backend.requests == []


def test_null_content_becomes_empty_reply():
    backend = ScriptedBackend(Completion(finish_reason="stop", content=None))
    result = ConversationOrchestrator(client=backend).run_turn(ChatSession(owner="o"), "hi", JsonMemoryStore())
    assert result.reply == ""


def test_title_is_only_set_from_first_user_message():
    backend = ScriptedBackend(reply("a"), reply("b"))
    orchestrator = ConversationOrchestrator(client=backend)
    session = ChatSession(owner="o")

    orchestrator.run_turn(session, "first topic", JsonMemoryStore())
    orchestrator.run_turn(session, "second topic", JsonMemoryStore())

    assert session.title == "first topic"
    assert session.turn_count == 2


def test_derive_title_boundaries():
    exact = "x" * 60
    assert derive_title(exact) == exact

    long = "y" * 61
    title = derive_title(long)
    assert title == "y" * 57 + "..."
    assert len(title) == 60


def test_focus_hint_reaches_model_but_not_history():
    focus = FocusDirective()
    focus.set("answer in French")
    backend = ScriptedBackend(reply("Bonjour"), reply("Salut"))
    orchestrator = ConversationOrchestrator(client=backend, focus=focus)
    session = ChatSession(owner="o")

    orchestrator.run_turn(session, "hello", JsonMemoryStore())
    orchestrator.run_turn(session, "again", JsonMemoryStore())

    assert backend.requests[0]["messages"][-1]["content"] == "[Focus: answer in French] hello"
    assert backend.requests[1]["messages"][-1]["content"] == "again"
    assert session.messages[0].content == "hello"
    assert session.title == "hello"


def test_greeting_appends_assistant_message_only():
    memory = JsonMemoryStore()
    backend = ScriptedBackend(tool_call("get_all_memories"), reply("Hello! Nice to meet you."))
    session = ChatSession(owner="o")

    result = ConversationOrchestrator(client=backend).greet(session, memory)

    assert result.reply == "Hello! Nice to meet you."
    assert backend.requests[0]["messages"][1] == {"role": "user", "content": GREETING_PROMPT}
    assert [(m.role, m.content) for m in session.messages] == [("assistant", "Hello! Nice to meet you.")]
    assert session.turn_count == 0
    assert session.title == DEFAULT_TITLE


def test_blank_greeting_is_not_stored():
    session = ChatSession(owner="o")
    ConversationOrchestrator(client=ScriptedBackend(reply("  "))).greet(session, JsonMemoryStore())
    assert session.messages == []


def test_orchestrator_emits_telemetry():
    telemetry = CaptureTelemetryClient()
    backend = ScriptedBackend(tool_call("get_all_memories"), reply("done"))
    orchestrator = ConversationOrchestrator(client=backend, telemetry=telemetry)

    orchestrator.run_turn(ChatSession(owner="o"), "probe", JsonMemoryStore())

    assert telemetry.names() == ["agent.model_complete", "agent.tool_execute", "agent.model_complete"]
    name, attrs = telemetry.spans[0]
    assert attrs["success"] is True
    assert attrs["finish_reason"] == "tool_calls"
    assert "duration_ms" in attrs


def test_orchestrator_rejects_zero_iterations():
    with pytest.raises(ValueError):
        ConversationOrchestrator(client=ScriptedBackend(), config=OrchestratorConfig(max_iterations=0))


def test_model_span_carries_envelope_metadata():
    telemetry = CaptureTelemetryClient()
    session = ChatSession(owner="o")
    session.append("user", "earlier")
    session.append("assistant", "reply")
    orchestrator = ConversationOrchestrator(client=ScriptedBackend(reply("ok")), telemetry=telemetry)

    orchestrator.run_turn(session, "now", JsonMemoryStore())
    orchestrator.greet(session, JsonMemoryStore())

    turn_attrs, greet_attrs = (attrs for _, attrs in telemetry.spans)
    assert turn_attrs["session_id"] == session.id
    assert turn_attrs["window"] == 2
    assert turn_attrs["iteration"] == 1
    assert greet_attrs["greeting"] is True


def test_tool_results_are_reported_in_call_order():
    backend = ScriptedBackend(
        tool_call("add_memory", '{"key": "pet", "content": "cat"}', call_id="a"),
        tool_call("search_memory", '{"query": "cat"}', call_id="b"),
        reply("done"),
    )
    result = ConversationOrchestrator(client=backend).run_turn(ChatSession(owner="o"), "I have a cat", JsonMemoryStore())

    assert [r.trace_line() for r in result.tool_results] == [
        '↳ [tool:add_memory] {"key": "pet", "content": "cat"}',
        '↳ [tool:search_memory] {"query": "cat"}',
    ]

import json
import threading
import uuid

import pytest

from agentic.runtime.memory.errors import LoopExceeded, NotFoundError, UpstreamApiError
from agentic.runtime.memory.memory_store import JsonMemoryStore
from agentic.runtime.memory.model_client import Completion, ToolCall
from agentic.runtime.memory.orchestrator import ConversationOrchestrator, OrchestratorConfig
from agentic.runtime.memory.session import ChatService, per_owner_memory, shared_memory
from agentic.runtime.memory.session_store import FileSessionStore, InMemorySessionStore

OWNER = str(uuid.uuid4())


class ScriptedBackend:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def complete(self, messages, *, tools, tool_choice="auto"):
        self.requests.append([dict(m) for m in messages])
        if not self.responses:
            return Completion(finish_reason="stop", content="ok")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def reply(text):
    return Completion(finish_reason="stop", content=text)


def make_service(tmp_path, backend, **config):
    return ChatService(
        orchestrator=ConversationOrchestrator(client=backend, config=OrchestratorConfig(**config)),
        session_store=FileSessionStore(tmp_path / "sessions"),
        memory_factory=per_owner_memory(tmp_path / "memories"),
    )


def test_create_send_and_reload(tmp_path):
    backend = ScriptedBackend(reply("Hello! What shall we do?"), reply("General Kenobi."))
    service = make_service(tmp_path, backend)

    session = service.create_session(OWNER)
    assert [m.role for m in session.messages] == ["assistant"]

    result = service.send_message(OWNER, session.id, "Hello there")
    assert result.reply == "General Kenobi."

    # A fresh service over the same directories sees the persisted turn.
    reloaded = make_service(tmp_path, ScriptedBackend()).get_session(OWNER, session.id)
    assert [(m.role, m.content) for m in reloaded.messages][-2:] == [
        ("user", "Hello there"),
        ("assistant", "General Kenobi."),
    ]
    assert reloaded.turn_count == 1
    assert reloaded.title == "Hello there"


def test_memory_mutation_persists_to_owner_file(tmp_path):
    add = Completion(
        finish_reason="tool_calls",
        tool_calls=[ToolCall(id="c1", name="add_memory", arguments='{"key": "user_name", "content": "Alice"}')],
    )
    service = make_service(tmp_path, ScriptedBackend(reply("Hi"), add, reply("Got it, Alice.")))
    session = service.create_session(OWNER)

    result = service.send_message(OWNER, session.id, "My name is Alice")

    assert result.memory_mutated
    doc = json.loads((tmp_path / "memories" / f"{OWNER}_memory.json").read_text(encoding="utf-8"))
    assert [(d["key"], d["content"]) for d in doc] == [("user_name", "Alice")]


def test_owners_do_not_share_memory(tmp_path):
    service = make_service(tmp_path, ScriptedBackend())
    other = str(uuid.uuid4())
    service.memory_for(OWNER).add_or_update("k", "v")

    assert service.memory_for(OWNER) is service.memory_for(OWNER)
    assert len(service.memory_for(other)) == 0


def test_unknown_session_raises_not_found(tmp_path):
    service = make_service(tmp_path, ScriptedBackend())
    with pytest.raises(NotFoundError):
        service.send_message(OWNER, str(uuid.uuid4()), "hello")


def test_failed_turn_is_not_persisted(tmp_path):
    backend = ScriptedBackend(reply("Hi"), UpstreamApiError("timeout"))
    service = make_service(tmp_path, backend)
    session = service.create_session(OWNER)

    with pytest.raises(UpstreamApiError):
        service.send_message(OWNER, session.id, "hello")

    stored = service.get_session(OWNER, session.id)
    assert [m.role for m in stored.messages] == ["assistant"]
    assert stored.turn_count == 0


def test_loop_exceeded_is_not_persisted(tmp_path):
    calls = [
        Completion(finish_reason="tool_calls", tool_calls=[ToolCall(id=f"c{i}", name="get_all_memories")])
        for i in range(3)
    ]
    service = make_service(tmp_path, ScriptedBackend(reply("Hi"), *calls), max_iterations=2)
    session = service.create_session(OWNER)

    with pytest.raises(LoopExceeded):
        service.send_message(OWNER, session.id, "hello")
    assert service.get_session(OWNER, session.id).turn_count == 0


def test_failed_greeting_still_returns_session(tmp_path):
    service = make_service(tmp_path, ScriptedBackend(UpstreamApiError("down")))
    session = service.create_session(OWNER)

    assert session.messages == []
    assert [s.id for s in service.list_sessions(OWNER)] == [session.id]


def test_shared_memory_for_console_mode():
    memory = JsonMemoryStore()
    store = InMemorySessionStore()
    service = ChatService(
        orchestrator=ConversationOrchestrator(client=ScriptedBackend(reply("Hey"))),
        session_store=store,
        memory_factory=shared_memory(memory),
    )

    session = service.create_session("console", name="Work")
    assert store.active is session
    assert session.name == "Work"
    assert session.messages[0].content == "Hey"
    assert service.memory_for("anyone") is memory


class GatedBackend:
    """Blocks the first completion until ``release`` is set."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = 0
        self._count_lock = threading.Lock()

    def complete(self, messages, *, tools, tool_choice="auto"):
        with self._count_lock:
            self.calls += 1
            first = self.calls == 1
        if first:
            self.entered.set()
            self.release.wait(timeout=5)
        return Completion(finish_reason="stop", content=f"reply to {messages[-1]['content']}")


def test_concurrent_turns_on_one_session_are_serialized(tmp_path):
    backend = GatedBackend()
    service = make_service(tmp_path, backend)
    session = service.create_session(OWNER, greet=False)
    errors = []

    def send(text):
        try:
            service.send_message(OWNER, session.id, text)
        except Exception as exc:
            errors.append(exc)

    first = threading.Thread(target=send, args=("one",))
    first.start()
    assert backend.entered.wait(timeout=5)

    second = threading.Thread(target=send, args=("two",))
    second.start()
    second.join(timeout=0.2)
    assert second.is_alive()
    assert backend.calls == 1

    backend.release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert errors == []
    doc = json.loads((tmp_path / "sessions" / OWNER / f"{session.id}.json").read_text(encoding="utf-8"))
    assert [m["content"] for m in doc["messages"]] == ["one", "reply to one", "two", "reply to two"]
    assert doc["turnCount"] == 2


def test_idle_owner_memories_are_evicted():
    built = []

    def factory(owner):
        built.append(owner)
        return JsonMemoryStore()

    service = ChatService(
        orchestrator=ConversationOrchestrator(client=ScriptedBackend()),
        session_store=InMemorySessionStore(),
        memory_factory=factory,
        max_cached_memories=1,
    )
    first = service.create_session("a", greet=False)
    second = service.create_session("b", greet=False)

    service.send_message("a", first.id, "hi")
    service.send_message("b", second.id, "hi")
    assert service.cached_memory_owners == ["b"]

    service.send_message("a", first.id, "again")
    assert built == ["a", "b", "a"]
    assert service.cached_memory_owners == ["a"]

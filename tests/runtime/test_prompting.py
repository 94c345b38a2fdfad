from agentic.runtime.memory.memory_store import EMPTY_MEMORY_PLACEHOLDER, JsonMemoryStore
from agentic.runtime.memory.prompting import FocusDirective, compose_system_prompt


def test_system_prompt_embeds_memory_snapshot():
    store = JsonMemoryStore()
    store.add_or_update("user_name", "Alice")

    prompt = compose_system_prompt(store.format_for_prompt())
    assert "- [user_name]: Alice" in prompt
    for tool in ("add_memory", "search_memory", "get_all_memories"):
        assert tool in prompt


def test_system_prompt_with_empty_memory_shows_placeholder():
    prompt = compose_system_prompt(JsonMemoryStore().format_for_prompt())
    assert EMPTY_MEMORY_PLACEHOLDER in prompt


def test_focus_applies_once():
    focus = FocusDirective()
    focus.set("  keep answers short ")
    assert focus.pending == "keep answers short"

    assert focus.apply("hello") == "[Focus: keep answers short] hello"
    assert focus.pending is None
    assert focus.apply("again") == "again"


def test_focus_clear_and_blank_set():
    focus = FocusDirective()
    focus.set("topic")
    focus.clear()
    assert focus.apply("x") == "x"

    focus.set("   ")
    assert focus.pending is None

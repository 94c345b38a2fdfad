import json
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from agentic.runtime.memory.errors import NotFoundError, ValidationError
from agentic.runtime.memory.models import DEFAULT_TITLE
from agentic.runtime.memory.session_store import (
    FileSessionStore,
    InMemorySessionStore,
    validate_identifier,
)

OWNER = str(uuid.uuid4())


def test_validate_identifier():
    raw = uuid.uuid4()
    assert validate_identifier(str(raw).upper()) == str(raw)
    for bad in ("", "  ", "../etc", "not-a-uuid"):
        with pytest.raises(ValidationError):
            validate_identifier(bad)


def test_file_store_create_persists_empty_session(tmp_path):
    store = FileSessionStore(tmp_path)
    session = store.create_session(OWNER)

    path = tmp_path / OWNER / f"{session.id}.json"
    assert path.exists()
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["title"] == DEFAULT_TITLE
    assert doc["messages"] == []
    assert doc["turnCount"] == 0

    loaded = store.get_session(OWNER, session.id)
    assert loaded is not None
    assert loaded.id == session.id
    assert loaded.owner == OWNER


def test_file_store_save_round_trips_messages(tmp_path):
    store = FileSessionStore(tmp_path)
    session = store.create_session(OWNER)
    session.append("user", "hi")
    session.append("assistant", "hello")
    session.turn_count = 1
    store.save(session)
    store.save(session)

    loaded = store.get_session(OWNER, session.id)
    assert [(m.role, m.content) for m in loaded.messages] == [("user", "hi"), ("assistant", "hello")]
    assert loaded.turn_count == 1


def test_file_store_lists_newest_first(tmp_path):
    store = FileSessionStore(tmp_path)
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    created = []
    for offset in (2, 0, 1):
        session = store.create_session(OWNER)
        session.updated_at = base + timedelta(hours=offset)
        store.save(session)
        created.append(session)

    listed = store.list_sessions(OWNER)
    assert [s.id for s in listed] == [created[0].id, created[2].id, created[1].id]
    assert store.list_sessions(str(uuid.uuid4())) == []


def test_file_store_unknown_or_corrupt_session_is_none(tmp_path):
    store = FileSessionStore(tmp_path)
    assert store.get_session(OWNER, str(uuid.uuid4())) is None

    good = store.create_session(OWNER)
    bad_id = str(uuid.uuid4())
    (tmp_path / OWNER / f"{bad_id}.json").write_text("{broken", encoding="utf-8")

    assert store.get_session(OWNER, bad_id) is None
    assert [s.id for s in store.list_sessions(OWNER)] == [good.id]


def test_file_store_rejects_malformed_identifiers(tmp_path):
    store = FileSessionStore(tmp_path)
    with pytest.raises(ValidationError):
        store.create_session("../escape")
    with pytest.raises(ValidationError):
        store.get_session(OWNER, "../../etc/passwd")
    assert list(tmp_path.iterdir()) == []


def test_file_store_loads_documents_without_optional_fields(tmp_path):
    store = FileSessionStore(tmp_path)
    session_id = str(uuid.uuid4())
    owner_dir = tmp_path / OWNER
    owner_dir.mkdir()
    (owner_dir / f"{session_id}.json").write_text(
        json.dumps(
            {
                "id": session_id,
                "owner": OWNER,
                "title": "Planning",
                "createdAt": "2024-01-01T00:00:00Z",
                "updatedAt": "2024-01-01T00:05:00Z",
                "messages": [{"role": "user", "content": "hi", "timestamp": "2024-01-01T00:00:00Z"}],
            }
        ),
        encoding="utf-8",
    )

    loaded = store.get_session(OWNER, session_id)
    assert loaded.name is None
    assert loaded.turn_count == 0
    assert loaded.messages[0].content == "hi"


def test_in_memory_store_names_and_activates_new_sessions():
    store = InMemorySessionStore()
    first = store.create_session("local")
    second = store.create_session("local")
    third = store.create_session("local", name="Research")

    assert [s.name for s in store.sessions] == ["default", "session-2", "Research"]
    assert store.active is third
    assert store.get_session("local", second.id) is second
    assert store.get_session("someone-else", first.id) is None


def test_in_memory_switch_by_index_and_name():
    store = InMemorySessionStore()
    first = store.create_session("local")
    store.create_session("local", name="Research")

    assert store.switch_to("1") is first
    assert store.switch_to("research").name == "Research"
    assert store.active.name == "Research"


@pytest.mark.parametrize("token", ["3", "0", "nope", ""])
def test_in_memory_unmatched_switch_keeps_active(token):
    store = InMemorySessionStore()
    store.create_session("local")
    active = store.create_session("local", name="work")

    with pytest.raises(NotFoundError):
        store.switch_to(token)
    assert store.active is active

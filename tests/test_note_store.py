"""Tests for notes_app.note_store: the in-memory collection and file format."""

from __future__ import annotations

import json
import random

import pytest

from notes_app import note_store
from notes_app.errors import FormatError
from notes_app.models import UNTITLED_NOTE, Note
from notes_app.note_store import NoteStore, deserialize, serialize


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(note_store, "now_ms", fake)
    return fake


# ---------------------------------------------------------------------------
# Note model
# ---------------------------------------------------------------------------


class TestNoteModel:
    def test_create_note_defaults(self) -> None:
        note = Note()
        assert note.id
        assert note.title == UNTITLED_NOTE
        assert note.content == ""
        assert note.updated_at == note.created_at

    def test_display_title_placeholder(self) -> None:
        assert Note(title="").display_title == UNTITLED_NOTE
        assert Note(title="Groceries").display_title == "Groceries"

    def test_wire_field_order(self) -> None:
        note = Note(title="T", content="C")
        assert list(note.to_wire()) == ["id", "title", "content", "createdAt", "updatedAt"]

    def test_updated_before_created_rejected(self) -> None:
        with pytest.raises(Exception):
            Note(created_at=10, updated_at=5)

    def test_id_is_immutable(self) -> None:
        note = Note()
        with pytest.raises(Exception):
            note.id = "other"


# ---------------------------------------------------------------------------
# Store mutations
# ---------------------------------------------------------------------------


class TestNoteStore:
    def test_empty_store(self) -> None:
        store = NoteStore()
        assert len(store) == 0
        assert store.notes == []

    def test_add_prepends(self, clock: FakeClock) -> None:
        store = NoteStore()
        first = store.add("First", "a")
        second = store.add("Second", "b")
        assert [n.id for n in store.notes] == [second.id, first.id]

    def test_add_sets_timestamps(self, clock: FakeClock) -> None:
        note = NoteStore().add("T", "C")
        assert note.created_at == note.updated_at == clock.now

    def test_add_defaults(self, clock: FakeClock) -> None:
        note = NoteStore().add()
        assert note.title == UNTITLED_NOTE
        assert note.content == ""

    def test_update_title_and_content(self, clock: FakeClock) -> None:
        store = NoteStore()
        note = store.add("Old", "body")
        clock.now += 500
        assert store.update(note.id, "title", "New") is True
        assert store.update(note.id, "content", "new body") is True
        assert note.title == "New"
        assert note.content == "new body"
        assert note.updated_at == clock.now

    def test_update_unknown_id_is_noop(self, clock: FakeClock) -> None:
        store = NoteStore()
        note = store.add("T", "C")
        assert store.update("missing", "title", "x") is False
        assert note.title == "T"

    def test_update_rejects_other_fields(self) -> None:
        store = NoteStore()
        note = store.add()
        with pytest.raises(ValueError):
            store.update(note.id, "createdAt", "0")
        with pytest.raises(ValueError):
            store.update(note.id, "id", "x")

    def test_update_with_clock_going_backwards(self, clock: FakeClock) -> None:
        store = NoteStore()
        note = store.add("T", "C")
        clock.now -= 10_000
        store.update(note.id, "content", "later")
        assert note.updated_at >= note.created_at

    def test_remove(self) -> None:
        store = NoteStore()
        a = store.add("A")
        b = store.add("B")
        assert store.remove(a.id) is True
        assert store.notes == [b]

    def test_remove_unknown_id_is_noop(self) -> None:
        store = NoteStore()
        store.add("A")
        assert store.remove("missing") is False
        assert len(store) == 1

    def test_random_mutations_keep_invariants(self, clock: FakeClock) -> None:
        rng = random.Random(7)
        store = NoteStore()
        for _ in range(300):
            clock.now += rng.randint(-50, 100)
            action = rng.choice(["add", "update", "remove"])
            ids = [n.id for n in store]
            if action == "add" or not ids:
                store.add(f"t{rng.random()}", "c")
            elif action == "update":
                store.update(rng.choice(ids), rng.choice(["title", "content"]), "v")
            else:
                store.remove(rng.choice(ids))
        ids = [n.id for n in store]
        assert len(ids) == len(set(ids))
        assert all(n.updated_at >= n.created_at for n in store)


class TestSearchAndOrder:
    def test_for_display_most_recent_first(self, clock: FakeClock) -> None:
        store = NoteStore()
        a = store.add("A")
        clock.now += 1
        b = store.add("B")
        clock.now += 1
        store.update(a.id, "content", "touched")
        assert [n.id for n in store.for_display()] == [a.id, b.id]

    def test_search(self) -> None:
        store = NoteStore()
        store.add("Meeting notes", "Discuss roadmap")
        store.add("Shopping list", "Buy milk")
        assert len(store.search("meeting")) == 1
        assert len(store.search("milk")) == 1
        assert len(store.search("xyz")) == 0

    def test_search_case_insensitive(self) -> None:
        store = NoteStore()
        store.add("Hello World", "content here")
        assert len(store.search("hello")) == 1
        assert len(store.search("WORLD")) == 1

    def test_empty_query_matches_everything(self) -> None:
        store = NoteStore()
        store.add("A")
        store.add("B")
        assert len(store.search("")) == 2


# ---------------------------------------------------------------------------
# File format
# ---------------------------------------------------------------------------


class TestSerialization:
    def test_serialize_indent_and_fields(self) -> None:
        note = Note(id="n1", title="T", content="C", created_at=1, updated_at=2)
        text = serialize([note])
        assert text == (
            "[\n"
            "  {\n"
            '    "id": "n1",\n'
            '    "title": "T",\n'
            '    "content": "C",\n'
            '    "createdAt": 1,\n'
            '    "updatedAt": 2\n'
            "  }\n"
            "]"
        )

    def test_unknown_keys_survive_load_and_save(self) -> None:
        entry = {
            "id": "n1",
            "title": "T",
            "content": "C",
            "createdAt": 1,
            "updatedAt": 2,
            "pinned": True,
            "tags": ["a"],
        }
        written = json.loads(serialize(deserialize(json.dumps([entry]))))
        assert written == [entry]
        assert list(written[0])[:5] == ["id", "title", "content", "createdAt", "updatedAt"]

    def test_unknown_keys_kept_after_update(self) -> None:
        entry = {"id": "n1", "title": "T", "content": "C", "createdAt": 1, "updatedAt": 1, "pinned": True}
        store = NoteStore(deserialize(json.dumps([entry])))
        store.update("n1", "title", "New")
        assert json.loads(store.serialize())[0]["pinned"] is True

    def test_serialize_empty(self) -> None:
        assert serialize([]) == "[]"

    def test_serialize_keeps_unicode(self) -> None:
        note = Note(title="Заметка", content="ü")
        assert "Заметка" in serialize([note])

    def test_roundtrip(self, clock: FakeClock) -> None:
        store = NoteStore()
        store.add("A", "alpha")
        clock.now += 3
        store.add("B", "# heading\n\n- item")
        restored = deserialize(store.serialize())
        assert restored == store.notes

    def test_deserialize_empty_array(self) -> None:
        assert deserialize("[]") == []

    def test_deserialize_accepts_any_formatting(self) -> None:
        text = '[{"id":"x","title":"t","content":"c","createdAt":5,"updatedAt":9}]'
        [note] = deserialize(text)
        assert note.id == "x"
        assert note.updated_at == 9

    @pytest.mark.parametrize("text", ["not an array", "{}", '"text"', "42", "null"])
    def test_deserialize_non_array_fails(self, text: str) -> None:
        with pytest.raises(FormatError):
            deserialize(text)

    def test_deserialize_rejects_malformed_entry(self) -> None:
        with pytest.raises(FormatError):
            deserialize(json.dumps([{"id": "x", "title": "t"}]))
        with pytest.raises(FormatError):
            deserialize(json.dumps(["just a string"]))

    @pytest.mark.parametrize("created_at", ["1700000000000", True, 1.5])
    def test_deserialize_rejects_loosely_typed_timestamps(self, created_at) -> None:
        entry = {"id": "x", "title": "t", "content": "c", "createdAt": created_at, "updatedAt": 1}
        with pytest.raises(FormatError):
            deserialize(json.dumps([entry]))

    def test_deserialize_rejects_non_string_title(self) -> None:
        entry = {"id": "x", "title": 7, "content": "c", "createdAt": 1, "updatedAt": 1}
        with pytest.raises(FormatError):
            deserialize(json.dumps([entry]))

    def test_deserialize_rejects_bad_timestamps(self) -> None:
        entry = {"id": "x", "title": "t", "content": "c", "createdAt": 9, "updatedAt": 5}
        with pytest.raises(FormatError):
            deserialize(json.dumps([entry]))

    def test_deserialize_rejects_duplicate_ids(self) -> None:
        entry = {"id": "x", "title": "t", "content": "c", "createdAt": 1, "updatedAt": 1}
        with pytest.raises(FormatError):
            deserialize(json.dumps([entry, entry]))

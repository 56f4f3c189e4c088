"""In-memory note collection and its JSON file format."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Optional

from pydantic import ValidationError

from notes_app.errors import FormatError
from notes_app.metrics import NOTES_IN_MEMORY
from notes_app.models import UNTITLED_NOTE, Note, now_ms

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = frozenset({"title", "content"})
WIRE_FIELDS = ("id", "title", "content", "createdAt", "updatedAt")


def serialize(notes: Iterable[Note]) -> str:
    """Render notes as a 2-space indented JSON array."""
    return json.dumps([n.to_wire() for n in notes], indent=2, ensure_ascii=False)


def deserialize(text: str) -> list[Note]:
    """Parse a note collection file.

    Raises:
        FormatError: the text is not JSON, the top-level value is not an
            array, or an element is not a well-formed note.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FormatError(f"Invalid JSON: {exc}") from exc

    if not isinstance(raw, list):
        raise FormatError("Invalid file format: Not an array of notes.")

    notes: list[Note] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise FormatError(f"Entry {index} is not an object")
        missing = [key for key in WIRE_FIELDS if key not in item]
        if missing:
            raise FormatError(f"Entry {index} is missing {', '.join(missing)}")
        try:
            note = Note.model_validate(item)
        except ValidationError as exc:
            raise FormatError(f"Entry {index} is not a valid note: {exc}") from exc
        if note.id in seen:
            raise FormatError(f"Duplicate note id {note.id!r}")
        seen.add(note.id)
        notes.append(note)
    return notes


class NoteStore:
    """Ordered collection of notes. Newest additions come first."""

    def __init__(self, notes: Optional[Iterable[Note]] = None) -> None:
        self._notes: list[Note] = list(notes or [])
        NOTES_IN_MEMORY.set(len(self._notes))

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[Note]:
        return iter(list(self._notes))

    @property
    def notes(self) -> list[Note]:
        """Every note in storage order."""
        return list(self._notes)

    def get(self, note_id: str) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def add(self, title: Optional[str] = None, content: Optional[str] = None) -> Note:
        """Create a note and put it at the front of the collection."""
        now = now_ms()
        note = Note(
            title=UNTITLED_NOTE if title is None else title,
            content=content or "",
            created_at=now,
            updated_at=now,
        )
        self._notes.insert(0, note)
        NOTES_IN_MEMORY.set(len(self._notes))
        logger.info("Added note %s", note.id)
        return note

    def update(self, note_id: str, field: str, value: str) -> bool:
        """Set ``title`` or ``content`` on a note. Unknown ids are ignored."""
        if field not in MUTABLE_FIELDS:
            raise ValueError(f"Field {field!r} cannot be edited")
        note = self.get(note_id)
        if note is None:
            return False
        setattr(note, field, value)
        note.updated_at = max(now_ms(), note.created_at)
        return True

    def remove(self, note_id: str) -> bool:
        """Delete a note. Unknown ids are ignored."""
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                del self._notes[index]
                NOTES_IN_MEMORY.set(len(self._notes))
                logger.info("Removed note %s", note_id)
                return True
        return False

    def replace_all(self, notes: Iterable[Note]) -> None:
        self._notes = list(notes)
        NOTES_IN_MEMORY.set(len(self._notes))

    def clear(self) -> None:
        self.replace_all([])

    def for_display(self) -> list[Note]:
        """Notes ordered most-recently-updated first."""
        return sorted(self._notes, key=lambda n: n.updated_at, reverse=True)

    def search(self, query: str) -> list[Note]:
        """Return notes whose title or content contains the query (case-insensitive)."""
        q = query.lower()
        return [
            n
            for n in self.for_display()
            if q in n.title.lower() or q in n.content.lower()
        ]

    def serialize(self) -> str:
        return serialize(self._notes)

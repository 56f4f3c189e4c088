"""Document session: which file the notes belong to and whether they changed.

The session is bound to at most one file at a time. It starts empty and
becomes bound after a successful open, save-as or new. Independently of
that, ``dirty`` is set by every note mutation and cleared by every
successful load or save that no edit overlapped.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

from notes_app.errors import FormatError, StorageIOError
from notes_app.gateway import BackendKind, PersistenceGateway
from notes_app.metrics import FILE_OPERATIONS
from notes_app.models import Note
from notes_app.note_store import NoteStore, deserialize, serialize

logger = logging.getLogger(__name__)

DISCARD_PROMPT = "You have unsaved changes. Discard them?"
NEW_FILE_DIRTY_PROMPT = (
    "You have unsaved changes. These will be lost if you create a new file "
    "without saving. Continue?"
)
NEW_FILE_CLEAN_PROMPT = (
    "This will close the current file and start a new empty one. Continue?"
)
DELETE_PROMPT = "Are you sure you want to delete this note?"

OPEN_FAILED = "Failed to open file."
SAVE_FAILED = "Failed to save file."
NEW_FAILED = "Failed to create file."
OPEN_INTERRUPTED = "Notes were edited while the file was opening. Open cancelled."
NEW_INTERRUPTED = (
    "Notes were edited while the new file was being created. Kept the current notes."
)


@dataclass
class SessionState:
    backend_kind: BackendKind = BackendKind.NONE
    file_identity: Any = None
    display_name: Optional[str] = None
    dirty: bool = False

    @property
    def bound(self) -> bool:
        return self.file_identity is not None


def _log_notify(message: str) -> None:
    logger.warning("User notification: %s", message)


class DocumentSession:
    """Ties a persistence gateway to the note store.

    Args:
        gateway: Storage backend, fixed for the life of the session.
        store: The note collection being edited.
        confirm: Asks the user a yes/no question; True means proceed.
        notify: Shows the user a message. Defaults to logging it.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        store: NoteStore,
        confirm: Callable[[str], bool],
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._confirm = confirm
        self._notify = notify or _log_notify
        self.state = SessionState()
        self.active_note_id: Optional[str] = None
        # Bumped by every note mutation.
        self._revision = 0

    @property
    def store(self) -> NoteStore:
        return self._store

    @property
    def dirty(self) -> bool:
        return self.state.dirty

    def snapshot(self) -> SessionState:
        """Copy of the current state."""
        return dataclasses.replace(self.state)

    # ------------------------------------------------------------------
    # File transitions
    # ------------------------------------------------------------------

    async def open(self) -> bool:
        """Replace the notes with the contents of a user-chosen file.

        Edits made while the file is being picked or read win: the open is
        abandoned rather than overwriting them.
        """
        if self.state.dirty and not self._confirm(DISCARD_PROMPT):
            return False

        revision = self._revision
        try:
            opened = await self._gateway.pick_open_target()
        except StorageIOError as exc:
            self._fail("open", OPEN_FAILED, exc)
            return False
        if opened is None:
            FILE_OPERATIONS.labels(operation="open", outcome="canceled").inc()
            return False

        try:
            notes = deserialize(opened.text)
        except FormatError as exc:
            self._fail("open", str(exc), exc)
            return False

        if self._revision != revision:
            self._abandon("open", OPEN_INTERRUPTED)
            return False

        self._store.replace_all(notes)
        self._bind(opened.identity, opened.display_name)
        self.active_note_id = None
        FILE_OPERATIONS.labels(operation="open", outcome="success").inc()
        logger.info("Opened %s with %d notes", opened.display_name, len(notes))
        return True

    async def save(self) -> bool:
        """Write the notes back to the bound file, or save-as when unbound."""
        if not self.state.bound:
            return await self.save_as()

        revision = self._revision
        try:
            await self._gateway.save_to_target(
                self.state.file_identity, self._store.serialize()
            )
        except StorageIOError as exc:
            self._fail("save", SAVE_FAILED, exc)
            return False

        # Edits made during the write are not in the file.
        if self._revision == revision:
            self.state.dirty = False
        FILE_OPERATIONS.labels(operation="save", outcome="success").inc()
        logger.info("Saved %d notes to %s", len(self._store), self.state.display_name)
        return True

    async def save_as(self) -> bool:
        """Write the notes to a newly chosen file and bind to it."""
        revision = self._revision
        try:
            saved = await self._gateway.pick_save_as_target(self._store.serialize())
        except StorageIOError as exc:
            self._fail("save_as", SAVE_FAILED, exc)
            return False
        if saved is None:
            FILE_OPERATIONS.labels(operation="save_as", outcome="canceled").inc()
            return False

        self._bind(saved.identity, saved.display_name, clean=self._revision == revision)
        FILE_OPERATIONS.labels(operation="save_as", outcome="success").inc()
        logger.info("Saved %d notes as %s", len(self._store), saved.display_name)
        return True

    async def new(self) -> bool:
        """Start an empty collection backed by a newly chosen file."""
        if len(self._store) > 0:
            prompt = NEW_FILE_DIRTY_PROMPT if self.state.dirty else NEW_FILE_CLEAN_PROMPT
            if not self._confirm(prompt):
                return False

        revision = self._revision
        try:
            saved = await self._gateway.pick_save_as_target(serialize([]))
        except StorageIOError as exc:
            self._fail("new", NEW_FAILED, exc)
            return False
        if saved is None:
            FILE_OPERATIONS.labels(operation="new", outcome="canceled").inc()
            return False

        if self._revision != revision:
            self._abandon("new", NEW_INTERRUPTED)
            return False

        self._store.clear()
        self.active_note_id = None
        self._bind(saved.identity, saved.display_name)
        FILE_OPERATIONS.labels(operation="new", outcome="success").inc()
        logger.info("Created %s", saved.display_name)
        return True

    async def handle_shortcut(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        """Run the action bound to a key chord. Returns whether one matched."""
        if (ctrl or meta) and key.lower() == "s":
            await self.save()
            return True
        return False

    # ------------------------------------------------------------------
    # Note mutations
    # ------------------------------------------------------------------

    def add_note(self, title: Optional[str] = None, content: Optional[str] = None) -> Note:
        note = self._store.add(title, content)
        self.active_note_id = note.id
        self._touch()
        return note

    def update_note(self, note_id: str, field: str, value: str) -> bool:
        changed = self._store.update(note_id, field, value)
        if changed:
            self._touch()
        return changed

    def delete_note(self, note_id: str) -> bool:
        if self._store.get(note_id) is None:
            return False
        if not self._confirm(DELETE_PROMPT):
            return False
        self._store.remove(note_id)
        if self.active_note_id == note_id:
            self.active_note_id = None
        self._touch()
        return True

    def select(self, note_id: Optional[str]) -> Optional[Note]:
        """Make a note the active one; ``None`` or an unknown id clears it."""
        note = self._store.get(note_id) if note_id else None
        self.active_note_id = note.id if note else None
        return note

    @property
    def active_note(self) -> Optional[Note]:
        if self.active_note_id is None:
            return None
        return self._store.get(self.active_note_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _touch(self) -> None:
        self._revision += 1
        self.state.dirty = True

    def _bind(self, identity: Any, display_name: str, clean: bool = True) -> None:
        self.state = SessionState(
            backend_kind=self._gateway.kind,
            file_identity=identity,
            display_name=display_name,
            dirty=not clean,
        )

    def _abandon(self, operation: str, message: str) -> None:
        logger.warning("%s abandoned: notes changed while it was waiting", operation)
        FILE_OPERATIONS.labels(operation=operation, outcome="canceled").inc()
        self._notify(message)

    def _fail(self, operation: str, message: str, exc: Exception) -> None:
        logger.error("%s failed: %s", operation, exc)
        FILE_OPERATIONS.labels(operation=operation, outcome="error").inc()
        self._notify(message)

"""Shared fixtures: an in-memory gateway and a scripted user."""

from __future__ import annotations

from typing import Any, Optional

import anyio
import pytest

from notes_app.errors import StorageIOError
from notes_app.gateway import BackendKind, OpenedFile, PersistenceGateway, SavedFile
from notes_app.models import Settings
from notes_app.note_store import NoteStore
from notes_app.session import DocumentSession


class MemoryGateway(PersistenceGateway):
    """Gateway over a dict of name -> text, with scripted picker answers."""

    kind = BackendKind.NATIVE

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.next_open: Optional[str] = None
        self.next_save: Optional[str] = None
        self.fail_reads = False
        self.fail_writes = False
        self.settings_blob: Optional[dict] = None
        self.writes: list[tuple[str, str]] = []
        self.waiting: Optional[anyio.Event] = None
        self._gate: Optional[anyio.Event] = None

    def hold(self) -> anyio.Event:
        """Make the next file operation wait until the returned event is set."""
        self._gate = anyio.Event()
        self.waiting = anyio.Event()
        return self._gate

    async def _pause(self) -> None:
        if self._gate is not None:
            gate, self._gate = self._gate, None
            self.waiting.set()
            await gate.wait()

    async def pick_open_target(self) -> Optional[OpenedFile]:
        name, self.next_open = self.next_open, None
        if name is None:
            return None
        await self._pause()
        if self.fail_reads or name not in self.files:
            raise StorageIOError(f"cannot read {name}")
        return OpenedFile(identity=name, display_name=name, text=self.files[name])

    async def pick_save_as_target(self, text: str) -> Optional[SavedFile]:
        name, self.next_save = self.next_save, None
        if name is None:
            return None
        await self._pause()
        self._write(name, text)
        return SavedFile(identity=name, display_name=name)

    async def save_to_target(self, identity: Any, text: str) -> None:
        await self._pause()
        if identity not in self.files:
            raise StorageIOError(f"{identity} no longer exists")
        self._write(identity, text)

    async def load_settings(self) -> Optional[dict]:
        return self.settings_blob

    async def save_settings(self, settings: Settings) -> None:
        if self.fail_writes:
            raise StorageIOError("settings not writable")
        self.settings_blob = settings.to_wire()

    def _write(self, name: str, text: str) -> None:
        if self.fail_writes:
            raise StorageIOError(f"cannot write {name}")
        self.files[name] = text
        self.writes.append((name, text))


class ScriptedUser:
    """Answers confirmation prompts and records notifications."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.prompts: list[str] = []
        self.messages: list[str] = []

    def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer

    def notify(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture()
def gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture()
def user() -> ScriptedUser:
    return ScriptedUser()


@pytest.fixture()
def session(gateway: MemoryGateway, user: ScriptedUser) -> DocumentSession:
    return DocumentSession(gateway, NoteStore(), user.confirm, user.notify)

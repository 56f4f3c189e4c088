"""File-handle backend.

Files are reached through handle objects handed out by a picker that only
runs in response to a user gesture, the way a browser's file system access
API works. Settings live in a small per-install key-value blob instead of a
file of their own.
"""

from __future__ import annotations

import json
import logging
import os
from collections import deque
from pathlib import Path
from typing import Optional, Protocol

import anyio

from notes_app.backends.atomic import write_text_atomic
from notes_app.errors import StorageIOError
from notes_app.gateway import BackendKind, OpenedFile, PersistenceGateway, SavedFile
from notes_app.models import Settings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "app_settings"


class PickerAborted(Exception):
    """The user dismissed a file picker."""


class FileHandle(Protocol):
    name: str

    async def read_text(self) -> str: ...

    async def write_text(self, text: str) -> None: ...

    async def query_permission(self) -> str: ...


class HandlePicker(Protocol):
    """Open/save pickers. Both raise :class:`PickerAborted` on cancel."""

    async def show_open_file_picker(self) -> FileHandle: ...

    async def show_save_file_picker(self) -> FileHandle: ...


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...


class LocalFileHandle:
    """Handle to a file on the local disk.

    Writes go to a swap file that replaces the target once complete.
    Permission can be revoked, after which every access fails.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.name = self.path.name
        self._revoked = False

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self.path)!r})"

    def revoke(self) -> None:
        self._revoked = True

    async def query_permission(self) -> str:
        if self._revoked:
            return "denied"
        if not await anyio.Path(self.path).is_file():
            return "denied"
        return "granted" if os.access(self.path, os.W_OK) else "denied"

    async def read_text(self) -> str:
        if self._revoked:
            raise PermissionError(f"Access to {self.name} was revoked")
        return await anyio.Path(self.path).read_text(encoding="utf-8")

    async def write_text(self, text: str) -> None:
        if self._revoked:
            raise PermissionError(f"Access to {self.name} was revoked")
        await write_text_atomic(self.path, text)


class QueuedHandlePicker:
    """Picker answered by paths queued ahead of time; empty means aborted."""

    def __init__(self) -> None:
        self._open: deque[Path] = deque()
        self._save: deque[Path] = deque()

    def queue_open(self, path: Path | str) -> None:
        self._open.append(Path(path))

    def queue_save(self, path: Path | str) -> None:
        self._save.append(Path(path))

    def clear(self) -> None:
        self._open.clear()
        self._save.clear()

    async def show_open_file_picker(self) -> LocalFileHandle:
        if not self._open:
            raise PickerAborted("The user aborted a request.")
        return LocalFileHandle(self._open.popleft())

    async def show_save_file_picker(self) -> LocalFileHandle:
        if not self._save:
            raise PickerAborted("The user aborted a request.")
        return LocalFileHandle(self._save.popleft())


class JsonFileKeyValueStore:
    """String key-value blob kept in one JSON object on disk."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Key-value store %s unreadable: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageIOError(f"Cannot write {self._path}: {exc}") from exc


class FileHandleBackend(PersistenceGateway):
    """Notes behind picker-granted handles, settings in a key-value blob."""

    kind = BackendKind.BROWSER_HANDLE

    def __init__(self, picker: HandlePicker, storage: KeyValueStore) -> None:
        self._picker = picker
        self._storage = storage

    async def pick_open_target(self) -> Optional[OpenedFile]:
        try:
            handle = await self._picker.show_open_file_picker()
        except PickerAborted:
            return None
        try:
            text = await handle.read_text()
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageIOError(f"Cannot read {handle.name}: {exc}") from exc
        return OpenedFile(identity=handle, display_name=handle.name, text=text)

    async def pick_save_as_target(self, text: str) -> Optional[SavedFile]:
        try:
            handle = await self._picker.show_save_file_picker()
        except PickerAborted:
            return None
        await self._write(handle, text)
        return SavedFile(identity=handle, display_name=handle.name)

    async def save_to_target(self, identity: FileHandle, text: str) -> None:
        if await identity.query_permission() != "granted":
            raise StorageIOError(f"No write access to {identity.name}")
        await self._write(identity, text)

    async def load_settings(self) -> Optional[dict]:
        stored = await anyio.to_thread.run_sync(self._storage.get_item, SETTINGS_KEY)
        if stored is None:
            return None
        try:
            return json.loads(stored)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse stored settings: %s", exc)
            return None

    async def save_settings(self, settings: Settings) -> None:
        await anyio.to_thread.run_sync(
            self._storage.set_item, SETTINGS_KEY, json.dumps(settings.to_wire())
        )

    @staticmethod
    async def _write(handle: FileHandle, text: str) -> None:
        try:
            await handle.write_text(text)
        except OSError as exc:
            raise StorageIOError(f"Cannot write {handle.name}: {exc}") from exc
        logger.info("Wrote %d bytes to %s", len(text), handle.name)

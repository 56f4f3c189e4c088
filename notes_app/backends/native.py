"""Native filesystem backend: plain paths chosen through host dialogs."""

from __future__ import annotations

import json
import logging
from collections import deque
from pathlib import Path
from typing import Optional, Protocol

import anyio

from notes_app.backends.atomic import display_name, write_text_atomic
from notes_app.errors import StorageIOError
from notes_app.gateway import BackendKind, OpenedFile, PersistenceGateway, SavedFile
from notes_app.models import Settings

logger = logging.getLogger(__name__)

NOTES_SUFFIX = ".json"


class FileDialogs(Protocol):
    """Host open/save dialogs. ``None`` means the user cancelled."""

    async def ask_open_path(self) -> Optional[Path]: ...

    async def ask_save_path(self) -> Optional[Path]: ...


class QueuedPathDialogs:
    """Dialogs answered by paths queued ahead of time.

    Used where the caller already knows the path, e.g. a tool call that
    carries it as an argument. An empty queue behaves like a cancelled dialog.
    """

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

    async def ask_open_path(self) -> Optional[Path]:
        return self._open.popleft() if self._open else None

    async def ask_save_path(self) -> Optional[Path]:
        return self._save.popleft() if self._save else None


class NativeFileBackend(PersistenceGateway):
    """Notes in user-chosen files, settings in a fixed per-install file."""

    kind = BackendKind.NATIVE

    def __init__(self, dialogs: FileDialogs, settings_path: Path) -> None:
        self._dialogs = dialogs
        self.settings_path = Path(settings_path)

    async def pick_open_target(self) -> Optional[OpenedFile]:
        path = await self._dialogs.ask_open_path()
        if path is None:
            return None
        try:
            text = await anyio.Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageIOError(f"Cannot read {path}: {exc}") from exc
        logger.info("Read %d bytes from %s", len(text), path)
        return OpenedFile(identity=path, display_name=display_name(path), text=text)

    async def pick_save_as_target(self, text: str) -> Optional[SavedFile]:
        path = await self._dialogs.ask_save_path()
        if path is None:
            return None
        if not path.suffix:
            path = path.with_suffix(NOTES_SUFFIX)
        await self._write(path, text)
        return SavedFile(identity=path, display_name=display_name(path))

    async def save_to_target(self, identity: Path, text: str) -> None:
        path = Path(identity)
        if not await anyio.Path(path).is_file():
            raise StorageIOError(f"{path} no longer exists")
        await self._write(path, text)

    async def load_settings(self) -> Optional[dict]:
        path = anyio.Path(self.settings_path)
        if not await path.exists():
            return None
        try:
            raw = await path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageIOError(f"Cannot read settings: {exc}") from exc
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Settings file %s is not valid JSON: %s", path, exc)
            return None

    async def save_settings(self, settings: Settings) -> None:
        path = anyio.Path(self.settings_path)
        try:
            await path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(f"Cannot create {path.parent}: {exc}") from exc
        await self._write(self.settings_path, json.dumps(settings.to_wire(), indent=2))

    @staticmethod
    async def _write(path: Path, text: str) -> None:
        try:
            await write_text_atomic(path, text)
        except OSError as exc:
            raise StorageIOError(f"Cannot write {path}: {exc}") from exc
        logger.info("Wrote %d bytes to %s", len(text), path)

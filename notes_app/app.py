"""Application wiring: one owner for config, storage, notes and settings."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from notes_app.backends.handle import (
    FileHandleBackend,
    HandlePicker,
    JsonFileKeyValueStore,
    QueuedHandlePicker,
)
from notes_app.backends.native import FileDialogs, NativeFileBackend, QueuedPathDialogs
from notes_app.config import AppConfig
from notes_app.gateway import PersistenceGateway
from notes_app.note_store import NoteStore
from notes_app.session import DocumentSession
from notes_app.settings_store import SettingsStore

logger = logging.getLogger(__name__)


def build_gateway(
    config: AppConfig,
    dialogs: Optional[FileDialogs] = None,
    picker: Optional[HandlePicker] = None,
) -> PersistenceGateway:
    """Pick the storage backend named by the configuration."""
    if config.backend == "browser_handle":
        logger.info("Using file-handle backend, settings in %s", config.storage_path)
        return FileHandleBackend(
            picker or QueuedHandlePicker(),
            JsonFileKeyValueStore(config.storage_path),
        )
    logger.info("Using native file backend, settings in %s", config.settings_path)
    return NativeFileBackend(dialogs or QueuedPathDialogs(), config.settings_path)


class NotesApplication:
    """Top-level controller holding the only session and settings instances."""

    def __init__(
        self,
        config: AppConfig,
        gateway: PersistenceGateway,
        confirm: Callable[[str], bool],
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.gateway = gateway
        self.store = NoteStore()
        self.session = DocumentSession(gateway, self.store, confirm, notify)
        self.settings = SettingsStore(gateway, notify)

    async def start(self) -> None:
        """Load persisted settings. Call once before handling user intents."""
        settings = await self.settings.load()
        logger.info(
            "Started with %s backend, theme=%s",
            self.gateway.kind.value,
            settings.theme_mode.value,
        )

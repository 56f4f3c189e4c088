"""Storage backend contract used by the document session.

A gateway knows how to pick, read and write note collection files and how
to persist settings. The session only ever talks to this interface; which
concrete backend is used is decided once at startup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from notes_app.models import Settings


class BackendKind(str, Enum):
    NONE = "none"
    NATIVE = "native"
    BROWSER_HANDLE = "browser_handle"


@dataclass(frozen=True)
class OpenedFile:
    """A file the user picked to open, with its text already read."""

    identity: Any
    display_name: str
    text: str


@dataclass(frozen=True)
class SavedFile:
    """A new file location the user picked and that has been written."""

    identity: Any
    display_name: str


class PersistenceGateway(ABC):
    """Where notes and settings live.

    Picker methods return ``None`` when the user cancels. I/O failures raise
    :class:`~notes_app.errors.StorageIOError`.
    """

    kind: BackendKind = BackendKind.NONE

    @abstractmethod
    async def pick_open_target(self) -> Optional[OpenedFile]:
        """Ask for an existing file and return its contents."""

    @abstractmethod
    async def pick_save_as_target(self, text: str) -> Optional[SavedFile]:
        """Ask for a new file location and write ``text`` to it."""

    @abstractmethod
    async def save_to_target(self, identity: Any, text: str) -> None:
        """Overwrite a previously bound file."""

    @abstractmethod
    async def load_settings(self) -> Optional[dict]:
        """Return the persisted settings blob, or ``None`` if never saved."""

    @abstractmethod
    async def save_settings(self, settings: Settings) -> None:
        """Persist settings."""

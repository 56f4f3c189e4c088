"""Settings loading with legacy-shape migration, and the in-memory holder."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from notes_app.errors import StorageIOError
from notes_app.metrics import SETTINGS_SAVES
from notes_app.models import DEFAULT_FONT_SIZE, Settings, ThemeMode

if TYPE_CHECKING:
    from notes_app.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

_KNOWN_KEYS = frozenset(
    field.alias or name for name, field in Settings.model_fields.items()
)


def load_settings(raw: Any) -> Settings:
    """Build Settings from a persisted blob of any shape.

    Migrations run first: a boolean ``darkMode`` becomes ``themeMode``, and a
    missing or zero ``editorFontSize`` is seeded from ``fontSize``. Loaded fields then
    override defaults one by one; unknown or invalid fields are dropped.
    """
    if not isinstance(raw, dict):
        return Settings()

    data = dict(raw)
    dark_mode = data.pop("darkMode", None)
    if isinstance(dark_mode, bool):
        data["themeMode"] = (ThemeMode.DARK if dark_mode else ThemeMode.LIGHT).value
    if not data.get("editorFontSize"):
        data["editorFontSize"] = data.get("fontSize") or DEFAULT_FONT_SIZE

    known = {key: value for key, value in data.items() if key in _KNOWN_KEYS}
    while True:
        try:
            return Settings.model_validate(known)
        except ValidationError as exc:
            bad = {err["loc"][0] for err in exc.errors() if err["loc"]}
            bad &= known.keys()
            if not bad:
                return Settings()
            logger.warning("Ignoring invalid settings fields: %s", sorted(bad))
            for key in bad:
                known.pop(key)


class SettingsStore:
    """Holds the settings currently in effect and persists changes."""

    def __init__(
        self,
        gateway: "PersistenceGateway",
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._gateway = gateway
        self._notify = notify or (lambda message: None)
        self.current = Settings()

    async def load(self) -> Settings:
        """Read persisted settings; anything unreadable yields defaults."""
        try:
            raw = await self._gateway.load_settings()
        except StorageIOError as exc:
            logger.error("Failed to load settings: %s, using defaults", exc)
            raw = None
        self.current = load_settings(raw)
        return self.current

    async def save(self, settings: Settings) -> bool:
        """Apply settings immediately, then persist them.

        Persistence failures are reported but the new settings stay applied.
        """
        self.current = settings
        try:
            await self._gateway.save_settings(settings)
        except StorageIOError as exc:
            logger.error("Failed to save settings: %s", exc)
            SETTINGS_SAVES.labels(outcome="error").inc()
            self._notify("Failed to save settings.")
            return False
        SETTINGS_SAVES.labels(outcome="success").inc()
        return True

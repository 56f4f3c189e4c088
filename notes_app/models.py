"""Pydantic models for notes and user settings."""

from __future__ import annotations

import time
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

UNTITLED_NOTE = "Untitled Note"

DEFAULT_PRIMARY_COLOR = "#4f46e5"  # Indigo
DEFAULT_FONT_SIZE = 16

PRESET_COLORS: dict[str, str] = {
    "Indigo": "#4f46e5",
    "Blue": "#2563eb",
    "Purple": "#9333ea",
    "Pink": "#db2777",
    "Red": "#dc2626",
    "Orange": "#ea580c",
    "Green": "#16a34a",
    "Teal": "#0d9488",
    "Slate": "#475569",
}


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class Note(BaseModel):
    """A single markdown note with timestamps.

    Keys other than the five known ones are kept and written back out.
    """

    model_config = ConfigDict(populate_by_name=True, strict=True, extra="allow")

    id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
    title: str = Field(default=UNTITLED_NOTE, description="Note title")
    content: str = Field(default="", description="Markdown source")
    created_at: int = Field(
        default_factory=now_ms,
        alias="createdAt",
        frozen=True,
        description="Creation time, epoch milliseconds",
    )
    updated_at: int = Field(
        default=0,
        alias="updatedAt",
        description="Last mutation time, epoch milliseconds",
    )

    @model_validator(mode="before")
    @classmethod
    def _default_updated_at(cls, data):
        if isinstance(data, dict) and not any(
            key in data for key in ("updatedAt", "updated_at")
        ):
            created = data.get("createdAt", data.get("created_at"))
            if created is None:
                created = now_ms()
                data = {**data, "createdAt": created}
            data = {**data, "updatedAt": created}
        return data

    @model_validator(mode="after")
    def _check_timestamps(self) -> "Note":
        if self.updated_at < self.created_at:
            raise ValueError("updatedAt must not precede createdAt")
        return self

    @property
    def display_title(self) -> str:
        """Title shown in lists; empty titles fall back to the placeholder."""
        return self.title or UNTITLED_NOTE

    def to_wire(self) -> dict:
        """Dict in the on-disk field order with camelCase keys."""
        return self.model_dump(by_alias=True)


class ThemeMode(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    MATRIX = "matrix"


class Settings(BaseModel):
    """User preferences for theme and font sizing."""

    model_config = ConfigDict(populate_by_name=True)

    primary_color: str = Field(default=DEFAULT_PRIMARY_COLOR, alias="primaryColor")
    theme_mode: ThemeMode = Field(default=ThemeMode.LIGHT, alias="themeMode")
    font_size: int = Field(default=DEFAULT_FONT_SIZE, ge=12, le=20, alias="fontSize")
    editor_font_size: int = Field(
        default=DEFAULT_FONT_SIZE, ge=12, le=32, alias="editorFontSize"
    )

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")

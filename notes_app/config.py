"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

DEFAULT_DATA_DIR = Path.home() / ".local-notes"


class AppConfig(BaseSettings):
    """Application settings loaded from .env file or ``LOCAL_NOTES_*`` variables."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "LOCAL_NOTES_",
    }

    # Storage backend, chosen once at startup
    backend: Literal["native", "browser_handle"] = "native"

    # Per-install location for settings
    data_dir: Path = DEFAULT_DATA_DIR
    settings_filename: str = "settings.json"
    storage_filename: str = "storage.json"

    log_level: str = "INFO"

    # MCP server
    server_host: str = "0.0.0.0"
    server_port: int = 8001

    @property
    def settings_path(self) -> Path:
        """Settings file used by the native backend."""
        return self.data_dir / self.settings_filename

    @property
    def storage_path(self) -> Path:
        """Key-value blob used by the file-handle backend."""
        return self.data_dir / self.storage_filename

"""
Notes Workspace MCP Server

Exposes the notes application (file open/save/new, note editing, settings
and export) as tools over the Model Context Protocol. Runs with SSE
transport on the configured port.

File pickers are answered by the ``path`` argument of each tool call and
confirmation prompts by its ``discard_changes`` / ``confirm`` flag.
"""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Optional

import anyio
from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from notes_app.app import NotesApplication, build_gateway
from notes_app.backends.handle import QueuedHandlePicker
from notes_app.backends.native import QueuedPathDialogs
from notes_app.config import AppConfig
from notes_app.export import export_notes as write_export
from notes_app.models import Note, Settings

config = AppConfig()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger("notes_workspace")


# ---------------------------------------------------------------------------
# Tool-call interaction: answers prompts and collects notifications
# ---------------------------------------------------------------------------


class ToolInteraction:
    """Stands in for the user during a single tool call.

    Tool calls hold ``lock`` for their whole body, so they run one at a time
    even though the server handles each request in its own task.
    """

    def __init__(self, targets: QueuedPathDialogs | QueuedHandlePicker) -> None:
        self.targets = targets
        self.allow = False
        self.prompts: list[str] = []
        self.messages: list[str] = []
        self.lock = anyio.Lock()

    def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        logger.info("Confirmation requested: %s (answer=%s)", message, self.allow)
        return self.allow

    def notify(self, message: str) -> None:
        self.messages.append(message)

    @asynccontextmanager
    async def call(
        self,
        allow: bool = False,
        open_path: Optional[str] = None,
        save_path: Optional[str] = None,
    ):
        async with self.lock:
            self.allow = allow
            self.prompts = []
            self.messages = []
            if open_path:
                self.targets.queue_open(open_path)
            if save_path:
                self.targets.queue_save(save_path)
            try:
                yield self
            finally:
                self.allow = False
                self.targets.clear()


# ---------------------------------------------------------------------------
# Application + MCP server
# ---------------------------------------------------------------------------
if config.backend == "browser_handle":
    targets = QueuedHandlePicker()
    interaction = ToolInteraction(targets)
    gateway = build_gateway(config, picker=targets)
else:
    targets = QueuedPathDialogs()
    interaction = ToolInteraction(targets)
    gateway = build_gateway(config, dialogs=targets)

app = NotesApplication(config, gateway, interaction.confirm, interaction.notify)


@asynccontextmanager
async def lifespan(server: FastMCP):
    await app.start()
    yield


mcp = FastMCP(
    "notes-workspace",
    host=config.server_host,
    port=config.server_port,
    lifespan=lifespan,
)


def _session_payload(ok: bool) -> dict:
    state = app.session.state
    return {
        "ok": ok,
        "file_name": state.display_name,
        "bound": state.bound,
        "dirty": state.dirty,
        "backend": state.backend_kind.value,
        "note_count": len(app.store),
        "active_note_id": app.session.active_note_id,
        "prompts": list(interaction.prompts),
        "messages": list(interaction.messages),
    }


def _note_summary(note: Note) -> dict:
    return {
        "id": note.id,
        "title": note.display_title,
        "updatedAt": note.updated_at,
    }


# ---------------------------------------------------------------------------
# File tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def new_file(path: str, discard_changes: bool = False) -> dict:
    """Start a new, empty notes file at the given path.

    Args:
        path: Where to create the JSON file.
        discard_changes: Confirm closing the current notes.

    Returns:
        Dictionary describing the session after the call.
    """
    async with interaction.call(allow=discard_changes, save_path=path):
        ok = await app.session.new()
        logger.info("Tool new_file invoked, path=%s, ok=%s", path, ok)
        return _session_payload(ok)


@mcp.tool()
async def open_file(path: str, discard_changes: bool = False) -> dict:
    """Open an existing notes file, replacing the notes in memory.

    Args:
        path: JSON file to open.
        discard_changes: Confirm dropping unsaved changes.

    Returns:
        Dictionary describing the session after the call.
    """
    async with interaction.call(allow=discard_changes, open_path=path):
        ok = await app.session.open()
        logger.info("Tool open_file invoked, path=%s, ok=%s", path, ok)
        return _session_payload(ok)


@mcp.tool()
async def save_file(path: Optional[str] = None) -> dict:
    """Save notes to the current file.

    Args:
        path: Used only when no file is bound yet.

    Returns:
        Dictionary describing the session after the call.
    """
    async with interaction.call(save_path=path):
        ok = await app.session.save()
        logger.info("Tool save_file invoked, ok=%s", ok)
        return _session_payload(ok)


@mcp.tool()
async def save_file_as(path: str) -> dict:
    """Save notes to a new file and switch to it.

    Args:
        path: Destination JSON file.

    Returns:
        Dictionary describing the session after the call.
    """
    async with interaction.call(save_path=path):
        ok = await app.session.save_as()
        logger.info("Tool save_file_as invoked, path=%s, ok=%s", path, ok)
        return _session_payload(ok)


# ---------------------------------------------------------------------------
# Note tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def add_note(title: Optional[str] = None, content: Optional[str] = None) -> dict:
    """Create a note and make it the active one.

    Args:
        title: Note title; defaults to "Untitled Note".
        content: Markdown body.

    Returns:
        The new note.
    """
    async with interaction.call():
        note = app.session.add_note(title, content)
        logger.info("Tool add_note invoked, id=%s", note.id)
        return {"note": note.to_wire(), **_session_payload(True)}


@mcp.tool()
async def update_note(note_id: str, field: str, value: str) -> dict:
    """Change the title or content of a note.

    Args:
        note_id: Note to edit.
        field: Either "title" or "content".
        value: New value.
    """
    async with interaction.call():
        try:
            ok = app.session.update_note(note_id, field, value)
        except ValueError as exc:
            return {"error": str(exc)}
        logger.info("Tool update_note invoked, id=%s, field=%s, ok=%s", note_id, field, ok)
        return _session_payload(ok)


@mcp.tool()
async def delete_note(note_id: str, confirm: bool = False) -> dict:
    """Delete a note. Requires confirm=true.

    Args:
        note_id: Note to delete.
        confirm: Confirm the deletion.
    """
    async with interaction.call(allow=confirm):
        ok = app.session.delete_note(note_id)
        logger.info("Tool delete_note invoked, id=%s, ok=%s", note_id, ok)
        return _session_payload(ok)


@mcp.tool()
async def select_note(note_id: Optional[str] = None) -> dict:
    """Make a note the active one, or clear the selection."""
    async with interaction.call():
        note = app.session.select(note_id)
        return {"note": note.to_wire() if note else None, **_session_payload(note is not None)}


@mcp.tool()
async def list_notes(query: Optional[str] = None) -> dict:
    """List notes, most recently updated first.

    Args:
        query: Optional case-insensitive substring to match in title or content.

    Returns:
        Dictionary with matching notes and their count.
    """
    async with interaction.call():
        notes = app.store.search(query) if query else app.store.for_display()
        logger.info("Tool list_notes invoked, query='%s', found=%d", query or "", len(notes))
        return {"count": len(notes), "notes": [_note_summary(n) for n in notes]}


@mcp.tool()
async def get_note(note_id: str) -> dict:
    """Return a single note with its full content."""
    async with interaction.call():
        note = app.store.get(note_id)
        if note is None:
            return {"error": f"Note {note_id} not found"}
        return {"note": note.to_wire()}


# ---------------------------------------------------------------------------
# Settings + export tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def get_settings() -> dict:
    """Return the settings currently in effect."""
    async with interaction.call():
        return {"settings": app.settings.current.to_wire()}


@mcp.tool()
async def save_settings(
    primary_color: Optional[str] = None,
    theme_mode: Optional[str] = None,
    font_size: Optional[int] = None,
    editor_font_size: Optional[int] = None,
) -> dict:
    """Change one or more settings and persist them.

    Args:
        primary_color: Accent colour, e.g. "#4f46e5".
        theme_mode: "light", "dark" or "matrix".
        font_size: Interface font size, 12-20.
        editor_font_size: Editor font size, 12-32.
    """
    changes = {
        "primaryColor": primary_color,
        "themeMode": theme_mode,
        "fontSize": font_size,
        "editorFontSize": editor_font_size,
    }
    async with interaction.call():
        merged = {
            **app.settings.current.to_wire(),
            **{k: v for k, v in changes.items() if v is not None},
        }
        try:
            settings = Settings.model_validate(merged)
        except ValidationError as exc:
            return {"error": str(exc)}

        persisted = await app.settings.save(settings)
        logger.info("Tool save_settings invoked, persisted=%s", persisted)
        return {
            "settings": settings.to_wire(),
            "persisted": persisted,
            "messages": list(interaction.messages),
        }


@mcp.tool()
async def export_notes(path: str) -> dict:
    """Export every note as a markdown file inside a ZIP archive.

    Args:
        path: Archive path, or a directory to receive notes_export.zip.
    """
    async with interaction.call():
        try:
            archive = write_export(app.store.notes, path)
        except OSError as exc:
            logger.error("Export failed: %s", exc)
            return {"error": f"Export failed: {exc}"}
        return {"archive": str(archive), "count": len(app.store)}


@mcp.tool()
async def health_check() -> dict:
    """Check whether the notes server is healthy.

    Returns:
        Dictionary with server status, note count, and timestamp.
    """
    logger.info("Tool health_check invoked")
    async with interaction.call():
        return {
            "status": "healthy",
            "server": "notes-workspace",
            "backend": app.gateway.kind.value,
            "total_notes": len(app.store),
            "timestamp": datetime.now(UTC).isoformat(),
        }


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    logger.info("Starting Notes Workspace MCP server on port %d ...", config.server_port)
    mcp.run(transport="sse")

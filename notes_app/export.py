"""Export all notes as markdown files inside a ZIP archive."""

from __future__ import annotations

import logging
import re
import zipfile
from collections.abc import Iterable
from pathlib import Path

from notes_app.models import Note

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_NAME = "notes_export.zip"
FALLBACK_NAME = "untitled"

# Characters illegal in Windows or Unix filenames; other unicode is kept.
_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def safe_filename(title: str) -> str:
    """Filename stem for a note title."""
    cleaned = _ILLEGAL_CHARS.sub("_", title or "").strip()
    return cleaned or FALLBACK_NAME


def export_notes(notes: Iterable[Note], dest: Path | str) -> Path:
    """Write one ``<title>.md`` per note into a ZIP archive at ``dest``.

    A directory ``dest`` receives ``notes_export.zip``. Notes whose titles
    map to the same name get `` (2)``, `` (3)``... suffixes.
    """
    dest = Path(dest)
    if dest.is_dir():
        dest = dest / DEFAULT_ARCHIVE_NAME

    used: set[str] = set()
    count = 0
    with zipfile.ZipFile(dest, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for note in notes:
            stem = safe_filename(note.title)
            name = f"{stem}.md"
            n = 2
            while name.lower() in used:
                name = f"{stem} ({n}).md"
                n += 1
            used.add(name.lower())
            archive.writestr(name, note.content or "")
            count += 1

    logger.info("Exported %d notes to %s", count, dest)
    return dest

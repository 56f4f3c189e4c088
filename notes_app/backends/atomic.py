"""Whole-file writes that never expose a partially written target."""

from __future__ import annotations

import os
from pathlib import Path
from uuid import uuid4

import anyio


async def write_text_atomic(path: Path, text: str) -> None:
    """Write ``text`` to a sibling temp file, then rename it over ``path``.

    Raises:
        OSError: the directory is missing or not writable.
    """
    target = anyio.Path(path)
    tmp = target.with_name(f".{target.name}.{uuid4().hex[:8]}.tmp")
    try:
        await tmp.write_text(text, encoding="utf-8")
        await tmp.replace(target)
    except BaseException:
        await tmp.unlink(missing_ok=True)
        raise


def display_name(path: os.PathLike | str) -> str:
    return Path(path).name or str(path)

"""Locate the Takeout sidecar belonging to a media file."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


def find_sidecar(media: Path) -> Optional[Path]:
    """Return the sidecar for `media`, or None.

    `photo.jpg` -> `photo.jpg.json` is preferred. Takeout sometimes truncates
    long names inconsistently between a media file and its sidecar, so the
    extension is then shortened one character at a time: `photo.jp.json`,
    `photo.j.json`.
    """
    media = Path(media)
    name = media.name

    candidate = media.with_name(name + ".json")
    if candidate.is_file():
        return candidate

    base, dot, ext = name.rpartition(".")
    if not dot or not base:
        return None

    for length in range(len(ext) - 1, 0, -1):
        candidate = media.with_name(f"{base}.{ext[:length]}.json")
        if candidate.is_file():
            return candidate
    return None

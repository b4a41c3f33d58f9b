"""Per-format metadata writers.

Only JPEG is implemented. A new format plugs in by subclassing MetadataWriter
and listing its suffixes in `extensions`; the scanner picks up every
registered suffix automatically.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from takeout_exif.errors import NotFoundError
from takeout_exif.exif_fields import ExifFieldSet, merge
from takeout_exif.safe_write import commit
from takeout_exif.sidecar import SidecarRecord


class MetadataWriter:
    """Writes a SidecarRecord into one media file in place."""

    extensions: tuple[str, ...] = ()

    def __init__(self, use_utc: bool = True) -> None:
        self.use_utc = use_utc

    def apply(self, path: Path, record: SidecarRecord, backup: bool = False) -> None:
        raise NotImplementedError


class JpegExifWriter(MetadataWriter):
    extensions = (".jpg", ".jpeg")

    def apply(self, path: Path, record: SidecarRecord, backup: bool = False) -> None:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise NotFoundError(f"media not readable: {path} ({e.strerror or e})") from e

        existing = ExifFieldSet.from_jpeg(data)
        commit(path, merge(existing, record, use_utc=self.use_utc), backup=backup, original=data)


WRITERS: tuple[type[MetadataWriter], ...] = (JpegExifWriter,)


def supported_extensions() -> set[str]:
    return {ext for cls in WRITERS for ext in cls.extensions}


def writer_for(path: Path, use_utc: bool = True) -> Optional[MetadataWriter]:
    """Return a writer able to handle `path`, chosen by suffix."""
    suffix = Path(path).suffix.lower()
    for cls in WRITERS:
        if suffix in cls.extensions:
            return cls(use_utc=use_utc)
    return None

"""Lossless, crash-safe replacement of a JPEG's EXIF segment.

The new file is staged next to the original (`photo.jpg.tmp`), an optional
backup of the untouched original is taken (`photo.jpg.bak`), and the staged
file is renamed over the original. The rename stays on one filesystem, so the
original is either fully replaced or left byte-for-byte as it was.
"""

from __future__ import annotations

import contextlib
import os
import shutil
from pathlib import Path
from typing import Optional

from takeout_exif.errors import NotFoundError, SafeWriteError
from takeout_exif.exif_fields import ExifFieldSet
from takeout_exif.jpeg import replace_exif

TMP_SUFFIX = ".tmp"
BACKUP_SUFFIX = ".bak"


def tmp_path_for(path: Path) -> Path:
    return path.with_name(path.name + TMP_SUFFIX)


def backup_path_for(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def build_jpeg(original: bytes, fields: ExifFieldSet) -> bytes:
    """Return `original` with its Exif APP1 segment replaced by `fields`.

    APP0, XMP and every other header segment, and the scan data, are copied
    through byte for byte.
    """
    return replace_exif(original, fields.to_bytes())


def _stage_temp(tmp: Path, data: bytes) -> None:
    with open(tmp, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())


def commit(path: Path, fields: ExifFieldSet, backup: bool = False, original: Optional[bytes] = None) -> None:
    """Write `fields` into the JPEG at `path` in place.

    `original` is the file content the caller already read; it is read from
    `path` when not given. Raises NotFoundError if `path` cannot be read,
    MetadataWriteError if the container cannot be rebuilt, SafeWriteError if
    staging, backup or rename fails. In every failure case the original file
    is unchanged and no temp file is left behind.
    """
    path = Path(path)
    if original is None:
        try:
            original = path.read_bytes()
        except OSError as e:
            raise NotFoundError(f"media not readable: {path} ({e.strerror or e})") from e

    new_data = build_jpeg(original, fields)

    tmp = tmp_path_for(path)
    try:
        _stage_temp(tmp, new_data)
        if backup:
            # taken only once the new content is safely staged
            shutil.copy2(path, backup_path_for(path))
        os.replace(tmp, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            tmp.unlink(missing_ok=True)
        raise SafeWriteError(f"could not replace {path}: {e}") from e

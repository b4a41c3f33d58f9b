"""Exceptions raised while merging Takeout sidecars into media files.

Everything except FatalScanError is scoped to a single media file: the scanner
records it against that file and moves on to the next one.
"""

from __future__ import annotations


class TakeoutExifError(Exception):
    """Base class for all errors raised by this package."""


class NotFoundError(TakeoutExifError, FileNotFoundError):
    """A sidecar or media path is missing or unreadable."""


class MalformedInputError(TakeoutExifError, ValueError):
    """A sidecar exists but is not valid JSON."""


class MetadataWriteError(TakeoutExifError):
    """The EXIF codec rejected the container (corrupt or unsupported JPEG)."""


class SafeWriteError(TakeoutExifError, OSError):
    """Staging, backing up or replacing the file failed; the original is untouched."""


class FatalScanError(TakeoutExifError):
    """The root directory could not be listed, so no file can be discovered."""

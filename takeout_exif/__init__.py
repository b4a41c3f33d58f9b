"""Merge Google Takeout JSON sidecars into JPEG EXIF metadata."""

from takeout_exif.matching import find_sidecar
from takeout_exif.sidecar import SidecarRecord, parse_sidecar
from takeout_exif.writers import JpegExifWriter, MetadataWriter, writer_for

__version__ = "0.3.0"

__all__ = [
    "JpegExifWriter",
    "MetadataWriter",
    "SidecarRecord",
    "find_sidecar",
    "parse_sidecar",
    "writer_for",
]

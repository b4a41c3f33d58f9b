"""EXIF working set and the sidecar-to-EXIF merge.

The working set is piexif's IFD dictionary ("0th", "Exif", "GPS", "Interop",
"1st", "thumbnail"). Nothing in this module touches image data; it only
reads and produces the APP1 metadata payload.
"""

from __future__ import annotations

import copy
import struct
from datetime import datetime, timezone
from typing import Any, Optional

import piexif

from takeout_exif.coords import to_dms, to_fixed_point_rational
from takeout_exif.errors import MetadataWriteError
from takeout_exif.jpeg import EXIF_HEADER, exif_payload
from takeout_exif.sidecar import SidecarRecord

EXIF_DT_FORMAT = "%Y:%m:%d %H:%M:%S"
IFD_NAMES = ("0th", "Exif", "GPS", "Interop", "1st")

CHILD_IFDS = {
    "0th": {piexif.ImageIFD.ExifTag: "Exif", piexif.ImageIFD.GPSTag: "GPS"},
    "Exif": {piexif.ExifIFD.InteroperabilityTag: "Interop"},
}

# Standard Interop tags (written by most phones) missing from piexif's table.
STANDARD_TAGS = {
    "Interop": {
        0x0002: {"name": "InteroperabilityVersion", "type": piexif.TYPES.Undefined},
        0x1000: {"name": "RelatedImageFileFormat", "type": piexif.TYPES.Ascii},
        0x1001: {"name": "RelatedImageWidth", "type": piexif.TYPES.Long},
        0x1002: {"name": "RelatedImageLength", "type": piexif.TYPES.Long},
    },
}
for _ifd, _tags in STANDARD_TAGS.items():
    for _tag, _info in _tags.items():
        piexif.TAGS[_ifd].setdefault(_tag, _info)


def exif_datetime_str(ts: int, use_utc: bool = True) -> str:
    """Return a DateTimeOriginal-style string from a POSIX timestamp."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc) if use_utc else datetime.fromtimestamp(ts)
    return dt.strftime(EXIF_DT_FORMAT)


def _exif_time(ts: int, use_utc: bool) -> bytes:
    try:
        return exif_datetime_str(ts, use_utc).encode("ascii")
    except (OverflowError, OSError, ValueError) as e:
        raise MetadataWriteError(f"timestamp {ts} out of range: {e}") from e


def ifd_tag_ids(tiff: bytes) -> dict[str, list[int]]:
    """Tag ids stored in each IFD of a raw TIFF block, keyed like piexif."""
    endian = "<" if tiff[:2] == b"II" else ">"

    def u16(at):
        return struct.unpack(endian + "H", tiff[at:at + 2])[0]

    def u32(at):
        return struct.unpack(endian + "L", tiff[at:at + 4])[0]

    found: dict[str, list[int]] = {}
    pending = [("0th", u32(4))]
    while pending:
        name, offset = pending.pop()
        if not offset or name in found:
            continue
        count = u16(offset)
        entries = [offset + 2 + 12 * i for i in range(count)]
        found[name] = [u16(e) for e in entries]
        children = CHILD_IFDS.get(name, {})
        for entry, tag in zip(entries, found[name]):
            if tag in children:
                pending.append((children[tag], u32(entry + 8)))
        if name == "0th":
            pending.append(("1st", u32(offset + 2 + 12 * count)))
    return found


def unknown_tags(tiff: bytes) -> list[str]:
    """Tags piexif.load skips, as "ifd:0xTAG"."""
    return [
        f"{name}:0x{tag:04x}"
        for name, tags in ifd_tag_ids(tiff).items()
        for tag in tags
        if tag not in piexif.TAGS[name]
    ]


class ExifFieldSet:
    """Mutable tag -> value table for one image, grouped by IFD."""

    def __init__(self, exif_dict: Optional[dict] = None) -> None:
        self._ifds: dict[str, Any] = {name: {} for name in IFD_NAMES}
        self._ifds["thumbnail"] = None
        if exif_dict:
            for name in IFD_NAMES:
                self._ifds[name] = dict(exif_dict.get(name) or {})
            self._ifds["thumbnail"] = exif_dict.get("thumbnail")

    @classmethod
    def from_jpeg(cls, data: bytes) -> "ExifFieldSet":
        """Load the existing APP1 EXIF of a JPEG; no APP1 gives an empty set.

        Raises MetadataWriteError when `data` is not a JPEG, when the EXIF
        block cannot be decoded, or when it holds tags piexif cannot carry
        through a rewrite.
        """
        payload = exif_payload(data)
        if payload is None:
            return cls()
        try:
            exif_dict = piexif.load(payload)
            lost = unknown_tags(payload[len(EXIF_HEADER):])
        except Exception as e:  # piexif surfaces struct/Value/Index errors on bad IFDs
            raise MetadataWriteError(f"cannot read EXIF: {e}") from e
        if lost:
            raise MetadataWriteError(f"EXIF has tags that would be lost on rewrite: {', '.join(lost)}")
        return cls(exif_dict)

    def get(self, ifd: str, tag: int, default: Any = None) -> Any:
        return self._ifds[ifd].get(tag, default)

    def set(self, ifd: str, tag: int, value: Any) -> None:
        """Replace `tag` in `ifd`; an older value is dropped, never duplicated."""
        table = self._ifds[ifd]
        table.pop(tag, None)
        table[tag] = value

    def tags(self, ifd: str) -> dict[int, Any]:
        return dict(self._ifds[ifd])

    def as_dict(self) -> dict:
        return copy.deepcopy(self._ifds)

    def copy(self) -> "ExifFieldSet":
        return ExifFieldSet(self.as_dict())

    def to_bytes(self) -> bytes:
        """Serialize to an APP1 payload (starts with b"Exif\\0\\0")."""
        try:
            return piexif.dump(self._ifds)
        except Exception as e:  # piexif raises ValueError/struct.error on ill-typed tags
            raise MetadataWriteError(f"cannot encode EXIF: {e}") from e

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExifFieldSet):
            return NotImplemented
        return self._ifds == other._ifds

    def __repr__(self) -> str:
        counts = ", ".join(f"{n}={len(self._ifds[n])}" for n in IFD_NAMES)
        return f"ExifFieldSet({counts})"


def merge(
    existing: Optional[ExifFieldSet],
    record: SidecarRecord,
    use_utc: bool = True,
) -> ExifFieldSet:
    """Overlay the sidecar's time and position onto a copy of `existing`.

    Fields absent from the sidecar leave their tags as they were.
    """
    fields = existing.copy() if existing is not None else ExifFieldSet()

    if record.photo_taken_time is not None:
        taken = _exif_time(record.photo_taken_time, use_utc)
        fields.set("Exif", piexif.ExifIFD.DateTimeOriginal, taken)
        fields.set("Exif", piexif.ExifIFD.DateTimeDigitized, taken)

    if record.modification_time is not None:
        modified = _exif_time(record.modification_time, use_utc)
        fields.set("0th", piexif.ImageIFD.DateTime, modified)

    if record.has_coordinates:
        lat, lon = record.latitude, record.longitude
        fields.set("GPS", piexif.GPSIFD.GPSLatitudeRef, b"N" if lat >= 0 else b"S")
        fields.set("GPS", piexif.GPSIFD.GPSLatitude, to_dms(lat))
        fields.set("GPS", piexif.GPSIFD.GPSLongitudeRef, b"E" if lon >= 0 else b"W")
        fields.set("GPS", piexif.GPSIFD.GPSLongitude, to_dms(lon))

        if record.altitude is not None:
            fields.set("GPS", piexif.GPSIFD.GPSAltitudeRef, 0 if record.altitude >= 0 else 1)
            fields.set("GPS", piexif.GPSIFD.GPSAltitude, to_fixed_point_rational(abs(record.altitude)))

    return fields

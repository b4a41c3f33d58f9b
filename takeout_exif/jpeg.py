"""JPEG marker-segment surgery for the EXIF APP1 block.

A JPEG is SOI, a run of marker segments (APP0 JFIF, APP1 Exif/XMP, DQT, SOF,
DHT, ...), then SOS and the entropy-coded scan data. Only the header run is
split; everything from SOS on is carried as one opaque tail.
"""

from __future__ import annotations

import struct
from typing import Optional

from takeout_exif.errors import MetadataWriteError

SOI = b"\xff\xd8"
EXIF_HEADER = b"Exif\x00\x00"
APP0 = 0xE0
APP1 = 0xE1
SOS = 0xDA
EOI = 0xD9
# TEM and RST0-7 carry no length field
STANDALONE_MARKERS = frozenset([0x01, *range(0xD0, 0xD8)])
MAX_PAYLOAD = 0xFFFF - 2


def split_segments(data: bytes) -> tuple[list[bytes], bytes]:
    """Split `data` into its header segments and the tail starting at SOS.

    SOI is not part of the returned segments. Each segment keeps its marker,
    fill bytes and length field, so joining them rebuilds the header exactly.
    """
    if data[:2] != SOI:
        raise MetadataWriteError("not a JPEG (missing SOI marker)")

    segments = []
    pos, end = 2, len(data)
    while pos < end:
        if data[pos] != 0xFF:
            raise MetadataWriteError(f"corrupt JPEG: no marker at offset {pos}")
        start = pos
        while pos < end and data[pos] == 0xFF:
            pos += 1
        if pos >= end:
            break
        marker = data[pos]
        if marker in (SOS, EOI):
            return segments, data[start:]
        if marker in STANDALONE_MARKERS:
            pos += 1
            segments.append(data[start:pos])
            continue
        if pos + 3 > end:
            break
        (length,) = struct.unpack(">H", data[pos + 1 : pos + 3])
        stop = pos + 1 + length
        if length < 2 or stop > end:
            break
        segments.append(data[start:stop])
        pos = stop

    raise MetadataWriteError("corrupt JPEG: truncated before image data")


def marker_of(segment: bytes) -> int:
    return segment.lstrip(b"\xff")[0]


def is_exif_segment(segment: bytes) -> bool:
    body = segment.lstrip(b"\xff")
    return body[0] == APP1 and body[3:9] == EXIF_HEADER


def exif_payload(data: bytes) -> Optional[bytes]:
    """Return the first Exif APP1 payload (from b"Exif\\0\\0" on), or None."""
    segments, _ = split_segments(data)
    for seg in segments:
        if is_exif_segment(seg):
            return seg.lstrip(b"\xff")[3:]
    return None


def app1_segment(payload: bytes) -> bytes:
    if len(payload) > MAX_PAYLOAD:
        raise MetadataWriteError(f"EXIF block too large for one APP1 segment ({len(payload)} bytes)")
    return b"\xff" + bytes([APP1]) + struct.pack(">H", len(payload) + 2) + payload


def replace_exif(data: bytes, payload: bytes) -> bytes:
    """Return `data` with its Exif APP1 replaced by `payload`.

    The new segment takes the place of the first Exif APP1 and any further
    Exif APP1 segments are dropped. Without one, it goes right after the
    leading APP0 segments. Every other byte is kept as it was.
    """
    segments, tail = split_segments(data)
    new_segment = app1_segment(payload)

    out = []
    placed = False
    for seg in segments:
        if is_exif_segment(seg):
            if not placed:
                out.append(new_segment)
                placed = True
            continue
        out.append(seg)

    if not placed:
        at = 0
        while at < len(out) and marker_of(out[at]) == APP0:
            at += 1
        out.insert(at, new_segment)

    return SOI + b"".join(out) + tail

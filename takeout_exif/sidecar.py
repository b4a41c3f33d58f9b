"""Google Takeout JSON sidecar decoding.

A sidecar looks like::

    {
      "title": "IMG_0001.jpg",
      "description": "",
      "photoTakenTime": {"timestamp": "1631456389", "formatted": "..."},
      "creationTime": {"timestamp": "1631460000", "formatted": "..."},
      "modificationTime": {"timestamp": "1631470000", "formatted": "..."},
      "geoData": {"latitude": 52.52, "longitude": 13.40, "altitude": 34.5, ...},
      ...
    }

Only the fields above are read; everything else is ignored. Timestamps are
epoch seconds, wrapped in strings by Google.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from takeout_exif.errors import MalformedInputError, NotFoundError

# 0001-01-01T00:00:00Z .. 9999-12-31T23:59:59Z, the range datetime can format
MIN_TIMESTAMP = -62135596800
MAX_TIMESTAMP = 253402300799


@dataclass(frozen=True)
class SidecarRecord:
    photo_taken_time: Optional[int] = None
    creation_time: Optional[int] = None
    modification_time: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    title: Optional[str] = None
    description: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def has_relevant_data(self) -> bool:
        """True if there is a capture time or a position worth writing."""
        return self.photo_taken_time is not None or self.latitude is not None


def _node(doc: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a segment is missing."""
    cur = doc
    for part in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            ts = int(value)
        elif isinstance(value, str):
            ts = int(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return ts if MIN_TIMESTAMP <= ts <= MAX_TIMESTAMP else None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            v = float(value)
        elif isinstance(value, str):
            v = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return v if math.isfinite(v) else None


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return value if isinstance(value, str) else str(value)


def parse_sidecar(path: Path) -> SidecarRecord:
    """Decode a sidecar file into a SidecarRecord.

    Raises NotFoundError when the file cannot be read and MalformedInputError
    when it is not JSON. Missing or null nodes become None, never zero.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise NotFoundError(f"sidecar not readable: {path} ({e.strerror or e})") from e

    try:
        doc = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedInputError(f"invalid sidecar JSON: {path} ({e})") from e

    lat = _as_float(_node(doc, "geoData", "latitude"))
    lon = _as_float(_node(doc, "geoData", "longitude"))
    alt = _as_float(_node(doc, "geoData", "altitude"))

    # Takeout writes 0.0/0.0 when it has no location at all
    if lat == 0.0 and lon == 0.0:
        lat = lon = alt = None

    return SidecarRecord(
        photo_taken_time=_as_int(_node(doc, "photoTakenTime", "timestamp")),
        creation_time=_as_int(_node(doc, "creationTime", "timestamp")),
        modification_time=_as_int(_node(doc, "modificationTime", "timestamp")),
        latitude=lat,
        longitude=lon,
        altitude=alt,
        title=_as_text(_node(doc, "title")),
        description=_as_text(_node(doc, "description")),
    )

import json
import struct

import piexif
import pytest
from PIL import Image


@pytest.fixture
def make_jpeg(tmp_path):
    """Create a small JPEG, optionally carrying an EXIF dict."""

    def _make(name="IMG_0001.jpg", exif=None, size=(64, 48), directory=None):
        path = (directory or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.new("RGB", size, (30, 90, 200))
        kwargs = {"quality": 90}
        if exif is not None:
            kwargs["exif"] = piexif.dump(exif)
        img.save(path, "JPEG", **kwargs)
        return path

    return _make


@pytest.fixture
def write_sidecar(tmp_path):
    """Write a sidecar from a dict (JSON-encoded) or a raw string."""

    def _write(name, data, directory=None):
        path = (directory or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        text = data if isinstance(data, str) else json.dumps(data)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def insert_segment():
    """Splice a raw marker segment into a JPEG right after SOI."""

    def _insert(path, marker, payload):
        data = path.read_bytes()
        segment = bytes([0xFF, marker]) + struct.pack(">H", len(payload) + 2) + payload
        path.write_bytes(data[:2] + segment + data[2:])
        return path

    return _insert


@pytest.fixture
def tiff_block():
    """Build a little-endian TIFF block from IFDs of (tag, type, count, 4-byte value).

    IFDs are laid out in the given order starting at offset 8; pointer values
    must be computed by the caller.
    """

    def _build(ifds):
        out = b"II*\x00" + struct.pack("<L", 8)
        for entries in ifds:
            out += struct.pack("<H", len(entries))
            for tag, typ, count, value in entries:
                out += struct.pack("<HHL", tag, typ, count) + value
            out += struct.pack("<L", 0)
        return out

    return _build

import struct
from pathlib import Path

import piexif
import pytest

from takeout_exif.errors import MetadataWriteError
from takeout_exif.jpeg import APP1, EXIF_HEADER
from takeout_exif.safe_write import backup_path_for
from takeout_exif.sidecar import SidecarRecord
from takeout_exif.writers import JpegExifWriter, MetadataWriter, supported_extensions, writer_for


@pytest.mark.parametrize("name", ["a.jpg", "a.JPG", "a.jpeg", "a.JpEg"])
def test_writer_for_jpeg(name):
    assert isinstance(writer_for(name), JpegExifWriter)


@pytest.mark.parametrize("name", ["a.png", "a.heic", "a.mp4", "a"])
def test_writer_for_unsupported(name):
    assert writer_for(name) is None


def test_supported_extensions():
    assert supported_extensions() == {".jpg", ".jpeg"}


def test_writer_carries_time_reference():
    assert writer_for("a.jpg", use_utc=False).use_utc is False


def test_base_writer_is_abstract(tmp_path):
    with pytest.raises(NotImplementedError):
        MetadataWriter().apply(tmp_path / "a.jpg", SidecarRecord())


def test_apply_keeps_unrelated_tags(make_jpeg):
    path = make_jpeg(
        exif={
            "0th": {piexif.ImageIFD.Make: b"Canon", piexif.ImageIFD.Model: b"EOS 5D"},
            "Exif": {piexif.ExifIFD.DateTimeOriginal: b"1999:12:31 23:59:59"},
        }
    )

    JpegExifWriter().apply(path, SidecarRecord(photo_taken_time=1631456389), backup=True)

    exif = piexif.load(str(path))
    assert exif["0th"][piexif.ImageIFD.Make] == b"Canon"
    assert exif["0th"][piexif.ImageIFD.Model] == b"EOS 5D"
    assert exif["Exif"][piexif.ExifIFD.DateTimeOriginal] == b"2021:09:12 14:19:49"
    assert exif["Exif"][piexif.ExifIFD.DateTimeDigitized] == b"2021:09:12 14:19:49"
    assert backup_path_for(path).exists()


def test_apply_twice_is_idempotent(make_jpeg):
    path = make_jpeg()
    record = SidecarRecord(photo_taken_time=1631456389, modification_time=1631470000, latitude=-33.8688, longitude=151.2093, altitude=58.0)
    writer = JpegExifWriter()

    writer.apply(path, record)
    first = path.read_bytes()
    writer.apply(path, record)

    assert path.read_bytes() == first


def test_apply_rejects_non_jpeg_content(tmp_path):
    path = tmp_path / "IMG_0001.jpg"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)

    with pytest.raises(MetadataWriteError):
        JpegExifWriter().apply(path, SidecarRecord(photo_taken_time=1631456389))


def test_apply_reads_the_file_once(make_jpeg, monkeypatch):
    path = make_jpeg()
    reads = []
    real_read_bytes = Path.read_bytes

    def counting_read_bytes(self):
        reads.append(self)
        return real_read_bytes(self)

    monkeypatch.setattr(Path, "read_bytes", counting_read_bytes)

    JpegExifWriter().apply(path, SidecarRecord(photo_taken_time=1631456389))

    assert reads == [path]


def test_apply_leaves_file_with_unknown_tags_alone(make_jpeg, insert_segment, tiff_block):
    tiff = tiff_block([[(0xABCD, 3, 1, struct.pack("<HH", 7, 0))]])
    path = insert_segment(make_jpeg(), APP1, EXIF_HEADER + tiff)
    before = path.read_bytes()

    with pytest.raises(MetadataWriteError):
        JpegExifWriter().apply(path, SidecarRecord(photo_taken_time=1631456389), backup=True)

    assert path.read_bytes() == before
    assert not backup_path_for(path).exists()

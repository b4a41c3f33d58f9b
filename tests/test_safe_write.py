import piexif
import pytest
from PIL import Image

from takeout_exif import safe_write
from takeout_exif.errors import MetadataWriteError, NotFoundError, SafeWriteError
from takeout_exif.exif_fields import ExifFieldSet, merge
from takeout_exif.jpeg import APP1, is_exif_segment, split_segments
from takeout_exif.safe_write import backup_path_for, commit, tmp_path_for
from takeout_exif.sidecar import SidecarRecord

RECORD = SidecarRecord(photo_taken_time=1631456389, latitude=52.520008, longitude=13.404954, altitude=34.5)
XMP = b"http://ns.adobe.com/xap/1.0/\x00<x:xmpmeta xmlns:x='adobe:ns:meta/'/>"


def non_exif(segments):
    return [s for s in segments if not is_exif_segment(s)]


@pytest.fixture
def jpeg(make_jpeg):
    return make_jpeg("IMG_0001.jpg", size=(160, 120))


def test_commit_with_backup(jpeg):
    original = jpeg.read_bytes()

    commit(jpeg, merge(None, RECORD), backup=True)

    assert backup_path_for(jpeg).read_bytes() == original
    assert not tmp_path_for(jpeg).exists()
    exif = piexif.load(str(jpeg))
    assert exif["Exif"][piexif.ExifIFD.DateTimeOriginal] == b"2021:09:12 14:19:49"
    assert exif["GPS"][piexif.GPSIFD.GPSLatitudeRef] == b"N"


def test_image_data_is_untouched(jpeg):
    original = jpeg.read_bytes()
    with Image.open(jpeg) as im:
        pixels = im.tobytes()

    commit(jpeg, merge(None, RECORD))

    before, before_tail = split_segments(original)
    after, after_tail = split_segments(jpeg.read_bytes())
    assert after_tail == before_tail
    assert non_exif(after) == non_exif(before)
    assert after[0][4:9] == b"JFIF\x00"
    with Image.open(jpeg) as im:
        assert im.tobytes() == pixels


def test_exif_behind_xmp_is_replaced_not_duplicated(make_jpeg, insert_segment):
    path = make_jpeg("IMG_0002.jpg", exif={"Exif": {piexif.ExifIFD.DateTimeOriginal: b"1999:12:31 23:59:59"}})
    insert_segment(path, APP1, XMP)

    for _ in range(2):
        commit(path, merge(ExifFieldSet.from_jpeg(path.read_bytes()), RECORD))

    segments, _ = split_segments(path.read_bytes())
    assert sum(is_exif_segment(s) for s in segments) == 1
    assert segments[0].endswith(XMP)
    assert piexif.load(str(path))["Exif"][piexif.ExifIFD.DateTimeOriginal] == b"2021:09:12 14:19:49"


def test_commit_uses_given_original_bytes(jpeg, make_jpeg):
    other = make_jpeg("other.jpg", size=(32, 32)).read_bytes()

    commit(jpeg, merge(None, RECORD), original=other)

    assert split_segments(jpeg.read_bytes())[1] == split_segments(other)[1]


def test_no_backup_by_default(jpeg):
    commit(jpeg, merge(None, RECORD))

    assert not backup_path_for(jpeg).exists()
    assert not tmp_path_for(jpeg).exists()


def test_backup_overwrites_previous_backup(jpeg):
    backup_path_for(jpeg).write_bytes(b"stale")
    original = jpeg.read_bytes()

    commit(jpeg, merge(None, RECORD), backup=True)

    assert backup_path_for(jpeg).read_bytes() == original


def test_second_commit_is_stable(jpeg):
    commit(jpeg, merge(ExifFieldSet.from_jpeg(jpeg.read_bytes()), RECORD))
    first = piexif.load(str(jpeg))

    commit(jpeg, merge(ExifFieldSet.from_jpeg(jpeg.read_bytes()), RECORD))
    second = piexif.load(str(jpeg))

    assert second == first


def test_staging_failure_leaves_original(jpeg, monkeypatch):
    original = jpeg.read_bytes()

    def broken_stage(tmp, data):
        tmp.write_bytes(data[:10])
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(safe_write, "_stage_temp", broken_stage)

    with pytest.raises(SafeWriteError) as info:
        commit(jpeg, merge(None, RECORD), backup=True)

    assert isinstance(info.value, OSError)
    assert jpeg.read_bytes() == original
    assert not tmp_path_for(jpeg).exists()
    assert not backup_path_for(jpeg).exists()


def test_rename_failure_leaves_original(jpeg, monkeypatch):
    original = jpeg.read_bytes()

    def broken_replace(src, dst):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(safe_write.os, "replace", broken_replace)

    with pytest.raises(SafeWriteError):
        commit(jpeg, merge(None, RECORD))

    assert jpeg.read_bytes() == original
    assert not tmp_path_for(jpeg).exists()


def test_not_a_jpeg(tmp_path):
    path = tmp_path / "fake.jpg"
    path.write_bytes(b"GIF89a not really a jpeg")

    with pytest.raises(MetadataWriteError):
        commit(path, merge(None, RECORD))

    assert path.read_bytes() == b"GIF89a not really a jpeg"
    assert not tmp_path_for(path).exists()


def test_missing_media(tmp_path):
    with pytest.raises(NotFoundError):
        commit(tmp_path / "gone.jpg", merge(None, RECORD))

import asyncio
import io

import pytest
from PIL import Image

from conftest import image_bytes
from picmark.errors import DecodeError
from picmark.image_io import (
    decode_image,
    generate_thumbnail,
    is_image_file,
    mime_type_for,
    open_image_fix_orientation,
    probe_dimensions,
    probe_dimensions_async,
)


def rotated_jpeg(size=(40, 20), orientation=6):
    img = Image.new("RGB", size, (255, 0, 0))
    exif = Image.Exif()
    exif[0x0112] = orientation
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif.tobytes())
    return buf.getvalue()


@pytest.mark.parametrize("fmt", ["PNG", "JPEG", "GIF", "WEBP", "BMP"])
def test_probe_dimensions(fmt):
    assert probe_dimensions(image_bytes((37, 21), fmt=fmt)) == (37, 21)


def test_probe_swaps_for_rotated_orientation():
    assert probe_dimensions(rotated_jpeg(orientation=6)) == (20, 40)
    assert probe_dimensions(rotated_jpeg(orientation=3)) == (40, 20)


@pytest.mark.parametrize("data", [b"", b"not an image", b"\x89PNG\r\n\x1a\n" + b"\x00" * 8])
def test_probe_rejects_garbage(data):
    with pytest.raises(DecodeError):
        probe_dimensions(data)


def test_probe_async():
    assert asyncio.run(probe_dimensions_async(image_bytes((12, 34)))) == (12, 34)


def test_probe_async_propagates_decode_error():
    with pytest.raises(DecodeError):
        asyncio.run(probe_dimensions_async(b"garbage"))


def test_decode_image_applies_orientation():
    img = decode_image(rotated_jpeg(orientation=6))
    assert img.size == (20, 40)
    # the decoded image no longer depends on the source buffer
    img.load()


def test_decode_image_matches_probe():
    data = rotated_jpeg(size=(50, 30), orientation=8)
    assert decode_image(data).size == probe_dimensions(data)


def test_decode_rejects_garbage():
    with pytest.raises(DecodeError):
        decode_image(b"\xff\xd8\xff garbage")


def test_open_image_fix_orientation(tmp_path):
    path = tmp_path / "r.jpg"
    path.write_bytes(rotated_jpeg(orientation=6))
    assert open_image_fix_orientation(str(path)).size == (20, 40)
    with pytest.raises(DecodeError):
        bad = tmp_path / "bad.jpg"
        bad.write_bytes(b"nope")
        open_image_fix_orientation(str(bad))


def test_generate_thumbnail(tmp_path):
    path = tmp_path / "big.png"
    Image.new("RGB", (400, 200)).save(path)
    thumb = generate_thumbnail(str(path), max_size=100)
    assert thumb.size == (100, 50)


@pytest.mark.parametrize("name, mime", [
    ("a.jpg", "image/jpeg"),
    ("a.JPEG", "image/jpeg"),
    ("a.png", "image/png"),
    ("a.gif", "image/gif"),
    ("a.webp", "image/webp"),
    ("a.tiff", "application/octet-stream"),
    ("noext", "application/octet-stream"),
])
def test_mime_type_for(name, mime):
    assert mime_type_for(name) == mime


def test_is_image_file():
    assert is_image_file("photo.JPG")
    assert is_image_file("/x/y.webp")
    assert not is_image_file("notes.txt")

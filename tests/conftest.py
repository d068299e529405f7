"""Shared fixtures: small in-memory images and an isolated settings file."""

import io

import pytest
from PIL import Image


def image_bytes(size=(64, 48), color=(0, 0, 0), fmt="PNG", mode="RGB", **save_kwargs):
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


@pytest.fixture
def black_image():
    return Image.new("RGB", (200, 100), (0, 0, 0))


@pytest.fixture
def settings_path(tmp_path, monkeypatch):
    """Point the config store at a sandboxed settings file."""
    path = tmp_path / "settings.json"
    monkeypatch.setenv("PICMARK_SETTINGS", str(path))
    return path


@pytest.fixture
def image_dir(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    Image.new("RGB", (120, 80), (10, 20, 30)).save(src / "a.jpg", format="JPEG")
    Image.new("RGBA", (90, 60), (200, 100, 50, 255)).save(src / "b.png", format="PNG")
    return src

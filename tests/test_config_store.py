import dataclasses
import json
import logging

from picmark.config import DEFAULT_CONFIG
from picmark.config_store import STORAGE_KEY, ConfigStore, default_settings_path

CONFIG = dataclasses.replace(
    DEFAULT_CONFIG, enabled=True, text="stored", color=(1, 2, 3), rotation=45, fullscreen=True,
)


def test_env_var_selects_settings_file(settings_path):
    assert default_settings_path() == settings_path
    assert ConfigStore().path == settings_path


def test_missing_file_gives_defaults(settings_path):
    assert ConfigStore().load_watermark_config() == DEFAULT_CONFIG
    assert not settings_path.exists()


def test_save_then_load(settings_path):
    store = ConfigStore()
    assert store.save_watermark_config(CONFIG) is True
    assert ConfigStore().load_watermark_config() == CONFIG

    raw = json.loads(settings_path.read_text(encoding="utf-8"))
    stored = json.loads(raw[STORAGE_KEY])
    assert stored["color"] == "#010203"


def test_partial_stored_config_is_merged(settings_path):
    settings_path.write_text(json.dumps({STORAGE_KEY: json.dumps({"text": "only text"})}))
    cfg = ConfigStore().load_watermark_config()
    assert cfg == dataclasses.replace(DEFAULT_CONFIG, text="only text")


def test_corrupt_file_falls_back_and_logs(settings_path, caplog):
    settings_path.write_text("{ not json")
    with caplog.at_level(logging.ERROR):
        assert ConfigStore().load_watermark_config() == DEFAULT_CONFIG
    assert "Failed to load watermark config" in caplog.text


def test_invalid_stored_values_fall_back(settings_path):
    settings_path.write_text(json.dumps({STORAGE_KEY: json.dumps({"opacity": 7})}))
    assert ConfigStore().load_watermark_config() == DEFAULT_CONFIG


def test_clear(settings_path):
    store = ConfigStore()
    store.save_watermark_config(CONFIG)
    store.set("other", 1)
    assert store.clear_watermark_config() is True
    assert store.load_watermark_config() == DEFAULT_CONFIG
    assert store.get("other") == 1


def test_write_failure_is_not_raised(tmp_path, caplog):
    # a directory where the file should be
    store = ConfigStore(tmp_path)
    with caplog.at_level(logging.ERROR):
        assert store.save_watermark_config(CONFIG) is False
        assert store.clear_watermark_config() is False
        assert store.load_watermark_config() == DEFAULT_CONFIG
    assert "Failed to save watermark config" in caplog.text


def test_creates_parent_directory(tmp_path):
    store = ConfigStore(tmp_path / "nested" / "dir" / "settings.json")
    assert store.save_watermark_config(CONFIG)
    assert store.path.exists()


def test_generic_keys(settings_path):
    store = ConfigStore()
    assert store.get("missing", "fallback") == "fallback"
    store.set("k", {"a": 1})
    assert store.get("k") == {"a": 1}
    store.delete("k")
    assert store.get("k") is None

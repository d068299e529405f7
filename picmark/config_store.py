# picmark/config_store.py
import json
import logging
import os
from pathlib import Path

from picmark.config import DEFAULT_CONFIG, merge_config
from picmark.errors import ConfigurationError

logger = logging.getLogger(__name__)

APP_DIR = Path.home() / '.picmark'
SETTINGS_FILE = APP_DIR / 'settings.json'
SETTINGS_ENV = 'PICMARK_SETTINGS'
STORAGE_KEY = 'watermark_config'


def default_settings_path():
    env = os.environ.get(SETTINGS_ENV)
    return Path(env) if env else SETTINGS_FILE


class ConfigStore:
    """
    基于 JSON 文件的简单键值存储。
    水印配置保存在 watermark_config 键下；读写失败只记录日志，不向外抛出。
    """

    def __init__(self, path=None):
        self.path = Path(path) if path else default_settings_path()

    def _read_all(self):
        """读取整个设置文件，文件不存在时返回空字典"""
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"设置文件格式错误: {self.path}")
        return data

    def _write_all(self, data):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4, ensure_ascii=False)
        os.replace(tmp, self.path)

    def get(self, key, default=None):
        return self._read_all().get(key, default)

    def set(self, key, value):
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key):
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)

    def load_watermark_config(self):
        """读取上次使用的水印配置，与默认值合并；任何失败都退回默认配置"""
        try:
            stored = self.get(STORAGE_KEY)
            if stored:
                if isinstance(stored, str):
                    stored = json.loads(stored)
                return merge_config(stored).validate()
        except (OSError, ValueError, TypeError, AttributeError, ConfigurationError) as e:
            logger.error("Failed to load watermark config: %s", e)
        return DEFAULT_CONFIG

    def save_watermark_config(self, config):
        try:
            self.set(STORAGE_KEY, json.dumps(config.to_dict(), ensure_ascii=False))
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save watermark config: %s", e)
            return False

    def clear_watermark_config(self):
        try:
            self.delete(STORAGE_KEY)
            return True
        except (OSError, ValueError) as e:
            logger.error("Failed to clear watermark config: %s", e)
            return False

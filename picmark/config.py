# picmark/config.py
"""水印配置：默认值、合并规则与校验。

配置对象在一次合成调用中是不可变的；存储层读出的部分配置通过
merge_config 与默认值逐字段合并。
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields, asdict
from typing import Any, Mapping, Optional, Tuple

from PIL import ImageColor

from picmark.errors import ConfigurationError

RGBColor = Tuple[int, int, int]

# 九宫格位置 -> (水平对齐, 垂直对齐)
POSITIONS = {
    "top-left": ("start", "start"),
    "top-center": ("center", "start"),
    "top-right": ("end", "start"),
    "center-left": ("start", "center"),
    "center": ("center", "center"),
    "center-right": ("end", "center"),
    "bottom-left": ("start", "end"),
    "bottom-center": ("center", "end"),
    "bottom-right": ("end", "end"),
}

_NUMERIC_FIELDS = ("size", "opacity", "spacing", "rotation", "padding")
_BOOL_FIELDS = ("enabled", "fullscreen")


def parse_color(value: Any) -> RGBColor:
    """把 '#RRGGBB'、颜色名或 (r,g,b[,a]) 序列解析成 RGB 三元组"""
    if isinstance(value, str):
        try:
            rgb = ImageColor.getrgb(value.strip())
        except ValueError as e:
            raise ConfigurationError(f"无法识别的颜色: {value!r}") from e
        return tuple(rgb[:3])
    if isinstance(value, (list, tuple)) and len(value) in (3, 4):
        try:
            rgb = tuple(int(c) for c in value[:3])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"无法识别的颜色: {value!r}") from e
        if any(c < 0 or c > 255 for c in rgb):
            raise ConfigurationError(f"颜色分量必须在 0..255 之间: {value!r}")
        return rgb
    raise ConfigurationError(f"无法识别的颜色: {value!r}")


def color_to_hex(color: RGBColor) -> str:
    return "#{:02X}{:02X}{:02X}".format(*color)


def normalize_position(value: Any) -> str:
    return str(value).strip().lower().replace("_", "-")


@dataclass(frozen=True)
class WatermarkConfig:
    enabled: bool = False
    text: str = ""
    position: str = "bottom-right"
    size: float = 24
    color: RGBColor = (255, 255, 255)
    opacity: float = 0.7
    fullscreen: bool = False
    spacing: float = 20
    rotation: float = 0
    padding: float = 0
    font_path: Optional[str] = None

    @property
    def active(self) -> bool:
        """是否真的需要绘制水印（关闭或空文本都视为关闭）"""
        return bool(self.enabled and self.text)

    def validate(self) -> "WatermarkConfig":
        """校验数值字段，非法时抛出 ConfigurationError；返回自身便于链式调用"""
        for name in _NUMERIC_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) \
                    or not math.isfinite(value):
                raise ConfigurationError(f"{name} 必须是有限数值: {value!r}")
        if self.size <= 0:
            raise ConfigurationError(f"size 必须为正数: {self.size!r}")
        if not 0 <= self.opacity <= 1:
            raise ConfigurationError(f"opacity 必须在 [0, 1] 之间: {self.opacity!r}")
        if self.spacing < 0:
            raise ConfigurationError(f"spacing 不能为负: {self.spacing!r}")
        if self.padding < 0:
            raise ConfigurationError(f"padding 不能为负: {self.padding!r}")
        if self.position not in POSITIONS:
            raise ConfigurationError(f"未知的位置: {self.position!r}")
        if not isinstance(self.text, str):
            raise ConfigurationError(f"text 必须是字符串: {self.text!r}")
        parse_color(self.color)
        return self

    def to_dict(self) -> dict:
        """JSON 友好的字典，颜色写成 #RRGGBB"""
        data = asdict(self)
        data["color"] = color_to_hex(self.color)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WatermarkConfig":
        return merge_config(data)


def _coerce(name: str, value: Any) -> Any:
    if name in _BOOL_FIELDS:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if name in _NUMERIC_FIELDS:
        if isinstance(value, bool):
            raise ConfigurationError(f"{name} 必须是数值: {value!r}")
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{name} 必须是数值: {value!r}") from e
    if name == "color":
        return parse_color(value)
    if name == "position":
        return normalize_position(value)
    if name == "text":
        return str(value)
    if name == "font_path":
        return str(value) if value else None
    return value


def merge_config(
    partial: Optional[Mapping[str, Any]],
    defaults: WatermarkConfig = None,
) -> WatermarkConfig:
    """用 partial 中存在的字段逐个覆盖默认值。

    未知字段忽略，缺失或为 None 的字段取默认值。只做类型转换，不做范围校验，
    范围校验由 WatermarkConfig.validate 负责。
    """
    if defaults is None:
        defaults = DEFAULT_CONFIG
    if not partial:
        return defaults
    values = {}
    for f in fields(WatermarkConfig):
        if f.name in partial and partial[f.name] is not None:
            values[f.name] = _coerce(f.name, partial[f.name])
        else:
            values[f.name] = getattr(defaults, f.name)
    return WatermarkConfig(**values)


DEFAULT_CONFIG = WatermarkConfig()

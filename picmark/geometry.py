# picmark/geometry.py
"""旋转包围盒与水印锚点规划（九宫格单点 / 全屏平铺）。

锚点是旋转后包围盒的左上角，文字块绘制在 (x + rw/2, y + rh/2) 的中心。
"""
from __future__ import annotations

import math
from typing import List, Tuple

from picmark.config import POSITIONS, WatermarkConfig

Anchor = Tuple[float, float]
Size = Tuple[float, float]


def rotated_extent(text_width: float, text_height: float, rotation: float) -> Size:
    """文字框按 rotation 度旋转后的轴对齐包围盒 (rw, rh)"""
    rad = rotation * math.pi / 180
    cos = abs(math.cos(rad))
    sin = abs(math.sin(rad))
    return (
        text_width * cos + text_height * sin,
        text_width * sin + text_height * cos,
    )


def axis_offset(align: str, canvas_dim: float, rotated_dim: float, padding: float) -> float:
    # 居中不使用 padding
    if align == "start":
        return padding
    if align == "end":
        return canvas_dim - rotated_dim - padding
    if align == "center":
        return (canvas_dim - rotated_dim) / 2
    raise ValueError(f"unknown alignment: {align!r}")


def resolve_horizontal(position: str) -> str:
    return POSITIONS[position][0]


def resolve_vertical(position: str) -> str:
    return POSITIONS[position][1]


def plan_single(position: str, padding: float, canvas_size: Size, rotated_size: Size) -> Anchor:
    canvas_w, canvas_h = canvas_size
    rw, rh = rotated_size
    x = axis_offset(resolve_horizontal(position), canvas_w, rw, padding)
    y = axis_offset(resolve_vertical(position), canvas_h, rh, padding)
    return (x, y)


def plan_tiled(spacing: float, canvas_size: Size, rotated_size: Size) -> List[Anchor]:
    """全屏平铺的锚点网格。

    在网格四周各多算一圈（行列范围 [-1, n+1)），保证旋转后边角也被覆盖。
    """
    canvas_w, canvas_h = canvas_size
    pitch_x = rotated_size[0] + spacing
    pitch_y = rotated_size[1] + spacing
    if pitch_x <= 0 or pitch_y <= 0:
        raise ValueError(f"tile pitch must be positive, got ({pitch_x}, {pitch_y})")

    cols = math.ceil(canvas_w / pitch_x)
    rows = math.ceil(canvas_h / pitch_y)
    anchors = []
    for row in range(-1, rows + 1):
        for col in range(-1, cols + 1):
            anchors.append((col * pitch_x, row * pitch_y))
    return anchors


def plan_anchors(config: WatermarkConfig, canvas_size: Size, rotated_size: Size) -> List[Anchor]:
    """按配置选择平铺或单点策略，二者互斥"""
    if config.fullscreen:
        return plan_tiled(config.spacing, canvas_size, rotated_size)
    return [plan_single(config.position, config.padding, canvas_size, rotated_size)]

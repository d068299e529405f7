import dataclasses
import math

import pytest

from picmark.config import DEFAULT_CONFIG, POSITIONS
from picmark.geometry import (
    axis_offset,
    plan_anchors,
    plan_single,
    plan_tiled,
    resolve_horizontal,
    resolve_vertical,
    rotated_extent,
)
from picmark.watermark import load_font, measure_text

ANGLES = [0, 15, 30, 45, 60, 90, 120, 179, -45, 270, 361.5]


def test_rotated_extent_identity_at_zero():
    assert rotated_extent(100, 20, 0) == (100, 20)


def test_rotated_extent_swaps_at_ninety():
    rw, rh = rotated_extent(100, 20, 90)
    assert rw == pytest.approx(20)
    assert rh == pytest.approx(100)


@pytest.mark.parametrize("angle", ANGLES)
def test_rotated_extent_has_period_180(angle):
    assert rotated_extent(80, 24, angle) == pytest.approx(rotated_extent(80, 24, angle + 180))


def test_rotated_extent_at_45():
    rw, rh = rotated_extent(100, 20, 45)
    assert rw == pytest.approx(120 * math.sqrt(2) / 2)
    assert rh == pytest.approx(rw)


@pytest.mark.parametrize("position, expected", [
    ("top-left", (5, 5)),
    ("top-center", (350, 5)),
    ("top-right", (695, 5)),
    ("center-left", (5, 290)),
    ("center", (350, 290)),
    ("center-right", (695, 290)),
    ("bottom-left", (5, 575)),
    ("bottom-center", (350, 575)),
    ("bottom-right", (695, 575)),
])
def test_plan_single_nine_positions(position, expected):
    assert plan_single(position, 5, (800, 600), (100, 20)) == expected


@pytest.mark.parametrize("p", [0, 3, 17.5])
def test_top_left_anchor_is_padding(p):
    assert plan_single("top-left", p, (640, 480), (123.4, 56.7)) == (p, p)


def test_bottom_right_anchor():
    W, H, rw, rh, p = 640, 480, 123.4, 56.7, 9
    assert plan_single("bottom-right", p, (W, H), (rw, rh)) == (W - rw - p, H - rh - p)


def test_center_ignores_padding():
    base = plan_single("center", 0, (640, 480), (100, 40))
    for p in (1, 10, 250):
        assert plan_single("center", p, (640, 480), (100, 40)) == base


def test_axis_resolvers():
    for position in POSITIONS:
        h, v = resolve_horizontal(position), resolve_vertical(position)
        assert h in ("start", "center", "end")
        assert v in ("start", "center", "end")
    assert resolve_horizontal("top-right") == "end"
    assert resolve_vertical("top-right") == "start"
    assert resolve_horizontal("bottom-center") == "center"


def test_axis_offset_rejects_unknown_alignment():
    with pytest.raises(ValueError):
        axis_offset("middle", 100, 10, 0)


def test_plan_tiled_covers_grid_with_overscan():
    W, H, rw, rh, s = 800, 600, 100, 30, 20
    anchors = plan_tiled(s, (W, H), (rw, rh))
    cols = math.ceil(W / (rw + s))
    rows = math.ceil(H / (rh + s))
    xs = sorted({x for x, _ in anchors})
    ys = sorted({y for _, y in anchors})
    assert xs == [c * (rw + s) for c in range(-1, cols + 1)]
    assert ys == [r * (rh + s) for r in range(-1, rows + 1)]
    assert len(anchors) == (cols + 2) * (rows + 2)
    # the last in-range column and the one past it are both present
    assert (cols - 1) * (rw + s) in xs
    assert cols * (rw + s) in xs
    assert -(rw + s) in xs


def test_plan_tiled_zero_spacing_is_edge_to_edge():
    anchors = plan_tiled(0, (300, 200), (50, 25))
    xs = sorted({x for x, _ in anchors})
    ys = sorted({y for _, y in anchors})
    assert xs == [c * 50 for c in range(-1, 7)]
    assert ys == [r * 25 for r in range(-1, 9)]


def test_plan_tiled_rejects_zero_pitch():
    with pytest.raises(ValueError):
        plan_tiled(0, (300, 200), (0, 25))


def test_plan_anchors_single_mode():
    cfg = dataclasses.replace(DEFAULT_CONFIG, position="top-left", padding=4)
    assert plan_anchors(cfg, (100, 100), (10, 10)) == [(4, 4)]


def test_plan_anchors_fullscreen_ignores_position():
    a = dataclasses.replace(DEFAULT_CONFIG, fullscreen=True, position="top-left", padding=30)
    b = dataclasses.replace(DEFAULT_CONFIG, fullscreen=True, position="bottom-right")
    assert plan_anchors(a, (400, 300), (80, 24)) == plan_anchors(b, (400, 300), (80, 24))
    assert len(plan_anchors(a, (400, 300), (80, 24))) > 1


def test_sample_bottom_right_end_to_end():
    cfg = dataclasses.replace(
        DEFAULT_CONFIG, enabled=True, text="SAMPLE", position="bottom-right", size=24, padding=10,
    )
    font = load_font(cfg.size)
    text_w, text_h = measure_text("SAMPLE", 24, font)
    assert text_h == 24
    anchors = plan_anchors(cfg, (800, 600), rotated_extent(text_w, text_h, cfg.rotation))
    assert anchors == [(800 - text_w - 10, 600 - 24 - 10)]

# picmark/watermark.py
import logging
import math

from PIL import Image, ImageDraw, ImageFont

from picmark.errors import ConfigurationError
from picmark.geometry import plan_anchors, rotated_extent

logger = logging.getLogger(__name__)

DEFAULT_FONT = "DejaVuSans.ttf"


def load_font(font_size, font_path=None):
    """
    载入字体。font_path 为空时尝试系统的 DejaVuSans，
    都失败时退回 Pillow 自带的默认字体（同样支持字号）。
    FreeType 无法按该字号渲染时抛出 ConfigurationError。
    """
    for path in (font_path, DEFAULT_FONT):
        if not path:
            continue
        try:
            return ImageFont.truetype(path, font_size)
        except OSError:
            logger.debug("无法载入字体 %s，尝试下一个", path)
    try:
        return ImageFont.load_default(size=font_size)
    except OSError as e:
        raise ConfigurationError(f"size 无法渲染: {font_size!r}") from e


def measure_text(text, font_size, font=None):
    """
    返回 (text_width, text_height)。
    宽度取字体的排版宽度，高度固定为字号（与定位计算保持一致）。
    """
    if font is None:
        font = load_font(font_size)
    return font.getlength(text), float(font_size)


def init_canvas(source):
    """复制原图作为绘制底层：尺寸不变，RGB 像素值不变，统一为 RGBA"""
    if source.mode == "RGBA":
        return source.copy()
    return source.convert("RGBA")


def create_glyph_block(text, font, font_size, color=(255, 255, 255), opacity=0.7, rotation=0):
    """
    返回一个透明背景的 RGBA Image，文字在其中水平垂直居中，
    已按 rotation 顺时针旋转（expand，不裁剪）。
    """
    text_w, text_h = measure_text(text, font_size, font)
    # 四周留白，避免下行字母被裁掉
    pad = int(math.ceil(font_size * 0.5))
    canvas_w = int(math.ceil(text_w)) + pad * 2
    canvas_h = int(math.ceil(text_h)) + pad * 2

    block = Image.new("RGBA", (canvas_w, canvas_h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(block)
    fill_color = (*color[:3], int(round(255 * opacity)))
    draw.text((canvas_w / 2, canvas_h / 2), text, font=font, fill=fill_color, anchor="mm")

    # PIL 的 rotate 是逆时针，这里取负号得到顺时针
    if rotation % 360 != 0:
        block = block.rotate(-rotation, expand=True, resample=Image.BICUBIC)
    return block


def draw_glyph(layer, block, anchor, rotated_size):
    """
    把文字块居中贴到锚点对应包围盒的中心。
    超出画布的部分被裁剪；每次绘制只依赖自身的锚点，不共享变换状态。
    """
    center_x = anchor[0] + rotated_size[0] / 2
    center_y = anchor[1] + rotated_size[1] / 2
    left = int(round(center_x - block.width / 2))
    top = int(round(center_y - block.height / 2))

    x0 = max(left, 0)
    y0 = max(top, 0)
    x1 = min(left + block.width, layer.width)
    y1 = min(top + block.height, layer.height)
    if x0 >= x1 or y0 >= y1:
        return False

    region = block.crop((x0 - left, y0 - top, x1 - left, y1 - top))
    layer.alpha_composite(region, (x0, y0))
    return True


def compose_watermark(source, config):
    """
    在 source 上合成文字水印，返回新的 RGBA Image（不修改原图）。
    不需要绘制时（水印关闭、文本为空或宽度为 0）返回原图的副本，保持原 mode。
    """
    config.validate()
    if not config.active:
        return source.copy()

    font = load_font(config.size, config.font_path)
    text_w, text_h = measure_text(config.text, config.size, font)
    if text_w <= 0:
        logger.debug("文本 %r 宽度为 0，跳过绘制", config.text)
        return source.copy()

    canvas = init_canvas(source)
    rotated_size = rotated_extent(text_w, text_h, config.rotation)

    anchors = plan_anchors(config, canvas.size, rotated_size)
    block = create_glyph_block(
        config.text,
        font,
        config.size,
        color=config.color,
        opacity=config.opacity,
        rotation=config.rotation,
    )

    # 先画到独立图层，全部画完后再一次性合成
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    drawn = 0
    for anchor in anchors:
        if draw_glyph(layer, block, anchor, rotated_size):
            drawn += 1
    logger.debug("水印 %r: %d/%d 个锚点落在画布内", config.text, drawn, len(anchors))

    return Image.alpha_composite(canvas, layer)

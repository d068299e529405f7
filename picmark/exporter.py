# picmark/exporter.py
import asyncio
import io
import logging
import math
import os

from picmark.errors import ConfigurationError, EncodingError
from picmark.image_io import decode_image, open_image_fix_orientation
from picmark.watermark import compose_watermark

logger = logging.getLogger(__name__)

# 输出格式 -> (Pillow 格式名, MIME)
OUTPUT_FORMATS = {
    'jpeg': ('JPEG', 'image/jpeg'),
    'jpg': ('JPEG', 'image/jpeg'),
    'png': ('PNG', 'image/png'),
    'webp': ('WEBP', 'image/webp'),
}

DEFAULT_QUALITY = 0.9

# 编码器可以直接写入的 mode，其余统一转成 RGBA
WRITABLE_MODES = {
    'PNG': {'1', 'L', 'LA', 'I', 'I;16', 'P', 'RGB', 'RGBA'},
    'WEBP': {'RGB', 'RGBA'},
}


def check_quality(quality):
    if isinstance(quality, bool) or not isinstance(quality, (int, float)) \
            or not math.isfinite(quality) or not 0 < quality <= 1:
        raise ConfigurationError(f"quality 必须在 (0, 1] 之间: {quality!r}")
    return quality


def output_extension(output_format):
    fmt = output_format.lower()
    return '.jpg' if fmt in ('jpg', 'jpeg') else f'.{fmt}'


def encode(raster, format='jpeg', quality=DEFAULT_QUALITY):
    """
    把合成好的图像编码成字节。
    quality 取值 (0, 1]，对应 Pillow 的 1..100；PNG 忽略 quality。
    """
    check_quality(quality)
    fmt = format.lower()
    if fmt not in OUTPUT_FORMATS:
        raise EncodingError(f"不支持的输出格式: {format!r}")
    pil_format, _ = OUTPUT_FORMATS[fmt]
    pil_quality = max(1, int(round(quality * 100)))

    try:
        with io.BytesIO() as buffer:
            if pil_format == 'JPEG':
                rgb = raster.convert('RGB')
                rgb.save(buffer, 'JPEG', quality=pil_quality, optimize=True)
            else:
                if raster.mode not in WRITABLE_MODES[pil_format]:
                    raster = raster.convert('RGBA')
                if pil_format == 'WEBP':
                    raster.save(buffer, 'WEBP', quality=pil_quality)
                else:
                    raster.save(buffer, 'PNG', compress_level=6)
            data = buffer.getvalue()
    except (OSError, ValueError, KeyError) as e:
        raise EncodingError(f"编码 {fmt} 失败: {e}") from e

    if not data:
        raise EncodingError(f"编码 {fmt} 没有产出数据")
    return data


async def encode_async(raster, format='jpeg', quality=DEFAULT_QUALITY):
    return await asyncio.to_thread(encode, raster, format, quality)


def watermark_bytes(data, config, format='jpeg', quality=DEFAULT_QUALITY):
    """
    字节进、字节出的完整流程：校验 -> 解码 -> 合成 -> 编码。
    配置错误在解码之前抛出；编码总在全部绘制完成之后进行。
    """
    config.validate()
    check_quality(quality)
    image = decode_image(data)
    composed = compose_watermark(image, config)
    return encode(composed, format, quality)


async def watermark_bytes_async(data, config, format='jpeg', quality=DEFAULT_QUALITY):
    return await asyncio.to_thread(watermark_bytes, data, config, format, quality)


def compose_watermark_on_image(
    src_path,
    dst_path,
    config,
    output_format='png',   # 'png' / 'jpeg' / 'webp'
    quality=DEFAULT_QUALITY,
):
    """
    把文字水印合成到 src_path 上并保存到 dst_path。
    先在内存里完成编码，再写入临时文件并替换 dst_path，失败时不会留下半成品。
    """
    config.validate()
    check_quality(quality)
    img = open_image_fix_orientation(src_path)
    composed = compose_watermark(img, config)
    payload = encode(composed, output_format, quality)

    tmp_path = f"{dst_path}.tmp"
    try:
        with open(tmp_path, 'wb') as f:
            f.write(payload)
        os.replace(tmp_path, dst_path)
    except OSError:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    logger.info("已保存 %s (%d bytes)", dst_path, len(payload))
    return dst_path

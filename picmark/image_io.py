# picmark/image_io.py
import asyncio
import io
import os

from PIL import ExifTags, Image, ImageOps

from picmark.errors import DecodeError

SUPPORTED_EXTS = {'.jpg', '.jpeg', '.png', '.bmp', '.tif', '.tiff', '.gif', '.webp'}

MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
}

# Pillow 解码失败时可能抛出的异常
_DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)

# EXIF 方向 5-8 表示需要转 90 度，宽高互换
_SWAPPED_ORIENTATIONS = {5, 6, 7, 8}


def is_image_file(path):
    _, ext = os.path.splitext(path.lower())
    return ext in SUPPORTED_EXTS


def mime_type_for(filename):
    _, ext = os.path.splitext(filename.lower())
    return MIME_TYPES.get(ext, 'application/octet-stream')


def open_image_fix_orientation(path):
    try:
        with Image.open(path) as img:
            return ImageOps.exif_transpose(img)  # 修正 EXIF 方向
    except _DECODE_ERRORS as e:
        raise DecodeError(f"无法解码图片 {path}: {e}") from e


def decode_image(data):
    """完整解码图片字节并修正 EXIF 方向，返回与文件句柄无关的 Image"""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return ImageOps.exif_transpose(img)
    except _DECODE_ERRORS as e:
        raise DecodeError(f"无法解码图片数据: {e}") from e


def probe_dimensions(data):
    """
    只读取文件头得到显示尺寸 (width, height)，不做完整解码。
    带旋转的 EXIF 方向会交换宽高，与 decode_image 的结果一致。
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            orientation = img.getexif().get(ExifTags.Base.Orientation)
    except _DECODE_ERRORS as e:
        raise DecodeError(f"无法读取图片尺寸: {e}") from e
    if orientation in _SWAPPED_ORIENTATIONS:
        width, height = height, width
    return width, height


async def probe_dimensions_async(data):
    return await asyncio.to_thread(probe_dimensions, data)


def generate_thumbnail(path, max_size=1024):
    img = open_image_fix_orientation(path)
    img.thumbnail((max_size, max_size), Image.LANCZOS)
    return img  # PIL.Image instance

# picmark/errors.py
"""水印引擎的异常类型。"""


class WatermarkError(Exception):
    """所有引擎异常的基类"""


class ConfigurationError(WatermarkError, ValueError):
    """配置非法（负间距、透明度越界、字号非正等），在任何像素处理之前抛出"""


class DecodeError(WatermarkError):
    """无法解码图片数据或读取尺寸"""


class EncodingError(WatermarkError):
    """编码器没有产出数据；调用方可以只重试编码这一步"""

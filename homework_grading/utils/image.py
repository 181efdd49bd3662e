"""图片处理工具函数

包含输入类型识别、Base64 图片验证、data URI 拼装与拆分，
以及"压缩"环节（目前只做大小检查，不改动图片字节）。
"""

import base64
import binascii
import logging
import re
from io import BytesIO
from typing import Optional, Tuple
from urllib.parse import urlsplit

from PIL import Image

from homework_grading.models.enums import ImageInputType


logger = logging.getLogger(__name__)


# Base64 图片解码后最大 5MB，对应编码长度上限
MAX_BASE64_IMAGE_BYTES = 5 * 1024 * 1024
MAX_BASE64_LENGTH = MAX_BASE64_IMAGE_BYTES * 4 / 3

# 超过该大小时"压缩"环节给出警告
COMPRESS_THRESHOLD_KB = 1024

DEFAULT_MEDIA_TYPE = "image/jpeg"

_DATA_URI_PATTERN = re.compile(r"data:image/(png|jpe?g|gif);base64,([A-Za-z0-9+/]+=*)")
_BARE_BASE64_PATTERN = re.compile(r"[A-Za-z0-9+/]+=*")
_DATA_URI_PREFIX_PATTERN = re.compile(r"^data:[^,]*?;base64,")
_IMAGE_FORMAT_PATTERN = re.compile(r"^data:image/(png|jpg|jpeg|gif|bmp|webp);base64,")


def classify_input(value: str) -> ImageInputType:
    """
    识别输入类型

    绝对 URL（带 scheme 和主机）视为 url；以 data:image/ 开头或是纯 Base64
    字符串视为 base64；其余为 unknown。
    """
    try:
        parts = urlsplit(value)
    except ValueError:
        parts = None
    if parts is not None and parts.scheme and parts.netloc:
        return ImageInputType.URL
    if value.startswith("data:image/") or _BARE_BASE64_PATTERN.fullmatch(value):
        return ImageInputType.BASE64
    return ImageInputType.UNKNOWN


def validate_base64_image(image_data: str) -> Tuple[bool, str]:
    """
    验证 Base64 图片数据

    Args:
        image_data: data URI（png/jpg/jpeg/gif）或纯 Base64 字符串

    Returns:
        (是否有效, 媒体类型或错误消息)。纯 Base64 默认视为 image/jpeg。
    """
    match = _DATA_URI_PATTERN.fullmatch(image_data)
    if match:
        media_type = f"image/{match.group(1)}"
        payload = match.group(2)
    elif _BARE_BASE64_PATTERN.fullmatch(image_data):
        media_type = DEFAULT_MEDIA_TYPE
        payload = image_data
    else:
        return False, "无效的Base64图片格式"

    if len(payload) > MAX_BASE64_LENGTH:
        return False, "图片文件过大，请使用小于5MB的图片"

    return True, media_type


def build_data_uri(media_type: str, payload: str) -> str:
    """拼装 data URI"""
    return f"data:{media_type};base64,{payload}"


def to_data_uri(image_data: str, media_type: str = DEFAULT_MEDIA_TYPE) -> str:
    """将已验证的 Base64 输入规范化为 data URI，已是 data URI 的原样返回"""
    if image_data.startswith("data:"):
        return image_data
    return build_data_uri(media_type, image_data)


def strip_data_uri_prefix(image_data: str) -> str:
    """移除 data URI 前缀，只保留 Base64 编码部分"""
    return _DATA_URI_PREFIX_PATTERN.sub("", image_data, count=1)


def get_image_format(image_data: str) -> str:
    """提取 data URI 中的图片格式，无法识别时返回 unknown"""
    match = _IMAGE_FORMAT_PATTERN.match(image_data)
    return match.group(1) if match else "unknown"


def estimate_decoded_size(image_data: str) -> float:
    """按 Base64 长度估算解码后的字节数"""
    return len(image_data) * 3 / 4


def read_image_size(image_data: str) -> Optional[Tuple[int, int]]:
    """读取图片像素尺寸，无法解码时返回 None"""
    try:
        raw_bytes = base64.b64decode(strip_data_uri_prefix(image_data))
        with Image.open(BytesIO(raw_bytes)) as image:
            return image.size
    except (binascii.Error, ValueError, OSError, Image.DecompressionBombError) as e:
        logger.debug(f"无法读取图片尺寸: {e}")
        return None


def compress_image_data(image_data: str, max_size_kb: int = COMPRESS_THRESHOLD_KB) -> str:
    """
    压缩图片（占位实现）

    只做大小检查：超过 max_size_kb 时记录警告，始终原样返回输入。
    """
    size_kb = estimate_decoded_size(image_data) / 1024
    if size_kb <= max_size_kb:
        return image_data

    dimensions = read_image_size(image_data)
    if dimensions:
        logger.warning(
            f"图片大小 {size_kb:.2f}KB（{dimensions[0]}x{dimensions[1]}）"
            f"超过限制 {max_size_kb}KB，建议压缩"
        )
    else:
        logger.warning(f"图片大小 {size_kb:.2f}KB 超过限制 {max_size_kb}KB，建议压缩")
    return image_data

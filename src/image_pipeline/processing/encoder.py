"""输出格式、质量系数与文件名的选择。"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from image_pipeline.core.config import (
    OPERATION_COMPRESS,
    OPERATION_CONVERT,
    OPERATION_UPSCALE,
    CompressionOptions,
    TransformSettings,
)
from image_pipeline.core.exceptions import UnsupportedOperation

PIL_FORMATS = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "bmp": "BMP",
}

FORMAT_ALIASES = {
    "jpg": "jpeg",
    "pjpeg": "jpeg",
    "x-png": "png",
    "x-ms-bmp": "bmp",
    "x-bmp": "bmp",
}

COMPRESSION_QUALITY = {
    "smart": 0.75,
    "aggressive": 0.60,
    "balanced": 0.80,
}
DEFAULT_COMPRESSION_QUALITY = 0.85
MIN_QUALITY = 0.1

# 每个开启的附加选项对质量系数的衰减倍数
OPTION_ATTENUATION = (
    ("remove_metadata", 0.95),
    ("optimize_colors", 0.90),
    ("progressive_encoding", 0.98),
    ("strip_alpha", 0.85),
)

UPSCALE_FORMATS = {"png", "webp", "jpeg"}

# 不支持 alpha 通道的输出格式
OPAQUE_FORMATS = {"jpeg", "bmp"}

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True, slots=True)
class EncodingPlan:
    """编码决策：格式、MIME、质量系数与文件名约定。"""

    format: str
    mime_type: str
    quality: float
    extension: str
    prefix: str
    flatten_alpha: bool = False

    @property
    def pil_format(self) -> str:
        return PIL_FORMATS[self.format]


def normalize_format(mime_or_format: Optional[str]) -> Optional[str]:
    """将 MIME 类型或格式名归一化为内部格式名，无法识别时返回 None。"""

    if not mime_or_format:
        return None
    subtype = mime_or_format.split("/")[-1].strip().lower()
    subtype = FORMAT_ALIASES.get(subtype, subtype)
    return subtype if subtype in PIL_FORMATS else None


def compression_quality(mode: str, custom_quality: int, options: CompressionOptions) -> float:
    """按压缩模式查表，再按开启的选项逐项衰减，最低 0.1。"""

    if mode == "custom":
        quality = custom_quality / 100
    else:
        quality = COMPRESSION_QUALITY.get(mode, DEFAULT_COMPRESSION_QUALITY)

    for attribute, factor in OPTION_ATTENUATION:
        if getattr(options, attribute):
            quality *= factor

    return max(MIN_QUALITY, quality)


def select_encoding(operation: str, settings: TransformSettings, source_mime: Optional[str]) -> EncodingPlan:
    """根据操作、配置与源图 MIME 类型确定输出编码方式。"""

    if operation == OPERATION_CONVERT:
        fmt = normalize_format(settings.format) or "jpeg"
        quality = 1.0 if fmt == "png" else settings.quality / 100
        return _plan(fmt, quality, "converted")

    if operation == OPERATION_COMPRESS:
        fmt = normalize_format(source_mime) or "jpeg"
        quality = compression_quality(settings.mode, settings.custom_quality, settings.options)
        return _plan(fmt, quality, "compressed", strip_alpha=settings.options.strip_alpha)

    if operation == OPERATION_UPSCALE:
        fmt = normalize_format(source_mime)
        if fmt not in UPSCALE_FORMATS:
            fmt = "png"
        quality = 1.0 if fmt == "png" else 0.95
        return _plan(fmt, quality, f"upscaled_{settings.upscale_factor}x")

    raise UnsupportedOperation(f"未知的操作类型: {operation}")


def sanitize_name(name: str) -> str:
    """将 [A-Za-z0-9._-] 以外的字符替换为下划线。"""

    return _UNSAFE_NAME_RE.sub("_", name)


def build_file_name(original_name: Optional[str], prefix: str, extension: str) -> str:
    """生成 `<base>_<prefix>.<ext>` 形式的输出文件名。"""

    base = original_name or ""
    if "." in base:
        base = base[: base.rfind(".")]
    if not base:
        base = "image"
    return f"{sanitize_name(base)}_{prefix}.{extension}"


def _plan(fmt: str, quality: float, prefix: str, *, strip_alpha: bool = False) -> EncodingPlan:
    extension = "jpg" if fmt == "jpeg" else fmt
    return EncodingPlan(
        format=fmt,
        mime_type=f"image/{fmt}",
        quality=quality,
        extension=extension,
        prefix=prefix,
        flatten_alpha=strip_alpha or fmt in OPAQUE_FORMATS,
    )

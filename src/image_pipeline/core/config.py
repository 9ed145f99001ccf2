"""处理任务的配置模型。"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence, Union

from image_pipeline.core.exceptions import InvalidConfigurationError, UnsupportedOperation
from image_pipeline.utils.colors import parse_color

OPERATION_CONVERT = "convert"
OPERATION_COMPRESS = "compress"
OPERATION_UPSCALE = "upscale"
OPERATIONS = (OPERATION_CONVERT, OPERATION_COMPRESS, OPERATION_UPSCALE)

OUTPUT_FORMATS = ("jpeg", "png", "webp", "gif", "bmp")
COMPRESSION_MODES = ("smart", "aggressive", "balanced", "custom")
UPSCALE_FACTORS = (2, 4)
FIT_MODES = ("cover", "contain", "fill")
FILTERS = ("none", "cartoon", "sketch")
RESAMPLE_QUALITIES = ("high", "medium", "low", "nearest")

# 调用方约定的单批上限。
MAX_BATCH_SIZE = 101

DimensionValue = Union[int, str, None]

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass(slots=True)
class CompressionOptions:
    """压缩附加选项，每项开启后都会衰减质量系数。"""

    remove_metadata: bool = True
    optimize_colors: bool = True
    progressive_encoding: bool = False
    strip_alpha: bool = False


@dataclass(slots=True)
class ResizeSettings:
    """尺寸调整配置。

    width/height 可以是整数、字符串或 None；0、负数与无法解析的值都视为"未指定"。
    """

    width: DimensionValue = None
    height: DimensionValue = None
    maintain_aspect_ratio: bool = True
    fit: str = "cover"  # cover | contain | fill

    def requested_width(self) -> Optional[int]:
        return parse_dimension(self.width)

    def requested_height(self) -> Optional[int]:
        return parse_dimension(self.height)


@dataclass(slots=True)
class TransformSettings:
    """单次转换的全部参数。"""

    format: str = "jpeg"
    quality: int = 90
    mode: str = "smart"
    custom_quality: int = 85
    upscale_factor: int = 2
    options: CompressionOptions = field(default_factory=CompressionOptions)
    resize: ResizeSettings = field(default_factory=ResizeSettings)
    filter: str = "none"  # none | cartoon | sketch
    resample_quality: str = "high"
    background_color: str = "#FFFFFF"
    annotate: bool = False


@dataclass(slots=True)
class TransformRequest:
    """操作类型与参数的组合。"""

    operation: str
    settings: TransformSettings = field(default_factory=TransformSettings)


@dataclass(slots=True)
class BatchConfig:
    """批处理并发控制。"""

    max_workers: int = 4
    max_in_flight: Optional[int] = None
    fail_fast: bool = False

    def in_flight_limit(self) -> int:
        limit = self.max_in_flight or self.max_workers
        return max(1, limit)


@dataclass(slots=True)
class OutputConfig:
    """输出目录与冲突策略配置。"""

    output_dir: Path
    conflict_strategy: str = "rename"  # overwrite | skip | rename


@dataclass(slots=True)
class JobConfig:
    """基于文件系统的批处理任务配置。"""

    sources: Sequence[Path]
    request: TransformRequest
    output: OutputConfig
    batch: BatchConfig = field(default_factory=BatchConfig)
    allow_recursive: bool = True
    include_patterns: Sequence[str] = field(
        default_factory=lambda: ("*.jpg", "*.jpeg", "*.png", "*.webp", "*.gif", "*.bmp")
    )
    exclude_patterns: Sequence[str] = field(default_factory=tuple)
    report_filename: str = "report.csv"


def parse_dimension(value: DimensionValue) -> Optional[int]:
    """解析尺寸输入，取前导整数；非正数或无法解析时返回 None。"""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    else:
        match = _LEADING_INT_RE.match(str(value))
        if not match:
            return None
        parsed = int(match.group(1))
    return parsed if parsed > 0 else None


def validate_request(request: TransformRequest) -> None:
    """校验请求，非法时抛出异常。"""

    if request.operation not in OPERATIONS:
        raise UnsupportedOperation(f"未知的操作类型: {request.operation}")

    settings = request.settings
    if settings.format not in OUTPUT_FORMATS:
        raise InvalidConfigurationError(f"不支持的输出格式: {settings.format}")
    if not 10 <= settings.quality <= 100:
        raise InvalidConfigurationError("quality 必须位于 10~100")
    if settings.mode not in COMPRESSION_MODES:
        raise InvalidConfigurationError(f"未知的压缩模式: {settings.mode}")
    if not 0 <= settings.custom_quality <= 100:
        raise InvalidConfigurationError("custom_quality 必须位于 0~100")
    if settings.upscale_factor not in UPSCALE_FACTORS:
        raise InvalidConfigurationError(f"放大倍数只能为 2 或 4: {settings.upscale_factor}")
    if settings.resize.fit not in FIT_MODES:
        raise InvalidConfigurationError(f"未知的尺寸模式: {settings.resize.fit}")
    if settings.filter not in FILTERS:
        raise InvalidConfigurationError(f"未知的滤镜: {settings.filter}")
    if settings.resample_quality not in RESAMPLE_QUALITIES:
        raise InvalidConfigurationError(f"未知的插值质量: {settings.resample_quality}")
    parse_color(settings.background_color)

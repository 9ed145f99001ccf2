"""并发处理的工作单元。"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from image_pipeline.core.config import TransformRequest
from image_pipeline.core.exceptions import DecodeFailure, ImagePipelineError
from image_pipeline.core.models import ImageOutcome, ProcessedResult, RasterImage, SourceImage
from image_pipeline.processing.annotation import generate_annotation
from image_pipeline.processing.codec import PillowRasterizer, mime_from_name
from image_pipeline.processing.encoder import build_file_name, select_encoding
from image_pipeline.processing.geometry import resolve_geometry
from image_pipeline.processing.resampler import resample
from image_pipeline.processing.stylize import apply_filter

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ProcessingTask:
    """描述单个图片处理任务。"""

    index: int
    source: SourceImage
    request: TransformRequest
    rasterizer: PillowRasterizer = field(default_factory=PillowRasterizer)


def transform_raster(
    original: RasterImage,
    name: str,
    request: TransformRequest,
    rasterizer: Optional[PillowRasterizer] = None,
) -> ProcessedResult:
    """对已解码的图片执行 几何解析 -> 重采样 -> 滤镜（可选）-> 编码。

    背景移除等外部步骤产出的图片可直接从这里进入流水线，
    ``original.source_size`` 与 ``original.source_format`` 作为原始字节数与声明类型。
    """

    rasterizer = rasterizer or PillowRasterizer()
    settings = request.settings

    plan = select_encoding(request.operation, settings, original.source_format)

    geometry = resolve_geometry(original.width, original.height, request.operation, settings)
    resampled = resample(original, geometry.source_rect, geometry.target_size, settings.resample_quality)
    styled = apply_filter(resampled, settings.filter)

    payload = rasterizer.encode(styled, plan, settings)

    annotation = generate_annotation(name, original) if settings.annotate else None

    return ProcessedResult(
        original=original,
        data=payload,
        mime_type=plan.mime_type,
        file_name=build_file_name(name, plan.prefix, plan.extension),
        width=styled.width,
        height=styled.height,
        quality=plan.quality,
        annotation=annotation,
    )


def transform_image(
    source: SourceImage,
    request: TransformRequest,
    rasterizer: Optional[PillowRasterizer] = None,
) -> ProcessedResult:
    """读取并解码源字节，再交给 :func:`transform_raster`。"""

    rasterizer = rasterizer or PillowRasterizer()

    try:
        data = source.read_bytes()
    except OSError as exc:
        raise DecodeFailure(f"无法读取源文件: {source.path}") from exc

    declared_mime = source.mime_type or mime_from_name(source.name)
    original = rasterizer.decode(data, declared_mime)
    return transform_raster(original, source.name, request, rasterizer)


def run_task(task: ProcessingTask) -> ImageOutcome:
    """在工作进程中执行完整的处理流程，单张失败只体现在该图的结果中。"""

    source = task.source
    try:
        result = transform_image(source, task.request, task.rasterizer)
    except ImagePipelineError as exc:
        LOGGER.warning("处理失败 %s: %s", source.name, exc)
        return ImageOutcome(
            index=task.index,
            source_name=source.name,
            source_path=source.path,
            status=f"error-{exc.kind}",
            error_kind=exc.kind,
            message=str(exc),
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("处理异常 %s: %s", source.name, exc)
        return ImageOutcome(
            index=task.index,
            source_name=source.name,
            source_path=source.path,
            status="error-worker",
            error_kind="worker",
            message=str(exc),
        )

    return ImageOutcome(
        index=task.index,
        source_name=source.name,
        source_path=source.path,
        status="processed",
        result=result,
        message=_compose_note(result),
        original_size=result.original_size,
        processed_size=result.processed_size,
        dimensions=result.dimensions,
    )


def _compose_note(result: ProcessedResult) -> Optional[str]:
    annotation = result.annotation
    if annotation is None:
        return None
    parts = [f"alt: {annotation.alt_text}"]
    if annotation.warnings:
        parts.append("warnings: " + ", ".join(annotation.warnings))
    return "; ".join(parts)

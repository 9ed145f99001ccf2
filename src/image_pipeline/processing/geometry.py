"""目标尺寸与源采样区域的计算。"""

from __future__ import annotations

from dataclasses import dataclass

from image_pipeline.core.config import OPERATION_UPSCALE, TransformSettings
from image_pipeline.core.exceptions import InvalidGeometry
from image_pipeline.core.models import Rect


@dataclass(frozen=True, slots=True)
class GeometryPlan:
    """几何解析结果。"""

    target_width: int
    target_height: int
    source_rect: Rect

    @property
    def target_size(self) -> tuple[int, int]:
        return self.target_width, self.target_height


def resolve_geometry(width: int, height: int, operation: str, settings: TransformSettings) -> GeometryPlan:
    """根据操作与尺寸配置计算 (目标宽, 目标高, 源矩形)。

    优先级：放大 > 同时指定宽高（按 fit 模式）> 只指定一边 > 原尺寸。
    放大操作忽略 resize 配置。
    """

    if width <= 0 or height <= 0:
        raise InvalidGeometry(f"源图尺寸不合法: {width}x{height}")

    full = Rect.full(width, height)

    if operation == OPERATION_UPSCALE:
        factor = settings.upscale_factor
        return _plan(width * factor, height * factor, full, width, height)

    resize = settings.resize
    req_w = resize.requested_width()
    req_h = resize.requested_height()

    if req_w and req_h:
        if resize.fit == "cover":
            return _plan(req_w, req_h, _cover_rect(width, height, req_w, req_h), width, height)
        if resize.fit == "contain":
            target_w, target_h = _contain_size(width, height, req_w, req_h)
            return _plan(target_w, target_h, full, width, height)
        return _plan(req_w, req_h, full, width, height)

    if req_w:
        target_h = _scaled(height, req_w, width) if resize.maintain_aspect_ratio else height
        return _plan(req_w, target_h, full, width, height)

    if req_h:
        target_w = _scaled(width, req_h, height) if resize.maintain_aspect_ratio else width
        return _plan(target_w, req_h, full, width, height)

    return _plan(width, height, full, width, height)


def _plan(target_w: int, target_h: int, rect: Rect, width: int, height: int) -> GeometryPlan:
    if not rect.fits(width, height):
        raise InvalidGeometry(f"采样区域超出源图范围: {rect}")
    return GeometryPlan(max(1, target_w), max(1, target_h), rect)


def _cover_rect(width: int, height: int, target_w: int, target_h: int) -> Rect:
    """取与目标宽高比一致的最大居中裁剪区域。"""

    if width * target_h > height * target_w:
        # 源图更宽，裁掉左右两侧
        crop_w = min(width, max(1, _scaled(height, target_w, target_h)))
        return Rect((width - crop_w) // 2, 0, crop_w, height)

    crop_h = min(height, max(1, _scaled(width, target_h, target_w)))
    return Rect(0, (height - crop_h) // 2, width, crop_h)


def _contain_size(width: int, height: int, box_w: int, box_h: int) -> tuple[int, int]:
    """保持源图比例、不超过 box 的最大尺寸（向下取整）。"""

    if width * box_h > height * box_w:
        return box_w, (box_w * height) // width
    return (box_h * width) // height, box_h


def _scaled(value: int, numerator: int, denominator: int) -> int:
    """value * numerator / denominator，四舍五入（.5 向上）。"""

    return (2 * value * numerator + denominator) // (2 * denominator)

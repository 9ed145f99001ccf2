"""卡通化与素描风格滤镜。"""

from __future__ import annotations

import logging

import numpy as np

from image_pipeline.core.exceptions import InvalidConfigurationError, InvalidGeometry
from image_pipeline.core.models import GradientMap, RasterImage
from image_pipeline.processing.edges import LUMA_WEIGHTS, detect_edges

LOGGER = logging.getLogger(__name__)

CARTOON_EDGE_THRESHOLD = 80
CARTOON_SATURATION_BOOST = 1.5
CARTOON_LEVELS = 8
SKETCH_EDGE_THRESHOLD = 30


def cartoonize(image: RasterImage, gradient: GradientMap) -> RasterImage:
    """边缘涂黑，其余像素提升饱和度后量化为 8 级。"""

    _check_dimensions(image, gradient)
    pixels = image.pixels.astype(np.float64)
    rgb = pixels[:, :, :3]
    gray = (
        LUMA_WEIGHTS[0] * pixels[:, :, 0]
        + LUMA_WEIGHTS[1] * pixels[:, :, 1]
        + LUMA_WEIGHTS[2] * pixels[:, :, 2]
    )[:, :, np.newaxis]

    # 先截断再量化，提升后的值可能超过 255。
    boosted = np.clip(gray + (rgb - gray) * CARTOON_SATURATION_BOOST, 0, 255)
    step = 256 // CARTOON_LEVELS
    quantized = (np.floor(boosted / step) * step).astype(np.uint8)

    edges = gradient.magnitude > CARTOON_EDGE_THRESHOLD
    quantized[edges] = 0

    alpha = np.full(quantized.shape[:2] + (1,), 255, dtype=np.uint8)
    return image.derive(np.concatenate([quantized, alpha], axis=-1))


def sketch(image: RasterImage, gradient: GradientMap) -> RasterImage:
    """白纸背景，边缘按梯度强度绘制深浅不一的线条。"""

    _check_dimensions(image, gradient)
    output = np.full((image.height, image.width, 4), 255, dtype=np.uint8)

    edges = gradient.magnitude > SKETCH_EDGE_THRESHOLD
    darkness = np.maximum(0, 255 - gradient.magnitude).astype(np.uint8)
    output[edges, :3] = darkness[edges][:, np.newaxis]
    return image.derive(output)


FILTERS = {
    "cartoon": cartoonize,
    "sketch": sketch,
}


def apply_filter(image: RasterImage, name: str) -> RasterImage:
    """按名称执行滤镜；none 直接返回原图。"""

    if name == "none":
        return image

    style = FILTERS.get(name)
    if style is None:
        raise InvalidConfigurationError(f"未知的滤镜: {name}")

    LOGGER.debug("执行滤镜 %s (%dx%d)", name, image.width, image.height)
    return style(image, detect_edges(image))


def _check_dimensions(image: RasterImage, gradient: GradientMap) -> None:
    if (gradient.width, gradient.height) != image.size:
        raise InvalidGeometry(
            f"梯度图尺寸 {gradient.width}x{gradient.height} 与图片 {image.width}x{image.height} 不一致"
        )

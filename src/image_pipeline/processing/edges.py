"""基于 Sobel 算子的边缘检测。"""

from __future__ import annotations

import cv2
import numpy as np

from image_pipeline.core.models import GradientMap, GrayscaleMap, RasterImage

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def to_grayscale(image: RasterImage) -> GrayscaleMap:
    """计算亮度 Y = 0.299R + 0.587G + 0.114B，截断为 8 位，忽略 alpha。"""

    pixels = image.pixels.astype(np.float64)
    luma = (
        LUMA_WEIGHTS[0] * pixels[:, :, 0]
        + LUMA_WEIGHTS[1] * pixels[:, :, 1]
        + LUMA_WEIGHTS[2] * pixels[:, :, 2]
    )
    return GrayscaleMap(values=luma.astype(np.uint8))


def sobel_magnitude(gray: GrayscaleMap) -> GradientMap:
    """计算 |Gx| + |Gy|（L1 近似），最外圈像素恒为 0。"""

    height, width = gray.values.shape
    magnitude = np.zeros((height, width), dtype=np.int32)
    if height < 3 or width < 3:
        return GradientMap(magnitude=magnitude)

    # ksize=3 的 cv2.Sobel 即标准 3x3 核；边界值由下方清零覆盖。
    grad_x = cv2.Sobel(gray.values, cv2.CV_16S, 1, 0, ksize=3)
    grad_y = cv2.Sobel(gray.values, cv2.CV_16S, 0, 1, ksize=3)
    interior = np.abs(grad_x[1:-1, 1:-1].astype(np.int32)) + np.abs(grad_y[1:-1, 1:-1].astype(np.int32))
    magnitude[1:-1, 1:-1] = interior
    return GradientMap(magnitude=magnitude)


def detect_edges(image: RasterImage) -> GradientMap:
    """亮度转换 + Sobel 梯度。"""

    return sobel_magnitude(to_grayscale(image))

"""环节二：重采样与 alpha 通道约定。"""

from __future__ import annotations

import pickle

import numpy as np
import pytest

from image_pipeline.core.exceptions import InvalidConfigurationError, InvalidGeometry
from image_pipeline.core.models import RasterImage, Rect
from image_pipeline.processing.resampler import resample


def solid(width: int, height: int, rgba: tuple[int, int, int, int]) -> RasterImage:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = rgba
    return RasterImage(pixels=pixels, source_size=1234, source_format="image/png")


def test_resample_produces_new_image_at_target_size() -> None:
    image = solid(40, 30, (10, 20, 30, 255))

    result = resample(image, Rect.full(40, 30), (80, 60))

    assert result.size == (80, 60)
    assert result is not image
    assert result.source_format == "image/png"
    assert result.source_size == 1234
    assert np.all(result.pixels == (10, 20, 30, 255))


def test_identity_returns_copy() -> None:
    image = solid(8, 8, (1, 2, 3, 4))

    result = resample(image, Rect.full(8, 8), (8, 8))

    assert result is not image
    assert np.array_equal(result.pixels, image.pixels)
    assert not result.pixels.flags.writeable


def test_source_rect_crops_before_scaling() -> None:
    pixels = np.zeros((200, 400, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    pixels[:, :100, 0] = 255  # 左侧红色
    pixels[:, 100:300, 1] = 255  # 中间绿色
    pixels[:, 300:, 2] = 255  # 右侧蓝色
    image = RasterImage(pixels=pixels)

    result = resample(image, Rect(100, 0, 200, 200), (100, 100))

    assert result.size == (100, 100)
    assert tuple(result.pixels[50, 50]) == (0, 255, 0, 255)


def test_alpha_is_not_premultiplied() -> None:
    # 左半不透明红色，右半完全透明的蓝色；straight alpha 下蓝色仍参与插值。
    pixels = np.zeros((2, 4, 4), dtype=np.uint8)
    pixels[:, :2] = (255, 0, 0, 255)
    pixels[:, 2:] = (0, 0, 255, 0)
    image = RasterImage(pixels=pixels)

    result = resample(image, Rect.full(4, 2), (1, 1), quality="low")
    r, g, b, a = (int(v) for v in result.pixels[0, 0])

    assert 100 < r < 160
    assert g == 0
    assert 100 < b < 160
    assert 100 < a < 160


@pytest.mark.parametrize("quality", ["high", "medium", "low", "nearest"])
def test_all_quality_levels_supported(quality: str) -> None:
    image = solid(10, 10, (50, 60, 70, 80))

    result = resample(image, Rect(2, 2, 6, 4), (3, 2), quality=quality)

    assert result.size == (3, 2)
    assert result.pixels.dtype == np.uint8


def test_invalid_rect_and_quality_raise() -> None:
    image = solid(10, 10, (0, 0, 0, 255))

    with pytest.raises(InvalidGeometry):
        resample(image, Rect(5, 5, 10, 10), (4, 4))
    with pytest.raises(InvalidGeometry):
        resample(image, Rect.full(10, 10), (0, 4))
    with pytest.raises(InvalidConfigurationError):
        resample(image, Rect.full(10, 10), (4, 4), quality="ultra")


def test_raster_stays_read_only_after_pickling() -> None:
    image = RasterImage(pixels=np.full((3, 5, 4), 7, dtype=np.uint8), source_size=12, source_format="image/png")

    restored = pickle.loads(pickle.dumps(image))

    assert not restored.pixels.flags.writeable
    assert restored.size == (5, 3)
    assert (restored.source_size, restored.source_format) == (12, "image/png")
    assert np.array_equal(restored.pixels, image.pixels)

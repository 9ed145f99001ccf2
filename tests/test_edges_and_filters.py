"""环节三：Sobel 边缘检测与卡通/素描滤镜。"""

from __future__ import annotations

import numpy as np
import pytest

from image_pipeline.core.exceptions import InvalidConfigurationError, InvalidGeometry
from image_pipeline.core.models import GradientMap, RasterImage
from image_pipeline.processing.edges import detect_edges, sobel_magnitude, to_grayscale
from image_pipeline.processing.stylize import apply_filter, cartoonize, sketch


def solid(width: int, height: int, rgb: tuple[int, int, int], alpha: int = 255) -> RasterImage:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = (*rgb, alpha)
    return RasterImage(pixels=pixels)


def vertical_step(rgb: tuple[int, int, int], width: int = 6, height: int = 5) -> RasterImage:
    """左半黑色、右半为指定颜色的图片。"""

    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    pixels[:, width // 2 :, :3] = rgb
    return RasterImage(pixels=pixels)


def random_image(width: int, height: int, seed: int = 0) -> RasterImage:
    rng = np.random.default_rng(seed)
    return RasterImage(pixels=rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8))


def reference_sobel(gray: np.ndarray) -> np.ndarray:
    height, width = gray.shape
    g = gray.astype(np.int64)
    out = np.zeros((height, width), dtype=np.int64)
    for y in range(1, height - 1):
        for x in range(1, width - 1):
            gx = (
                -g[y - 1, x - 1] + g[y - 1, x + 1]
                - 2 * g[y, x - 1] + 2 * g[y, x + 1]
                - g[y + 1, x - 1] + g[y + 1, x + 1]
            )
            gy = (
                -g[y - 1, x - 1] - 2 * g[y - 1, x] - g[y - 1, x + 1]
                + g[y + 1, x - 1] + 2 * g[y + 1, x] + g[y + 1, x + 1]
            )
            out[y, x] = abs(gx) + abs(gy)
    return out


def test_grayscale_uses_luma_weights_and_ignores_alpha() -> None:
    opaque = to_grayscale(solid(3, 3, (130, 40, 200), alpha=255))
    transparent = to_grayscale(solid(3, 3, (130, 40, 200), alpha=0))

    expected = int(0.299 * 130 + 0.587 * 40 + 0.114 * 200)
    assert opaque.values.dtype == np.uint8
    assert np.all(opaque.values == expected)
    assert np.array_equal(opaque.values, transparent.values)


def test_sobel_matches_reference_convolution() -> None:
    image = random_image(9, 7, seed=3)
    gray = to_grayscale(image)

    gradient = sobel_magnitude(gray)

    assert np.array_equal(gradient.magnitude, reference_sobel(gray.values))


@pytest.mark.parametrize("size", [(1, 1), (2, 5), (5, 2), (3, 3), (16, 9)])
def test_border_ring_is_always_zero(size: tuple[int, int]) -> None:
    gradient = detect_edges(random_image(*size, seed=7))
    magnitude = gradient.magnitude

    assert (gradient.width, gradient.height) == size
    assert np.all(magnitude[0, :] == 0)
    assert np.all(magnitude[-1, :] == 0)
    assert np.all(magnitude[:, 0] == 0)
    assert np.all(magnitude[:, -1] == 0)


def test_step_edge_magnitude_is_unclamped() -> None:
    image = vertical_step((255, 255, 255))
    level = int(to_grayscale(image).values[0, -1])

    magnitude = detect_edges(image).magnitude

    assert magnitude[2, 2] == 4 * level
    assert magnitude[2, 3] == 4 * level
    assert magnitude[2, 1] == 0
    assert magnitude[2, 2] > 255


def test_cartoon_quantizes_boosted_colors() -> None:
    image = solid(5, 5, (130, 40, 200))

    result = cartoonize(image, detect_edges(image))

    # gray≈85.15，提升饱和度后 (152.4, 17.4, 257.4->255)，量化到 32 的倍数。
    assert np.all(result.pixels == (128, 0, 224, 255))


def test_cartoon_paints_edges_black() -> None:
    image = vertical_step((255, 255, 255))

    result = cartoonize(image, detect_edges(image))

    assert tuple(result.pixels[2, 2]) == (0, 0, 0, 255)
    assert tuple(result.pixels[2, 3]) == (0, 0, 0, 255)
    # 边框不视为边缘，按量化规则处理。
    assert tuple(result.pixels[0, 5]) == (224, 224, 224, 255)


def test_cartoon_output_alpha_is_opaque() -> None:
    image = solid(4, 4, (10, 200, 30), alpha=0)

    result = cartoonize(image, detect_edges(image))

    assert np.all(result.pixels[:, :, 3] == 255)


def test_sketch_shades_edges_by_inverse_magnitude() -> None:
    image = vertical_step((40, 40, 40))
    gradient = detect_edges(image)
    expected = max(0, 255 - int(gradient.magnitude[2, 2]))

    result = sketch(image, gradient)

    assert gradient.magnitude[2, 2] > 30
    assert tuple(result.pixels[2, 2]) == (expected, expected, expected, 255)
    assert tuple(result.pixels[2, 0]) == (255, 255, 255, 255)
    assert tuple(result.pixels[2, 4]) == (255, 255, 255, 255)


def test_sketch_of_flat_image_is_blank_paper() -> None:
    image = solid(6, 6, (90, 10, 10))

    result = sketch(image, detect_edges(image))

    assert np.all(result.pixels == 255)


def test_filters_are_pure() -> None:
    image = random_image(12, 10, seed=11)
    before = image.pixels.copy()
    gradient = detect_edges(image)

    assert cartoonize(image, gradient).pixels.tobytes() == cartoonize(image, gradient).pixels.tobytes()
    assert sketch(image, gradient).pixels.tobytes() == sketch(image, gradient).pixels.tobytes()
    assert np.array_equal(image.pixels, before)


def test_filters_keep_geometry() -> None:
    image = random_image(13, 7)

    for name in ("cartoon", "sketch"):
        assert apply_filter(image, name).size == image.size


def test_apply_filter_none_and_unknown() -> None:
    image = solid(3, 3, (1, 2, 3))

    assert apply_filter(image, "none") is image
    with pytest.raises(InvalidConfigurationError):
        apply_filter(image, "oil-paint")


def test_gradient_size_mismatch_raises() -> None:
    image = solid(4, 4, (0, 0, 0))
    gradient = GradientMap(magnitude=np.zeros((3, 4), dtype=np.int32))

    with pytest.raises(InvalidGeometry):
        sketch(image, gradient)

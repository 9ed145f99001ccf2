"""环节一：目标尺寸与采样区域计算。"""

from __future__ import annotations

import pytest

from image_pipeline.core.config import ResizeSettings, TransformSettings, parse_dimension
from image_pipeline.core.exceptions import InvalidGeometry
from image_pipeline.core.models import Rect
from image_pipeline.processing.geometry import resolve_geometry


def make_settings(**resize) -> TransformSettings:
    return TransformSettings(resize=ResizeSettings(**resize))


def test_cover_crop_is_centered_on_wider_axis() -> None:
    plan = resolve_geometry(400, 200, "convert", make_settings(width=100, height=100, fit="cover"))

    assert plan.target_size == (100, 100)
    assert plan.source_rect == Rect(100, 0, 200, 200)


def test_cover_crop_on_taller_source() -> None:
    plan = resolve_geometry(200, 400, "compress", make_settings(width=100, height=50, fit="cover"))

    assert plan.target_size == (100, 50)
    assert plan.source_rect == Rect(0, 150, 200, 100)


def test_contain_shrinks_box_to_source_aspect() -> None:
    plan = resolve_geometry(400, 200, "convert", make_settings(width=100, height=100, fit="contain"))

    assert plan.target_size == (100, 50)
    assert plan.source_rect == Rect(0, 0, 400, 200)


def test_fill_stretches_to_requested_size() -> None:
    plan = resolve_geometry(400, 200, "convert", make_settings(width=100, height=100, fit="fill"))

    assert plan.target_size == (100, 100)
    assert plan.source_rect == Rect(0, 0, 400, 200)


def test_single_dimension_respects_maintain_aspect_flag() -> None:
    keep = resolve_geometry(400, 200, "convert", make_settings(width=100, maintain_aspect_ratio=True))
    stretch = resolve_geometry(400, 200, "convert", make_settings(width=100, maintain_aspect_ratio=False))
    by_height = resolve_geometry(400, 200, "convert", make_settings(height="50"))

    assert keep.target_size == (100, 50)
    assert stretch.target_size == (100, 200)
    assert by_height.target_size == (100, 50)


def test_derived_dimension_is_rounded() -> None:
    plan = resolve_geometry(300, 200, "convert", make_settings(width=100))

    # 200 * 100 / 300 = 66.67
    assert plan.target_size == (100, 67)


@pytest.mark.parametrize("factor", [2, 4])
def test_upscale_multiplies_and_ignores_resize(factor: int) -> None:
    settings = TransformSettings(upscale_factor=factor, resize=ResizeSettings(width=10, height=10))

    plan = resolve_geometry(123, 45, "upscale", settings)

    assert plan.target_size == (123 * factor, 45 * factor)
    assert plan.source_rect == Rect(0, 0, 123, 45)


def test_zero_and_non_numeric_dimensions_are_ignored() -> None:
    plan = resolve_geometry(64, 48, "convert", make_settings(width="abc", height=0))

    assert plan.target_size == (64, 48)
    assert plan.source_rect == Rect(0, 0, 64, 48)


def test_target_dimensions_are_clamped_to_one() -> None:
    plan = resolve_geometry(1000, 10, "convert", make_settings(width=10, height=10, fit="contain"))

    assert plan.target_size == (10, 1)


def test_geometry_is_deterministic() -> None:
    settings = make_settings(width=333, height=111, fit="cover")

    first = resolve_geometry(1024, 768, "compress", settings)
    second = resolve_geometry(1024, 768, "compress", settings)

    assert first == second


def test_invalid_source_dimensions_raise() -> None:
    with pytest.raises(InvalidGeometry):
        resolve_geometry(0, 10, "convert", TransformSettings())


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, None), ("", None), ("120px", 120), (" 42", 42), ("-5", None), (0, None), (7, 7), (True, None)],
)
def test_parse_dimension(value, expected) -> None:
    assert parse_dimension(value) == expected

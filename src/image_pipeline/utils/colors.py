"""颜色工具函数。"""

from __future__ import annotations

from typing import Tuple

from PIL import ImageColor

from image_pipeline.core.exceptions import InvalidConfigurationError


def parse_color(value: str) -> Tuple[int, int, int]:
    """解析 HEX（可省略 #）或 CSS 颜色名，返回 RGB 三元组。"""

    if not value or not value.strip():
        raise InvalidConfigurationError("颜色值不能为空")

    text = value.strip()
    if len(text) in (3, 6) and all(ch in "0123456789abcdefABCDEF" for ch in text):
        text = f"#{text}"

    try:
        rgb = ImageColor.getrgb(text)
    except ValueError as exc:
        raise InvalidConfigurationError(f"无法解析颜色值: {value}") from exc
    return rgb[0], rgb[1], rgb[2]

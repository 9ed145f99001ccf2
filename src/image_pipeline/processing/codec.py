"""图片解码与编码（Pillow 实现）。"""

from __future__ import annotations

import io
import logging
import mimetypes
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from image_pipeline.core.config import TransformSettings
from image_pipeline.core.exceptions import DecodeFailure, EncodeFailure
from image_pipeline.core.models import RasterImage
from image_pipeline.processing.encoder import EncodingPlan, normalize_format
from image_pipeline.utils.colors import parse_color

LOGGER = logging.getLogger(__name__)


def mime_from_name(name: str) -> Optional[str]:
    """根据文件扩展名推断 MIME 类型。"""

    guessed, _ = mimetypes.guess_type(name)
    if guessed and guessed.startswith("image/"):
        return guessed
    return None


class PillowRasterizer:
    """字节 <-> RasterImage 的转换能力，由编排器注入使用。"""

    def decode(self, data: bytes, declared_mime: Optional[str] = None) -> RasterImage:
        """解码图片字节，执行 EXIF 旋转并统一为 RGBA。"""

        if not data:
            raise DecodeFailure("源数据为空")

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                detected = Image.MIME.get(img.format or "")
                with ImageOps.exif_transpose(img) as oriented:
                    raster = RasterImage.from_pil(
                        oriented,
                        source_size=len(data),
                        source_format=declared_mime or detected,
                    )
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            LOGGER.debug("无法识别图像数据: %s", exc)
            raise DecodeFailure(f"无法解码图像: {exc}") from exc

        return raster

    def encode(self, image: RasterImage, plan: EncodingPlan, settings: TransformSettings) -> bytes:
        """按编码决策输出字节；编码失败或输出为空时抛出 EncodeFailure。"""

        fmt = normalize_format(plan.format)
        if fmt is None:
            raise EncodeFailure(f"不支持的输出格式: {plan.format}")

        pil_image = image.to_pil()
        try:
            if plan.flatten_alpha:
                pil_image = _flatten_alpha(pil_image, settings.background_color)

            params = _save_params(fmt, plan, settings)
            buffer = io.BytesIO()
            pil_image.save(buffer, format=plan.pil_format, **params)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeFailure(f"编码 {plan.mime_type} 失败: {exc}") from exc
        finally:
            pil_image.close()

        payload = buffer.getvalue()
        if not payload:
            raise EncodeFailure(f"编码器输出为空: {plan.mime_type}")
        return payload


def _save_params(fmt: str, plan: EncodingPlan, settings: TransformSettings) -> dict:
    quality = max(1, min(100, int(round(plan.quality * 100))))
    options = settings.options
    params: dict = {}

    if fmt == "jpeg":
        params.update(quality=quality, optimize=options.optimize_colors)
        if options.progressive_encoding:
            params["progressive"] = True
    elif fmt == "webp":
        params.update(quality=quality, method=4)
    elif fmt == "png":
        params["optimize"] = options.optimize_colors
    elif fmt == "gif":
        params["optimize"] = options.optimize_colors
    return params


def _flatten_alpha(img: Image.Image, background: str) -> Image.Image:
    """将 RGBA 图像合成到纯色背景上，得到 RGB。"""

    background_color = parse_color(background)
    canvas = Image.new("RGB", img.size, background_color)
    canvas.paste(img, mask=img.split()[-1])
    img.close()
    return canvas

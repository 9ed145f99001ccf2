"""基于文件名与颜色采样的 ALT 文本推断（尽力而为）。"""

from __future__ import annotations

import re
from typing import Optional

import numpy as np
from PIL import Image

from image_pipeline.core.models import Annotation, RasterImage

ANALYSIS_WIDTH = 100
SAMPLE_TARGET = 1000
MAX_ALT_LENGTH = 125
MIN_RESOLUTION = 100
MIN_FILE_SIZE = 1024

CATEGORY_KEYWORDS = {
    "portrait": ("portrait", "headshot", "profile", "person", "people", "face", "selfie", "man", "woman", "child", "girl", "boy"),
    "landscape": ("landscape", "scenery", "nature", "outdoor", "view", "mountain", "beach", "sunset", "sunrise", "forest", "ocean", "sky", "clouds"),
    "product": ("product", "item", "goods", "merchandise", "catalog", "ecommerce", "package", "box"),
    "logo": ("logo", "brand", "icon", "symbol", "emblem", "badge", "banner"),
    "screenshot": ("screenshot", "screen", "capture", "snapshot", "desktop", "ui", "interface"),
    "photo": ("photo", "pic", "picture", "img", "image", "photograph", "camera"),
    "food": ("food", "meal", "dish", "recipe", "cooking", "restaurant", "cuisine", "breakfast", "lunch", "dinner", "cake", "fruit"),
    "building": ("building", "house", "architecture", "structure", "construction", "home", "office", "city", "street"),
    "animal": ("dog", "cat", "pet", "animal", "bird", "wildlife", "puppy", "kitten", "lion", "tiger", "horse"),
    "vehicle": ("car", "vehicle", "truck", "bike", "motorcycle", "automobile", "plane", "boat", "ship", "bus"),
    "document": ("document", "doc", "file", "page", "paper", "form", "contract", "invoice"),
    "artwork": ("art", "painting", "drawing", "illustration", "design", "graphic", "poster", "sketch"),
}

CATEGORY_SUBJECTS = {
    "portrait": "portrait showing a person",
    "landscape": "scenic landscape view",
    "product": "product display",
    "logo": "company brand logo",
    "screenshot": "digital interface screenshot",
    "food": "prepared food dish",
    "building": "architectural building",
    "animal": "animal wildlife",
    "vehicle": "transportation vehicle",
    "document": "written document page",
    "artwork": "creative artwork design",
    "photo": "photograph",
}


def analyze_filename(filename: Optional[str]) -> tuple[str, Optional[str]]:
    """返回 (清洗后的名称, 分类)。分类按关键词表顺序取第一个命中项。"""

    if not filename:
        return "", None

    stem = re.sub(r"\.[^/.]+$", "", filename)
    lowered = stem.lower()
    category = next(
        (name for name, terms in CATEGORY_KEYWORDS.items() if any(term in lowered for term in terms)),
        None,
    )
    clean_name = re.sub(r"\s+", " ", re.sub(r"[-_]", " ", stem)).strip()
    return clean_name, category


def analyze_colors(image: RasterImage) -> dict:
    """在缩略图上稀疏采样，估计整体色调与主色。"""

    thumb_h = max(1, round(image.height / image.width * ANALYSIS_WIDTH))
    with image.to_pil() as pil_image:
        thumb = pil_image.resize((ANALYSIS_WIDTH, thumb_h), Image.Resampling.BILINEAR)
    pixels = np.asarray(thumb, dtype=np.float64).reshape(-1, 4)
    thumb.close()

    step = max(1, (ANALYSIS_WIDTH * thumb_h) // SAMPLE_TARGET)
    sampled = pixels[::step, :3]
    avg_r, avg_g, avg_b = sampled.mean(axis=0)
    brightness = 0.299 * avg_r + 0.587 * avg_g + 0.114 * avg_b

    if brightness > 200:
        tone = "very bright"
    elif brightness > 150:
        tone = "bright"
    elif brightness < 50:
        tone = "dark"
    elif brightness < 100:
        tone = "dimly lit"
    else:
        tone = ""

    spread = max(avg_r, avg_g, avg_b) - min(avg_r, avg_g, avg_b)
    if spread < 15:
        color = "white" if brightness > 200 else ("black" if brightness < 50 else "gray")
    elif max(avg_r, avg_g, avg_b) == avg_r:
        color = "orange/yellowish" if avg_g > avg_r * 0.8 else "reddish"
    elif max(avg_r, avg_g, avg_b) == avg_g:
        color = "greenish"
    else:
        color = "bluish"

    return {"tone": tone, "color": color, "brightness": brightness, "vibrant": spread > 50}


def inspect_image(image: RasterImage) -> tuple[str, ...]:
    """返回图片质量告警（低分辨率、疑似损坏）。"""

    warnings = []
    if image.width < MIN_RESOLUTION or image.height < MIN_RESOLUTION:
        warnings.append("low resolution")
    if 0 < image.source_size < MIN_FILE_SIZE:
        warnings.append("potentially corrupted or empty")
    return tuple(warnings)


def generate_annotation(filename: Optional[str], image: RasterImage) -> Annotation:
    """组合文件名语义与视觉特征，生成 ALT 文本与建议文件名。"""

    clean_name, category = analyze_filename(filename)
    colors = analyze_colors(image)

    visual = []
    if colors["vibrant"]:
        visual.append("vibrant")
    elif colors["tone"]:
        visual.append(colors["tone"])
    visual.append(f"{colors['color']} toned")
    visual_text = " ".join(visual)

    subject = CATEGORY_SUBJECTS.get(category or "", "image")
    context = clean_name if len(clean_name) > 3 else ""

    if context and category:
        alt_text = f"{visual_text} {subject} of {context}"
    elif context:
        alt_text = f"{visual_text} image of {context}"
    elif category:
        alt_text = f"{visual_text} {subject}"
    else:
        alt_text = f"{visual_text} abstract image"

    alt_text = re.sub(r"\bimage of image\b", "image", alt_text, flags=re.IGNORECASE)
    alt_text = re.sub(r"\bphoto of photo\b", "photograph", alt_text, flags=re.IGNORECASE)
    alt_text = re.sub(r"\s+", " ", alt_text).strip()
    alt_text = alt_text[:1].upper() + alt_text[1:]
    if len(alt_text) > MAX_ALT_LENGTH:
        alt_text = alt_text[: MAX_ALT_LENGTH - 3] + "..."

    if context:
        short_name = context
        if category and category not in short_name.lower():
            short_name = f"{short_name} {category}"
    else:
        short_name = f"{visual_text} {category or 'image'}".strip()

    return Annotation(
        alt_text=alt_text,
        suggested_name=_slugify(short_name),
        warnings=inspect_image(image),
    )


def _slugify(value: str) -> str:
    slug = re.sub(r"[^\w\s-]", "", value.lower().strip())
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug)

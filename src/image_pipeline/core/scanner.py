"""源图片发现：展开文件/目录参数并按扩展名与通配符过滤。"""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from image_pipeline.core.config import JobConfig
from image_pipeline.core.models import SourceImage

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp"})


def _expand(root: Path, recursive: bool) -> Iterator[Path]:
    if root.is_file():
        yield root
    elif root.is_dir():
        walker = root.rglob("*") if recursive else root.iterdir()
        yield from (entry for entry in walker if entry.is_file())


def _matches_any(name: str, patterns: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(fnmatch(lowered, pattern.lower()) for pattern in patterns)


def _is_wanted(path: Path, include: Sequence[str], exclude: Sequence[str]) -> bool:
    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        return False
    if not _matches_any(path.name, include):
        return False
    return not (exclude and _matches_any(path.name, exclude))


def iter_image_paths(
    roots: Iterable[Path],
    *,
    recursive: bool = True,
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
) -> Iterator[Path]:
    """逐个产出匹配的图片路径，重复出现的文件只产出一次。"""

    include = include or tuple(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
    seen: set[Path] = set()
    for root in roots:
        for candidate in _expand(root.resolve(), recursive):
            if candidate in seen or not _is_wanted(candidate, include, exclude):
                continue
            seen.add(candidate)
            yield candidate


def collect_source_images(config: JobConfig) -> list[SourceImage]:
    """根据任务配置收集源图片（只记录路径，不读取内容），按路径排序。"""

    paths = iter_image_paths(
        config.sources,
        recursive=config.allow_recursive,
        include=config.include_patterns,
        exclude=config.exclude_patterns,
    )
    return [SourceImage.from_path(path) for path in sorted(paths, key=lambda p: str(p).lower())]

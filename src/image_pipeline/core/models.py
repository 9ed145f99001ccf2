"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image


def _freeze(array: np.ndarray) -> np.ndarray:
    frozen = np.array(array, dtype=array.dtype, copy=True)
    frozen.setflags(write=False)
    return frozen


@dataclass(frozen=True, slots=True)
class RasterImage:
    """解码后的 RGBA 像素缓冲区（H×W×4, uint8），创建后只读。"""

    pixels: np.ndarray
    source_size: int = 0
    source_format: Optional[str] = None

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"像素缓冲区必须为 H×W×4: {self.pixels.shape}")
        if self.pixels.dtype != np.uint8 or self.pixels.flags.writeable:
            object.__setattr__(self, "pixels", _freeze(self.pixels.astype(np.uint8, copy=False)))

    def __reduce__(self):
        # 反序列化得到的数组是可写的，经构造函数重新冻结
        return (RasterImage, (self.pixels, self.source_size, self.source_format))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_pil(
        cls, image: Image.Image, *, source_size: int = 0, source_format: Optional[str] = None
    ) -> "RasterImage":
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        return cls(pixels=np.asarray(rgba), source_size=source_size, source_format=source_format)

    def to_pil(self) -> Image.Image:
        """返回新的 PIL Image，调用者负责关闭。"""

        return Image.fromarray(self.pixels.copy())

    def derive(self, pixels: np.ndarray) -> "RasterImage":
        """基于新像素创建图片，沿用来源信息。"""

        return RasterImage(pixels=pixels, source_size=self.source_size, source_format=self.source_format)


@dataclass(frozen=True, slots=True)
class Rect:
    """源图坐标系中的整数矩形。"""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def full(cls, width: int, height: int) -> "Rect":
        return cls(0, 0, width, height)

    def fits(self, width: int, height: int) -> bool:
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.x + self.width <= width
            and self.y + self.height <= height
        )

    def as_box(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True, slots=True)
class GrayscaleMap:
    """单通道亮度图。"""

    values: np.ndarray

    @property
    def width(self) -> int:
        return int(self.values.shape[1])

    @property
    def height(self) -> int:
        return int(self.values.shape[0])


@dataclass(frozen=True, slots=True)
class GradientMap:
    """Sobel 梯度幅值图，数值不截断（可能大于 255）。"""

    magnitude: np.ndarray

    @property
    def width(self) -> int:
        return int(self.magnitude.shape[1])

    @property
    def height(self) -> int:
        return int(self.magnitude.shape[0])


@dataclass(slots=True)
class SourceImage:
    """待处理的输入图片（原始字节与声明的 MIME 类型）。

    基于文件的批处理中 data 为空，由工作进程按 path 读取，避免主进程持有全部字节。
    """

    name: str
    data: Optional[bytes] = None
    mime_type: Optional[str] = None
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "SourceImage":
        return cls(name=path.name, mime_type=mime_type, path=path)

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            return b""
        return self.path.read_bytes()


@dataclass(frozen=True, slots=True)
class Annotation:
    """与源图片显式配对的 ALT 文本与建议文件名。"""

    alt_text: str
    suggested_name: str
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ProcessedResult:
    """单张图片的完整处理结果，创建后不再修改。"""

    original: RasterImage
    data: bytes
    mime_type: str
    file_name: str
    width: int
    height: int
    quality: float
    annotation: Optional[Annotation] = None

    @property
    def dimensions(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def original_size(self) -> int:
        return self.original.source_size

    @property
    def processed_size(self) -> int:
        return len(self.data)


@dataclass(slots=True)
class ImageOutcome:
    """记录单张图片的处理结果（用于报告/日志）。"""

    index: int
    source_name: str
    status: str
    result: Optional[ProcessedResult] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    output_path: Optional[Path] = None
    source_path: Optional[Path] = None
    original_size: Optional[int] = None
    processed_size: Optional[int] = None
    dimensions: Optional[str] = None

    def release(self) -> None:
        """结果写出后释放像素与字节缓冲区，仅保留统计信息。"""

        self.result = None

    @property
    def ok(self) -> bool:
        return self.status.startswith("processed")


@dataclass(slots=True)
class BatchResult:
    """批处理的产出，按输入顺序排列。"""

    outcomes: list[ImageOutcome] = field(default_factory=list)
    aborted: bool = False

    @property
    def succeeded(self) -> list[ImageOutcome]:
        return [item for item in self.outcomes if item.ok]

    @property
    def skipped(self) -> list[ImageOutcome]:
        return [item for item in self.outcomes if item.status == "skip-existing"]

    @property
    def cancelled(self) -> list[ImageOutcome]:
        return [item for item in self.outcomes if item.status == "cancelled"]

    @property
    def failed(self) -> list[ImageOutcome]:
        return [
            item
            for item in self.outcomes
            if not item.ok and item.status not in {"skip-existing", "cancelled"}
        ]

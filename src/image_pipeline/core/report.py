"""报告生成工具。"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from image_pipeline.core.models import ImageOutcome

HEADER = [
    "source_path",
    "output_path",
    "status",
    "message",
    "dimensions",
    "original_size",
    "processed_size",
]


def write_csv_report(outcomes: Iterable[ImageOutcome], output_dir: Path, filename: str) -> Path:
    """将处理结果写入 CSV 报告。"""

    report_path = output_dir / filename
    with report_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(HEADER)
        for record in outcomes:
            writer.writerow(
                [
                    str(record.source_path or record.source_name),
                    str(record.output_path) if record.output_path else "",
                    record.status,
                    record.message or "",
                    record.dimensions or "",
                    _format_size(record.original_size),
                    _format_size(record.processed_size),
                ]
            )
    return report_path


def _format_size(value: int | None) -> str:
    if value is None:
        return ""
    return str(value)

"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from image_pipeline.core.config import (
    MAX_BATCH_SIZE,
    BatchConfig,
    CompressionOptions,
    JobConfig,
    OutputConfig,
    ResizeSettings,
    TransformRequest,
    TransformSettings,
)
from image_pipeline.core.exceptions import ImagePipelineError
from image_pipeline.core.models import BatchResult
from image_pipeline.core.progress import ProgressUpdate
from image_pipeline.core.scanner import collect_source_images
from image_pipeline.processing.pipeline import process_batch
from image_pipeline.utils.logging import setup_logging
from image_pipeline.utils.sizes import format_file_size

app = typer.Typer(help="批量图片格式转换、压缩、放大与风格化工具。")


def _build_progress_callback(progress: Progress):
    task_id: Optional[int] = None

    def callback(update: ProgressUpdate) -> None:
        nonlocal task_id
        if update.total == 0:
            return
        if task_id is None:
            task_id = progress.add_task("处理图片", total=update.total)
        progress.update(task_id, completed=update.completed)
        if update.message and update.finished:
            progress.log(update.message)

    return callback


def _summarize(result: BatchResult) -> str:
    original = sum(item.original_size or 0 for item in result.succeeded)
    processed = sum(item.processed_size or 0 for item in result.succeeded)
    summary = (
        f"处理完成：成功 {len(result.succeeded)} 张，跳过 {len(result.skipped)} 张，"
        f"失败 {len(result.failed)} 张，取消 {len(result.cancelled)} 张。"
    )
    if original:
        saved = (1 - processed / original) * 100
        summary += f" 体积 {format_file_size(original)} -> {format_file_size(processed)} ({saved:.1f}% 节省)"
    return summary


@app.command("run")
def run_cli(  # noqa: PLR0913
    source: List[Path] = typer.Argument(..., help="源图片文件或目录，可指定多个"),
    output: Path = typer.Option(..., "--output", "-o", help="输出目录"),
    operation: str = typer.Option("convert", "--operation", help="操作类型 convert/compress/upscale"),
    output_format: str = typer.Option("jpeg", "--format", help="convert 的目标格式 jpeg/png/webp/gif/bmp"),
    quality: int = typer.Option(90, "--quality", help="convert 的质量 10~100"),
    mode: str = typer.Option("smart", "--mode", help="压缩模式 smart/aggressive/balanced/custom"),
    custom_quality: int = typer.Option(85, "--custom-quality", help="custom 模式下的质量 0~100"),
    upscale_factor: int = typer.Option(2, "--upscale-factor", help="放大倍数 2 或 4"),
    remove_metadata: bool = typer.Option(True, "--remove-metadata/--keep-metadata", help="移除元数据"),
    optimize_colors: bool = typer.Option(True, "--optimize-colors/--no-optimize-colors", help="优化颜色"),
    progressive: bool = typer.Option(False, "--progressive", help="渐进式编码"),
    strip_alpha: bool = typer.Option(False, "--strip-alpha", help="移除透明通道"),
    width: Optional[int] = typer.Option(None, "--width", help="目标宽度"),
    height: Optional[int] = typer.Option(None, "--height", help="目标高度"),
    keep_aspect: bool = typer.Option(True, "--keep-aspect/--no-keep-aspect", help="只指定一边时保持宽高比"),
    fit: str = typer.Option("cover", "--fit", help="同时指定宽高时的适配模式 cover/contain/fill"),
    style_filter: str = typer.Option("none", "--filter", help="风格滤镜 none/cartoon/sketch"),
    resample_quality: str = typer.Option("high", "--resample", help="插值质量 high/medium/low/nearest"),
    background_color: str = typer.Option("#FFFFFF", "--background-color", help="去除透明通道时的背景色"),
    alt_text: bool = typer.Option(False, "--alt-text", help="生成 ALT 文本并写入报告"),
    max_workers: int = typer.Option(4, "--workers", "-w", help="并发进程数量"),
    max_in_flight: Optional[int] = typer.Option(None, "--max-in-flight", help="同时在途的图片数量上限"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="任一图片失败即停止剩余任务"),
    allow_recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="是否递归扫描目录"),
    conflict_strategy: str = typer.Option("rename", "--on-conflict", help="文件名冲突策略 overwrite/skip/rename"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志"),
) -> None:
    """执行批量处理。"""

    setup_logging(verbose=verbose)
    logging.getLogger(__name__).debug("CLI 参数解析完成")

    sources = [p.expanduser().resolve() for p in source]
    output_dir = output.expanduser().resolve()

    settings = TransformSettings(
        format=output_format.lower(),
        quality=quality,
        mode=mode,
        custom_quality=custom_quality,
        upscale_factor=upscale_factor,
        options=CompressionOptions(
            remove_metadata=remove_metadata,
            optimize_colors=optimize_colors,
            progressive_encoding=progressive,
            strip_alpha=strip_alpha,
        ),
        resize=ResizeSettings(width=width, height=height, maintain_aspect_ratio=keep_aspect, fit=fit),
        filter=style_filter,
        resample_quality=resample_quality,
        background_color=background_color,
        annotate=alt_text,
    )

    job = JobConfig(
        sources=sources,
        request=TransformRequest(operation=operation, settings=settings),
        output=OutputConfig(output_dir=output_dir, conflict_strategy=conflict_strategy),
        batch=BatchConfig(max_workers=max_workers, max_in_flight=max_in_flight, fail_fast=fail_fast),
        allow_recursive=allow_recursive,
    )

    found = len(collect_source_images(job))
    if found > MAX_BATCH_SIZE:
        raise typer.BadParameter(f"单次最多处理 {MAX_BATCH_SIZE} 张图片，当前 {found} 张")

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        TimeRemainingColumn(),
    )

    try:
        with progress:
            result = process_batch(job, progress_callback=_build_progress_callback(progress))
    except ImagePipelineError as exc:
        typer.echo(f"参数错误：{exc}", err=True)
        raise typer.Exit(code=2) from exc

    typer.echo(_summarize(result))
    typer.echo(f"报告文件：{output_dir / job.report_filename}")
    if result.failed or result.aborted:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

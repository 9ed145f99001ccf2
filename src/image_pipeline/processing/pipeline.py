"""处理流水线：逐图独立执行转换，并发受控，结果按输入顺序汇总。"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from itertools import islice
from typing import Callable, Iterable, Iterator, Optional, Sequence

from image_pipeline.core.config import BatchConfig, JobConfig, TransformRequest, validate_request
from image_pipeline.core.models import BatchResult, ImageOutcome, SourceImage
from image_pipeline.core.output_manager import ImageWriteError, OutputManager
from image_pipeline.core.progress import ProgressUpdate
from image_pipeline.core.report import write_csv_report
from image_pipeline.core.scanner import collect_source_images
from image_pipeline.processing.codec import PillowRasterizer
from image_pipeline.processing.worker import ProcessingTask, run_task

LOGGER = logging.getLogger(__name__)


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]
OutcomeHandler = Callable[[ImageOutcome], ImageOutcome]


def process_images(
    sources: Sequence[SourceImage],
    request: TransformRequest,
    batch: Optional[BatchConfig] = None,
    progress_callback: ProgressCallback = None,
    rasterizer: Optional[PillowRasterizer] = None,
) -> BatchResult:
    """对一组内存中的图片执行同一转换请求。

    每张图片的成败互不影响；fail_fast 时第一张失败后停止提交，
    尚未完成的图片记为 cancelled。
    """

    validate_request(request)
    batch = batch or BatchConfig()
    rasterizer = rasterizer or PillowRasterizer()
    tasks = [
        ProcessingTask(index=idx, source=source, request=request, rasterizer=rasterizer)
        for idx, source in enumerate(sources)
    ]
    return _run_batch(tasks, batch, progress_callback)


def process_batch(job: JobConfig, progress_callback: ProgressCallback = None) -> BatchResult:
    """文件批处理入口：扫描、并发转换、写出结果与报告。"""

    validate_request(job.request)

    LOGGER.info("开始扫描输入路径")
    sources = collect_source_images(job)
    LOGGER.info("发现 %d 个候选图片文件", len(sources))

    output_manager = OutputManager(job.output)
    tasks = [
        ProcessingTask(index=idx, source=source, request=job.request)
        for idx, source in enumerate(sources)
    ]

    def persist(outcome: ImageOutcome) -> ImageOutcome:
        if not outcome.ok or outcome.result is None:
            return outcome
        decision = output_manager.decide_destination(outcome.result.file_name)
        if decision.action == "skip":
            LOGGER.info("跳过输出（已存在）：%s", decision.destination)
            outcome.status = "skip-existing"
            outcome.output_path = decision.destination
            outcome.message = _join_notes(decision.note, outcome.message)
            outcome.release()
            return outcome

        assert decision.destination is not None
        try:
            output_manager.write_bytes(outcome.result.data, decision.destination)
        except ImageWriteError as exc:
            LOGGER.error("写入失败：%s", exc)
            outcome.status = "error-write"
            outcome.error_kind = exc.kind
            outcome.message = str(exc)
            outcome.release()
            return outcome

        if decision.action in {"overwrite", "rename"}:
            outcome.status = f"processed-{decision.action}"
        outcome.output_path = decision.destination
        outcome.message = _join_notes(decision.note, outcome.message)
        outcome.release()
        return outcome

    result = _run_batch(tasks, job.batch, progress_callback, handle=persist)
    _write_report(job, output_manager, result)
    return result


def iter_outcomes(tasks: Iterable[ProcessingTask], batch: BatchConfig) -> Iterator[ImageOutcome]:
    """按完成顺序产出结果；同时在途的任务数不超过 batch.in_flight_limit()。

    生成器被提前关闭时，尚未开始的任务会被取消。
    """

    if batch.max_workers <= 1:
        for task in tasks:
            yield run_task(task)
        return

    limit = batch.in_flight_limit()
    task_iter = iter(tasks)
    with ProcessPoolExecutor(max_workers=batch.max_workers) as executor:
        pending: dict[Future, ProcessingTask] = {}
        try:
            for task in islice(task_iter, limit):
                pending[executor.submit(run_task, task)] = task

            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    task = pending.pop(future)
                    try:
                        outcome = future.result()
                    except Exception as exc:  # noqa: BLE001
                        LOGGER.exception("任务执行异常：%s", exc)
                        outcome = ImageOutcome(
                            index=task.index,
                            source_name=task.source.name,
                            source_path=task.source.path,
                            status="error-worker",
                            error_kind="worker",
                            message=str(exc),
                        )
                    yield outcome

                for task in islice(task_iter, limit - len(pending)):
                    pending[executor.submit(run_task, task)] = task
        finally:
            for future in pending:
                future.cancel()


def _run_batch(
    tasks: list[ProcessingTask],
    batch: BatchConfig,
    progress_callback: ProgressCallback,
    handle: Optional[OutcomeHandler] = None,
) -> BatchResult:
    total = len(tasks)
    if total == 0:
        _emit_progress(progress_callback, completed=0, total=0, message="没有需要处理的图片", status="done")
        return BatchResult()

    _emit_progress(progress_callback, 0, total, "开始执行处理任务")

    collected: dict[int, ImageOutcome] = {}
    aborted = False
    outcomes = iter_outcomes(tasks, batch)
    try:
        for outcome in outcomes:
            if handle is not None:
                outcome = handle(outcome)
            collected[outcome.index] = outcome
            _emit_progress(progress_callback, len(collected), total, f"完成 {outcome.source_name}")
            if batch.fail_fast and not outcome.ok and outcome.status != "skip-existing":
                LOGGER.warning("fail_fast：%s 失败，停止剩余任务", outcome.source_name)
                aborted = True
                break
    finally:
        outcomes.close()

    for task in tasks:
        if task.index not in collected:
            collected[task.index] = ImageOutcome(
                index=task.index,
                source_name=task.source.name,
                source_path=task.source.path,
                status="cancelled",
                message="批处理已中止",
            )

    result = BatchResult(outcomes=[collected[idx] for idx in sorted(collected)], aborted=aborted)
    if aborted:
        _emit_progress(progress_callback, total, total, "处理中止", status="aborted")
    else:
        _emit_progress(progress_callback, total, total, "处理完成", status="done")
    return result


def _join_notes(*notes: Optional[str]) -> Optional[str]:
    parts = [note for note in notes if note]
    if not parts:
        return None
    return "; ".join(parts)


def _emit_progress(
    callback: ProgressCallback,
    completed: int,
    total: int,
    message: Optional[str] = None,
    status: str = "running",
) -> None:
    if not callback:
        return
    callback(ProgressUpdate(total=total, completed=completed, message=message, status=status))


def _write_report(job: JobConfig, output_manager: OutputManager, result: BatchResult) -> None:
    try:
        write_csv_report(result.outcomes, output_manager.output_dir, job.report_filename)
    except OSError as exc:
        LOGGER.error("写入报告失败：%s", exc)

"""Per-file preprocessing and rendering, sequential or across worker processes.

Each input is handled independently: read, preprocess, render, and optionally
write its own one-page PDF. Workers return picklable :class:`FileResult`
records; failures are carried as :class:`FileFailure` values instead of
exceptions so one bad file never stops the others. Results are always
returned in enumeration order, whatever order the workers finish in.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from svgbinder.events import safe_emit
from svgbinder.ingest.sources import load_source
from svgbinder.model.pipeline_options import ConversionOptions
from svgbinder.pipeline.error_handling import ConversionError, ErrorContext, ErrorManager, FileFailure
from svgbinder.pipeline.io import atomic_write_bytes
from svgbinder.preprocess import preprocess_document
from svgbinder.render import render
from svgbinder.types import A4, PageSize, ProgressCallback, RenderBackend, RenderedPage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileTask:
    """Everything a worker needs to process one input file."""

    index: int
    source: Path
    # Destination of the per-file PDF; None when per-file output is disabled
    output: Path | None = None
    default_size: PageSize = A4


@dataclass
class FileResult:
    """Outcome of processing one input file."""

    index: int
    source: Path
    page: RenderedPage | None = None
    failure: FileFailure | None = None
    # Messages of embedded assets left untouched because they failed to decode
    decode_failures: list[str] = field(default_factory=list)
    written: Path | None = None
    processing_time: float = 0.0

    @property
    def ok(self) -> bool:
        return self.page is not None and self.failure is None


def process_file(task: FileTask, backend: RenderBackend | None = None) -> FileResult:
    """Read, preprocess and render one file; write its PDF when requested.

    Pipeline failures are returned in the result; anything else propagates.
    """
    start_time = time.perf_counter()
    result = FileResult(index=task.index, source=task.source)
    try:
        document = load_source(task.source)
        prepared = preprocess_document(document.text, source=task.source)
        result.decode_failures = [str(failure) for failure in prepared.failures]
        page = render(
            prepared.text,
            document.declared_size,
            backend=backend,
            default_size=task.default_size,
            source=task.source,
        )
        if task.output is not None:
            atomic_write_bytes(task.output, page.data)
            result.written = task.output
        result.page = page
    except ConversionError as exc:
        result.failure = FileFailure.from_error(task.source, exc)
    result.processing_time = time.perf_counter() - start_time
    return result


def process_files_parallel(
    tasks: list[FileTask],
    options: ConversionOptions,
    backend: RenderBackend | None = None,
    on_progress: ProgressCallback = None,
) -> list[FileResult]:
    """Process all tasks and return their results ordered by task index.

    Uses a process pool when ``options.workers`` > 1, falling back to in-process
    sequential processing if the pool cannot be created. A worker that dies or
    raises unexpectedly is recorded as that file's failure.
    """
    safe_emit(on_progress, "render:start", {"file_count": len(tasks)})

    if options.workers <= 1 or len(tasks) <= 1:
        results = _process_files_sequential(tasks, backend, on_progress)
    else:
        results = _process_files_pool(tasks, options.workers, backend, on_progress)

    rendered = sum(1 for r in results if r.ok)
    safe_emit(on_progress, "render:finalized", {"rendered": rendered, "failed": len(results) - rendered})
    return results


def _process_files_pool(
    tasks: list[FileTask],
    workers: int,
    backend: RenderBackend | None,
    on_progress: ProgressCallback,
) -> list[FileResult]:
    max_workers = min(workers, len(tasks))
    try:
        executor = ProcessPoolExecutor(max_workers=max_workers)
    except Exception as exc:  # platform without working multiprocessing primitives
        logger.warning("Process pool unavailable (%s); falling back to sequential processing", exc)
        return _process_files_sequential(tasks, backend, on_progress)

    logger.info("Processing %d file(s) with %d worker processes", len(tasks), max_workers)
    results: list[FileResult] = []
    with executor as pool:
        future_to_task: dict[Future[FileResult], FileTask] = {
            pool.submit(process_file, task, backend): task for task in tasks
        }
        for future in as_completed(future_to_task):
            task = future_to_task[future]
            try:
                result = future.result()
            except Exception as exc:
                result = FileResult(
                    index=task.index,
                    source=task.source,
                    failure=FileFailure.from_error(task.source, exc),
                )
            _report(result, on_progress)
            results.append(result)

    results.sort(key=lambda r: r.index)
    return results


def _process_files_sequential(
    tasks: list[FileTask],
    backend: RenderBackend | None,
    on_progress: ProgressCallback,
) -> list[FileResult]:
    results: list[FileResult] = []
    for task in tasks:
        try:
            result = process_file(task, backend)
        except Exception as exc:
            result = FileResult(
                index=task.index,
                source=task.source,
                failure=FileFailure.from_error(task.source, exc),
            )
        _report(result, on_progress)
        results.append(result)
    return results


def _report(result: FileResult, on_progress: ProgressCallback) -> None:
    if result.failure is not None:
        errors = ErrorManager(ErrorContext(source_path=result.source, stage="render", object_kind="file"))
        errors.error(
            "FILE-001",
            f"File {result.source} failed: {result.failure.message}",
            extra={"error_kind": result.failure.kind.value},
        )
        safe_emit(on_progress, "file:failed", {"index": result.index, "source": str(result.source)})
        return

    logger.debug("Processed %s in %.3fs", result.source, result.processing_time)
    safe_emit(on_progress, "file:rendered", {"index": result.index, "source": str(result.source)})


__all__ = [
    "FileResult",
    "FileTask",
    "process_file",
    "process_files_parallel",
]

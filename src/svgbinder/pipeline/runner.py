"""Directory-level orchestration: discover, render per file, merge, write."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from svgbinder.events import safe_emit
from svgbinder.ingest.sources import discover_sources
from svgbinder.merge import IdAllocator, merge
from svgbinder.model.pipeline_options import ConversionOptions
from svgbinder.pipeline.error_handling import (
    ConversionError,
    ErrorContext,
    ErrorManager,
    FileFailure,
    NoInputError,
)
from svgbinder.pipeline.feature_logger import log_pipeline_configuration
from svgbinder.pipeline.io import atomic_write_bytes
from svgbinder.pipeline.parallel import FileResult, FileTask, process_files_parallel
from svgbinder.types import ProgressCallback, RenderBackend

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FATAL = 2


@dataclass
class RunSummary:
    """What a run did, in enumeration order."""

    input_dir: Path
    sources: list[Path] = field(default_factory=list)
    results: list[FileResult] = field(default_factory=list)
    merged_path: Path | None = None
    page_count: int = 0
    # Per-file outputs not written because they would overwrite the merged output
    skipped_outputs: list[Path] = field(default_factory=list)
    fatal: ConversionError | None = None

    @property
    def failures(self) -> list[FileFailure]:
        return [r.failure for r in self.results if r.failure is not None]

    @property
    def degraded(self) -> list[FileResult]:
        """Rendered files that kept one or more undecodable embedded assets."""
        return [r for r in self.results if r.ok and r.decode_failures]

    @property
    def exit_code(self) -> int:
        if self.fatal is not None:
            return EXIT_FATAL
        if self.failures or self.degraded:
            return EXIT_PARTIAL
        return EXIT_OK

    @property
    def ok(self) -> bool:
        return self.exit_code == EXIT_OK


def plan_tasks(
    sources: list[Path], input_dir: Path, options: ConversionOptions, merged_path: Path
) -> tuple[list[FileTask], list[Path]]:
    """Build one task per source, with its per-file output path when enabled.

    Returns the tasks and the per-file outputs suppressed because they collide
    with ``merged_path``.
    """
    out_root = options.out_dir or input_dir
    merged_target = merged_path.resolve()
    tasks: list[FileTask] = []
    skipped: list[Path] = []
    for index, source in enumerate(sources):
        output: Path | None = None
        if options.write_pages:
            output = out_root / source.relative_to(input_dir).with_suffix(".pdf")
            if output.resolve() == merged_target:
                ErrorManager(ErrorContext(source_path=source, stage="write")).warn(
                    "OUTPUT-001",
                    f"Not writing {output}: it would overwrite the merged output; the page is still merged",
                )
                skipped.append(output)
                output = None
        tasks.append(
            FileTask(index=index, source=source, output=output, default_size=options.default_size.size)
        )
    return tasks, skipped


def convert_directory(
    input_dir: Path,
    options: ConversionOptions | None = None,
    *,
    backend: RenderBackend | None = None,
    allocator: IdAllocator | None = None,
    on_progress: ProgressCallback = None,
) -> RunSummary:
    """Convert every SVG in ``input_dir`` and merge the results.

    Per-file failures are collected in the summary; run-level failures (no
    input, nothing rendered, merge or merged-write failure) are stored in
    ``RunSummary.fatal``. Nothing is raised for pipeline errors.
    """
    options = options or ConversionOptions()
    log_pipeline_configuration(options)
    errors = ErrorManager(ErrorContext(source_path=input_dir, stage="run"))
    summary = RunSummary(input_dir=input_dir)

    try:
        summary.sources = discover_sources(input_dir, recursive=options.recursive)
        if not summary.sources:
            raise NoInputError(f"no .svg files in {input_dir}", path=input_dir)
    except ConversionError as exc:
        return _fatal(summary, errors, exc)
    safe_emit(on_progress, "discover:success", {"file_count": len(summary.sources)})

    merged_path = (options.out_dir or input_dir) / options.merged_name
    tasks, summary.skipped_outputs = plan_tasks(summary.sources, input_dir, options, merged_path)

    summary.results = process_files_parallel(tasks, options, backend=backend, on_progress=on_progress)
    pages = [r.page for r in summary.results if r.page is not None]
    logger.info("Rendered %d of %d file(s)", len(pages), len(tasks))
    if pages and summary.failures:
        errors.error_policy(
            "render",
            "file_failed",
            "merge remaining pages",
            details=f"{len(summary.failures)} file(s) left out",
        )

    try:
        if not pages:
            raise NoInputError("no file rendered successfully", path=input_dir)
        document = merge(
            pages,
            allocator,
            dedupe=options.dedupe,
            bookmarks=options.bookmarks,
            on_progress=on_progress,
        )
        atomic_write_bytes(merged_path, document.to_bytes())
    except ConversionError as exc:
        return _fatal(summary, errors, exc)

    summary.merged_path = merged_path
    summary.page_count = document.page_count
    safe_emit(on_progress, "write:success", {"path": str(merged_path), "pages": document.page_count})
    logger.info("Wrote %s (%d pages)", merged_path, document.page_count)
    return summary


def _fatal(summary: RunSummary, errors: ErrorManager, exc: ConversionError) -> RunSummary:
    summary.fatal = exc
    errors.error("RUN-001", str(exc), extra={"error_kind": exc.kind.value}, exception=exc)
    return summary


__all__ = [
    "EXIT_FATAL",
    "EXIT_OK",
    "EXIT_PARTIAL",
    "RunSummary",
    "convert_directory",
    "plan_tasks",
]

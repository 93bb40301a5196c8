"""Rich progress display driven by pipeline events."""

from __future__ import annotations

from types import TracebackType

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressReporter:
    """Translate ``(event, payload)`` pairs into rich progress tasks.

    Use as a context manager and pass :meth:`emit` as the ``on_progress``
    callback of the pipeline. Tasks are keyed by name in ``_tasks``; tasks with
    a known size record it in ``_totals``.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=False,
        )
        self._tasks: dict[str, TaskID] = {}
        self._totals: dict[str, int] = {}

    def __enter__(self) -> ProgressReporter:
        self.progress.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.progress.stop()

    def add_step(self, description: str, total: int | None = None) -> TaskID:
        return self.progress.add_task(description, total=total)

    def finish_task(self, task_id: TaskID) -> None:
        task = self.progress.tasks[self.progress.task_ids.index(task_id)]
        if task.total is None:
            self.progress.update(task_id, total=1, completed=1)
        else:
            self.progress.update(task_id, completed=task.total)
        self.progress.stop_task(task_id)
        self.progress.remove_task(task_id)

    def _start(self, key: str, description: str, total: int | None) -> None:
        if key in self._tasks:
            self._finish(key)
        self._tasks[key] = self.add_step(description, total=total)
        if total is not None:
            self._totals[key] = total

    def _advance(self, key: str) -> None:
        task_id = self._tasks.get(key)
        if task_id is not None:
            self.progress.advance(task_id)

    def _finish(self, key: str) -> None:
        task_id = self._tasks.pop(key, None)
        if task_id is not None:
            self.finish_task(task_id)

    def emit(self, event: str, payload: dict[str, int | str]) -> None:
        if event == "discover:success":
            self.progress.console.log(f"Found {payload.get('file_count', 0)} SVG file(s)")
        elif event == "render:start":
            self._start("files", "Rendering", _as_int(payload.get("file_count")))
        elif event in ("file:rendered", "file:failed"):
            self._advance("files")
        elif event == "render:finalized":
            self._finish("files")
            failed = _as_int(payload.get("failed")) or 0
            if failed:
                self.progress.console.log(f"[yellow]{failed} file(s) failed to render[/yellow]")
        elif event == "merge:start":
            self._start("pages", "Merging", _as_int(payload.get("page_count")))
        elif event == "page:merged":
            self._advance("pages")
        elif event == "merge:finalized":
            self._finish("pages")
        elif event == "write:success":
            self.progress.console.log(f"Wrote {payload.get('path')} ({payload.get('pages')} pages)")


def _as_int(value: int | str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = ["ProgressReporter"]

from __future__ import annotations

from contextlib import suppress

from svgbinder.types import ProgressCallback


def safe_emit(on_progress: ProgressCallback, event: str, payload: dict[str, int | str]) -> None:
    if on_progress is None:
        return

    with suppress(Exception):
        on_progress(event, payload)


__all__ = ["safe_emit"]

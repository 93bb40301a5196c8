"""Error taxonomy and structured error logging for the conversion pipeline.

Every failure raised by the pipeline is a :class:`ConversionError` tagged with
an :class:`ErrorKind`. How far a failure propagates depends on its kind:

- DECODE: a malformed embedded payload; recovered where it happens, the
  element is left untouched and processing continues.
- RENDER: the backend rejected the markup; fatal for that one file.
- NO_INPUT: nothing to merge; fatal for the run.
- CORRUPT_PAGE: a rendered page cannot be re-linked; fatal for the merge.
- IO: read/write failure; fatal for the file, or for the run when the merged
  output cannot be written.

:class:`ErrorManager` emits log records carrying an event code and the
:class:`ErrorContext` fields as ``extra`` attributes so handlers can filter or
serialize them.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from svgbinder.pipeline.feature_logger import log_error_policy, log_feature_decision


class ErrorKind(Enum):
    DECODE = "decode"
    RENDER = "render"
    NO_INPUT = "no_input"
    CORRUPT_PAGE = "corrupt_page"
    IO = "io"


class ConversionError(Exception):
    """Base class for pipeline failures."""

    kind: ErrorKind = ErrorKind.RENDER

    def __init__(self, message: str, *, path: Path | None = None, cause: Exception | None = None):
        self.path = path
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class DecodeError(ConversionError):
    """An embedded asset payload could not be decoded."""

    kind = ErrorKind.DECODE

    def __init__(
        self,
        reason: str,
        *,
        mime_type: str | None = None,
        path: Path | None = None,
        cause: Exception | None = None,
    ):
        self.reason = reason
        self.mime_type = mime_type
        message = "Failed to decode embedded asset"
        if mime_type:
            message += f" ({mime_type})"
        message += f": {reason}"
        super().__init__(message, path=path, cause=cause)


class RenderError(ConversionError):
    kind = ErrorKind.RENDER

    def __init__(self, path: Path | None = None, *, reason: str | None = None, cause: Exception | None = None):
        self.reason = reason
        message = f"Failed to render {path}" if path is not None else "Failed to render document"
        if reason:
            message += f" ({reason})"
        super().__init__(message, path=path, cause=cause)


class MarkupError(RenderError):
    """The markup is structurally malformed and cannot be processed."""


class NoInputError(ConversionError):
    kind = ErrorKind.NO_INPUT

    def __init__(self, reason: str = "nothing to merge", *, path: Path | None = None):
        super().__init__(f"No input: {reason}", path=path)


class CorruptPageError(ConversionError):
    kind = ErrorKind.CORRUPT_PAGE

    def __init__(
        self,
        source: Path | None,
        *,
        page_index: int | None = None,
        reason: str | None = None,
        cause: Exception | None = None,
    ):
        self.page_index = page_index
        self.reason = reason
        label = str(source) if source is not None else "<memory>"
        message = f"Corrupt rendered page from {label}"
        if page_index is not None:
            message += f" (merge position {page_index + 1})"
        if reason:
            message += f": {reason}"
        super().__init__(message, path=source, cause=cause)


class ConversionIOError(ConversionError):
    kind = ErrorKind.IO

    def __init__(self, path: Path, *, action: str = "access", cause: Exception | None = None):
        self.action = action
        super().__init__(f"Failed to {action} {path}", path=path, cause=cause)


@dataclass(frozen=True)
class FileFailure:
    """Picklable record of a per-file failure, safe to return from worker processes."""

    path: Path
    kind: ErrorKind
    message: str

    @classmethod
    def from_error(cls, path: Path, error: BaseException) -> FileFailure:
        kind = error.kind if isinstance(error, ConversionError) else ErrorKind.RENDER
        return cls(path=path, kind=kind, message=str(error))


@dataclass
class ErrorContext:
    """Context attached to every structured log record."""

    source_path: Path | None = None
    stage: str | None = None
    object_kind: str | None = None
    object_id: str | None = None
    flags: dict[str, Any] = field(default_factory=dict)
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    cli_verbosity: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_path": str(self.source_path) if self.source_path is not None else None,
            "stage": self.stage,
            "object_kind": self.object_kind,
            "object_id": self.object_id,
            "flags": self.flags,
            "correlation_id": self.correlation_id,
            "cli_verbosity": self.cli_verbosity,
        }


class ErrorManager:
    """Structured logging front-end keyed by event codes."""

    def __init__(self, context: ErrorContext | None = None) -> None:
        self.context = context or ErrorContext()
        self._logger = logging.getLogger(f"{__name__}.{self.context.stage or 'unknown'}")

    def warn(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        data = self._build_log_data(event_code, extra=extra, exception=exception)
        self._logger.warning("%s: %s", event_code, message, extra=data)

    def error(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        data = self._build_log_data(event_code, extra=extra, exception=exception)
        self._logger.error("%s: %s", event_code, message, extra=data)

    def decision(
        self, event_code: str, key: str, value: Any, *, extra: dict[str, Any] | None = None
    ) -> None:
        log_feature_decision(key, str(value), extra)
        data = self._build_log_data(event_code, extra=extra)
        data["decision_key"] = key
        data["decision_value"] = value
        self._logger.info("%s: %s=%s", event_code, key, value, extra=data)

    def error_policy(
        self,
        feature: str,
        error_type: str,
        action: str,
        *,
        details: str | None = None,
        event_code: str | None = None,
    ) -> None:
        log_error_policy(feature, error_type, action, details)
        if event_code is None:
            return
        data = self._build_log_data(event_code)
        data.update({"feature": feature, "error_type": error_type, "action": action, "details": details})
        self._logger.warning(
            "%s: %s error policy: %s -> %s", event_code, feature, error_type, action, extra=data
        )

    def _build_log_data(
        self,
        event_code: str,
        *,
        extra: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> dict[str, Any]:
        data = self.context.to_dict()
        data["event_code"] = event_code
        data["backend_version"] = _backend_version()
        if extra:
            data.update(extra)
        if exception is not None:
            data["exception_class"] = type(exception).__name__
            data["exception_message"] = str(exception)
        return data


def _backend_version() -> str:
    try:
        import fitz
    except ImportError:
        return "not_installed"
    return str(getattr(fitz, "VersionBind", "unknown"))


__all__ = [
    "ConversionError",
    "ConversionIOError",
    "CorruptPageError",
    "DecodeError",
    "ErrorContext",
    "ErrorKind",
    "ErrorManager",
    "FileFailure",
    "MarkupError",
    "NoInputError",
    "RenderError",
]

"""Tests for the error taxonomy and structured logging."""

import logging
import pickle
from pathlib import Path

import pytest

from svgbinder.pipeline.error_handling import (
    ConversionError,
    ConversionIOError,
    CorruptPageError,
    DecodeError,
    ErrorContext,
    ErrorKind,
    ErrorManager,
    FileFailure,
    MarkupError,
    NoInputError,
    RenderError,
)


class TestErrorMessages:
    def test_decode_error(self) -> None:
        exc = DecodeError("empty payload", mime_type="image/png")
        assert str(exc) == "Failed to decode embedded asset (image/png): empty payload"
        assert exc.kind is ErrorKind.DECODE

    def test_render_error_with_cause(self) -> None:
        exc = RenderError(Path("a.svg"), reason="backend failed", cause=ValueError("bad"))
        assert str(exc) == "Failed to render a.svg (backend failed): bad"
        assert exc.path == Path("a.svg")
        assert isinstance(exc.cause, ValueError)

    def test_markup_error_is_render_error(self) -> None:
        exc = MarkupError(reason="markup is not well-formed")
        assert isinstance(exc, RenderError)
        assert exc.kind is ErrorKind.RENDER
        assert str(exc) == "Failed to render document (markup is not well-formed)"

    def test_no_input(self) -> None:
        assert str(NoInputError()) == "No input: nothing to merge"
        assert NoInputError().kind is ErrorKind.NO_INPUT

    def test_corrupt_page(self) -> None:
        exc = CorruptPageError(Path("x.svg"), page_index=2, reason="unreadable PDF")
        assert str(exc) == "Corrupt rendered page from x.svg (merge position 3): unreadable PDF"
        assert exc.kind is ErrorKind.CORRUPT_PAGE

    def test_io_error(self) -> None:
        exc = ConversionIOError(Path("out.pdf"), action="write", cause=OSError("disk full"))
        assert str(exc) == "Failed to write out.pdf: disk full"
        assert exc.kind is ErrorKind.IO

    def test_all_are_conversion_errors(self) -> None:
        for exc in (DecodeError("x"), RenderError(), NoInputError(), CorruptPageError(None), ConversionIOError(Path("p"))):
            assert isinstance(exc, ConversionError)


class TestFileFailure:
    def test_from_conversion_error(self) -> None:
        failure = FileFailure.from_error(Path("a.svg"), RenderError(Path("a.svg"), reason="nope"))
        assert failure.kind is ErrorKind.RENDER
        assert failure.message == "Failed to render a.svg (nope)"

    def test_from_unexpected_error(self) -> None:
        failure = FileFailure.from_error(Path("a.svg"), RuntimeError("worker died"))
        assert failure.kind is ErrorKind.RENDER
        assert failure.message == "worker died"

    def test_is_picklable(self) -> None:
        failure = FileFailure(Path("a.svg"), ErrorKind.IO, "Failed to read a.svg")
        assert pickle.loads(pickle.dumps(failure)) == failure


class TestErrorManager:
    def test_warn_carries_context(self, caplog: pytest.LogCaptureFixture) -> None:
        manager = ErrorManager(ErrorContext(source_path=Path("a.svg"), stage="preprocess", flags={"k": 1}))
        with caplog.at_level(logging.WARNING):
            manager.warn("ASSET-001", "left untouched", extra={"offset": 12}, exception=DecodeError("bad"))

        (record,) = caplog.records
        assert record.name == "svgbinder.pipeline.error_handling.preprocess"
        assert record.getMessage() == "ASSET-001: left untouched"
        assert record.event_code == "ASSET-001"
        assert record.source_path == "a.svg"
        assert record.stage == "preprocess"
        assert record.offset == 12
        assert record.flags == {"k": 1}
        assert record.exception_class == "DecodeError"
        assert record.backend_version

    def test_error_level(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR):
            ErrorManager().error("RUN-001", "boom")
        assert caplog.records[0].levelno == logging.ERROR
        assert caplog.records[0].name.endswith(".unknown")

    def test_decision_logs_to_feature_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            ErrorManager(ErrorContext(stage="render")).decision("SIZE-001", "page_size", "default")

        feature = [r for r in caplog.records if r.name == "svgbinder.pipeline.feature_logger"]
        structured = [r for r in caplog.records if getattr(r, "event_code", None) == "SIZE-001"]
        assert feature and feature[0].getMessage() == "page_size: default"
        assert structured[0].decision_value == "default"

    def test_error_policy_without_event_code(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            ErrorManager().error_policy("assets", "decode_failed", "keep")
        assert [r.getMessage() for r in caplog.records] == ["assets error policy: decode_failed -> keep"]

    def test_error_policy_with_event_code(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            ErrorManager().error_policy("assets", "decode_failed", "keep", details="x", event_code="ASSET-003")
        assert len(caplog.records) == 2
        assert caplog.records[1].action == "keep"

    def test_correlation_ids_differ(self) -> None:
        assert ErrorContext().correlation_id != ErrorContext().correlation_id
        assert len(ErrorContext().correlation_id) == 8

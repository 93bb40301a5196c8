from __future__ import annotations

from importlib import metadata

import pytest

from svgbinder import backend_env
from svgbinder.backend_env import (
    EnvironmentReport,
    LibraryStatus,
    format_report_lines,
    probe_environment,
    report_is_ok,
)


def test_probe_environment_with_installed_libraries() -> None:
    report = probe_environment()
    assert [lib.distribution for lib in report.libraries] == ["PyMuPDF", "pypdf", "Pillow"]
    assert all(lib.importable for lib in report.libraries)
    assert report.can_render
    assert report_is_ok(report)


def test_missing_library_skips_render_probe(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(backend_env, "REQUIRED", (("no-such-dist", "no_such_module_for_svgbinder"),))

    def fail_render() -> tuple[bool, str | None]:
        raise AssertionError("render probe must not run")

    monkeypatch.setattr(backend_env, "_probe_render", fail_render)

    report = probe_environment()

    (lib,) = report.libraries
    assert not lib.importable
    assert lib.version is None
    assert not report.can_render
    assert report.render_error == "missing libraries"
    assert not report_is_ok(report)


def test_installed_but_broken_import(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(metadata, "version", lambda dist: "9.9.9")
    status = backend_env._probe_library("Anything", "no_such_module_for_svgbinder")
    assert status.version == "9.9.9"
    assert not status.importable
    assert status.error


def test_format_report_lines() -> None:
    report = EnvironmentReport(
        libraries=(
            LibraryStatus("PyMuPDF", "1.24.0", importable=True),
            LibraryStatus("pypdf", None, importable=False, error="No module named 'pypdf'"),
        ),
        can_render=False,
        render_error="missing libraries",
    )

    assert format_report_lines(report) == [
        "✅ PyMuPDF: 1.24.0",
        "❌ pypdf: not installed (No module named 'pypdf')",
        "❌ Test render: failed (missing libraries)",
    ]


def test_report_ok_requires_render() -> None:
    report = EnvironmentReport(
        libraries=(LibraryStatus("PyMuPDF", "1.24.0", importable=True),),
        can_render=False,
        render_error="boom",
    )
    assert not report_is_ok(report)

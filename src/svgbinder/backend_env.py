"""Environment probe for the native libraries svgbinder relies on.

Used by ``svgbinder doctor``; never imported on the conversion path.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from importlib import metadata

logger = logging.getLogger(__name__)

# (distribution name, import name)
REQUIRED = (
    ("PyMuPDF", "fitz"),
    ("pypdf", "pypdf"),
    ("Pillow", "PIL"),
)


@dataclass(frozen=True)
class LibraryStatus:
    distribution: str
    version: str | None
    importable: bool
    error: str | None = None


@dataclass(frozen=True)
class EnvironmentReport:
    libraries: tuple[LibraryStatus, ...]
    can_render: bool
    render_error: str | None = None


def _probe_library(distribution: str, module: str) -> LibraryStatus:
    try:
        version: str | None = metadata.version(distribution)
    except metadata.PackageNotFoundError:
        version = None
    try:
        importlib.import_module(module)
    except ImportError as exc:
        return LibraryStatus(distribution, version, importable=False, error=str(exc))
    return LibraryStatus(distribution, version, importable=True)


def _probe_render() -> tuple[bool, str | None]:
    from svgbinder.pipeline.error_handling import RenderError
    from svgbinder.render import MuPDFBackend
    from svgbinder.types import PageSize

    sample = '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"><rect width="10" height="10"/></svg>'
    try:
        MuPDFBackend().render(sample, PageSize(10, 10))
    except (RenderError, ImportError) as exc:
        logger.debug("Render probe failed: %s", exc)
        return False, str(exc)
    return True, None


def probe_environment() -> EnvironmentReport:
    libraries = tuple(_probe_library(dist, module) for dist, module in REQUIRED)
    if not all(lib.importable for lib in libraries):
        return EnvironmentReport(libraries, can_render=False, render_error="missing libraries")
    can_render, error = _probe_render()
    return EnvironmentReport(libraries, can_render=can_render, render_error=error)


def format_report_lines(report: EnvironmentReport) -> list[str]:
    lines = []
    for lib in report.libraries:
        mark = "✅" if lib.importable else "❌"
        detail = lib.version or "not installed"
        if lib.error:
            detail += f" ({lib.error})"
        lines.append(f"{mark} {lib.distribution}: {detail}")
    if report.can_render:
        lines.append("✅ Test render: OK")
    else:
        lines.append(f"❌ Test render: failed ({report.render_error})")
    return lines


def report_is_ok(report: EnvironmentReport) -> bool:
    return report.can_render and all(lib.importable for lib in report.libraries)


__all__ = [
    "EnvironmentReport",
    "LibraryStatus",
    "format_report_lines",
    "probe_environment",
    "report_is_ok",
]

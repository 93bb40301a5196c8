from __future__ import annotations

import io
import logging
from pathlib import Path

from pypdf import PdfReader

from svgbinder.pipeline.error_handling import ErrorContext, ErrorManager, MarkupError, RenderError
from svgbinder.render.backend import default_backend
from svgbinder.render.sizing import declared_size, read_root_attributes
from svgbinder.types import A4, PageSize, RenderBackend, RenderedPage

logger = logging.getLogger(__name__)


def render(
    text: str,
    intrinsic_size: PageSize | None = None,
    *,
    backend: RenderBackend | None = None,
    default_size: PageSize = A4,
    source: Path | None = None,
) -> RenderedPage:
    """Render one SVG document into a one-page PDF.

    Raises:
        MarkupError: If the markup is not well-formed or its root is not ``<svg>``
        RenderError: If the backend fails or does not return exactly one page
    """
    try:
        attributes = read_root_attributes(text)
    except MarkupError as exc:
        raise MarkupError(source, reason=exc.reason, cause=exc.cause) from exc

    if intrinsic_size is not None:
        size = intrinsic_size
    else:
        declared = declared_size(attributes)
        size = declared or default_size
        if declared is None:
            ErrorManager(ErrorContext(source_path=source, stage="render")).decision(
                "SIZE-001", "page_size", "default", extra={"width": size.width, "height": size.height}
            )

    engine = backend or default_backend()
    try:
        data = engine.render(text, size)
    except RenderError as exc:
        raise RenderError(source, reason=exc.reason, cause=exc.cause) from exc
    except Exception as exc:
        raise RenderError(source, reason="backend failed", cause=exc) from exc

    _check_single_page(data, source)
    logger.debug("Rendered %s at %gx%g pt", source or "<memory>", size.width, size.height)
    return RenderedPage(width=size.width, height=size.height, data=data, source=source)


def _check_single_page(data: bytes, source: Path | None) -> None:
    try:
        page_count = len(PdfReader(io.BytesIO(data)).pages)
    except Exception as exc:  # pypdf raises a wide range of errors on damaged input
        raise RenderError(source, reason="backend returned an unreadable PDF", cause=exc) from exc
    if page_count != 1:
        raise RenderError(source, reason=f"backend returned {page_count} pages instead of 1")


__all__ = ["render"]

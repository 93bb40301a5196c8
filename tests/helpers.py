"""Shared builders for test inputs: PDFs, PNGs, SVG markup and a stub backend."""

from __future__ import annotations

import base64
import io

from svgbinder.pipeline.error_handling import RenderError
from svgbinder.types import PageSize

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

# Markup containing this comment is rejected by StubBackend
REJECT_MARKER = "<!-- stub:reject -->"


def make_pdf(
    width: float = 200,
    height: float = 100,
    *,
    label: str | None = None,
    pages: int = 1,
    image: bytes | None = None,
) -> bytes:
    """Build a small PDF with PyMuPDF; every page gets the same size and content."""
    import fitz

    doc = fitz.open()
    try:
        for _ in range(pages):
            page = doc.new_page(width=width, height=height)
            if label:
                page.insert_text((10, 20), label, fontname="helv", fontsize=10)
            if image is not None:
                page.insert_image(fitz.Rect(0, 0, width / 2, height / 2), stream=image)
        return doc.tobytes(garbage=3, deflate=True)
    finally:
        doc.close()


def make_png(size: tuple[int, int] = (4, 4), mode: str = "RGB", color: object = (255, 0, 0)) -> bytes:
    from PIL import Image

    out = io.BytesIO()
    Image.new(mode, size, color).save(out, format="PNG")
    return out.getvalue()


def data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def svg(body: str = "", *, width: str | None = "100", height: str | None = "50", extra: str = "") -> str:
    size = ""
    if width is not None:
        size += f' width="{width}"'
    if height is not None:
        size += f' height="{height}"'
    return f'<svg xmlns="{SVG_NS}" xmlns:xlink="{XLINK_NS}"{size}{extra}>{body}</svg>'


class StubBackend:
    """Render backend that draws nothing but a page of the requested size.

    Records each call so tests can inspect the text and size it received.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, PageSize]] = []

    def render(self, text: str, size: PageSize) -> bytes:
        self.calls.append((text, size))
        if REJECT_MARKER in text:
            raise RenderError(reason="stub rejected the markup")
        return make_pdf(size.width, size.height)

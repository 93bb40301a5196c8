from __future__ import annotations

import logging
import re

from svgbinder.pipeline.error_handling import RenderError
from svgbinder.types import PageSize

logger = logging.getLogger(__name__)

_XML_DECL_ENCODING_RE = re.compile(r"""\A(\ufeff?<\?xml\s[^>]*?\bencoding\s*=\s*)(["'])[^"']*\2""")


def utf8_markup(text: str) -> bytes:
    """Encode ``text`` as UTF-8, rewriting any declared encoding to match."""
    return _XML_DECL_ENCODING_RE.sub(r"\g<1>\g<2>UTF-8\g<2>", text, count=1).encode("utf-8")


class MuPDFBackend:
    """Render SVG through PyMuPDF.

    MuPDF converts the SVG into a PDF page of its own choosing; that page is then
    placed as a form XObject on a fresh page of the requested size, scaled to fit
    with its aspect ratio kept and centred.
    """

    def __init__(self, *, garbage: int = 3, deflate: bool = True) -> None:
        self.garbage = garbage
        self.deflate = deflate

    def render(self, text: str, size: PageSize) -> bytes:
        import fitz

        try:
            with fitz.open(stream=utf8_markup(text), filetype="svg") as svg_doc:
                if svg_doc.page_count < 1:
                    raise RenderError(reason="backend produced no page")
                converted = svg_doc.convert_to_pdf()

            with fitz.open("pdf", converted) as picture, fitz.open() as out:
                page = out.new_page(width=size.width, height=size.height)
                source_page = picture[0]
                if source_page.get_contents() and not source_page.rect.is_empty:
                    page.show_pdf_page(page.rect, picture, 0, keep_proportion=True)
                else:
                    logger.debug("SVG produced an empty picture; emitting a blank page")
                return out.tobytes(garbage=self.garbage, deflate=self.deflate)
        except RenderError:
            raise
        except Exception as exc:  # MuPDF reports parse and drawing failures with several types
            raise RenderError(reason="MuPDF rejected the document", cause=exc) from exc


def default_backend() -> MuPDFBackend:
    return MuPDFBackend()


__all__ = ["MuPDFBackend", "default_backend", "utf8_markup"]

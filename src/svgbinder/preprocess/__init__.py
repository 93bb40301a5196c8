from __future__ import annotations

__all__ = [
    "MARKER_ATTR",
    "PreprocessResult",
    "find_embedded_assets",
    "preprocess",
    "preprocess_document",
]

from .markup import PreprocessResult as PreprocessResult
from .markup import preprocess as preprocess
from .markup import preprocess_document as preprocess_document
from .scanner import MARKER_ATTR as MARKER_ATTR
from .scanner import find_embedded_assets as find_embedded_assets

from __future__ import annotations

__all__ = [
    "MuPDFBackend",
    "declared_size",
    "render",
    "resolve_page_size",
]

from .backend import MuPDFBackend as MuPDFBackend
from .renderer import render as render
from .sizing import declared_size as declared_size
from .sizing import resolve_page_size as resolve_page_size

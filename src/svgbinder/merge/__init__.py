from __future__ import annotations

__all__ = [
    "IdAllocator",
    "MergedDocument",
    "merge",
    "write_pdf",
]

from .allocator import IdAllocator as IdAllocator
from .merger import MergedDocument as MergedDocument
from .merger import merge as merge
from .writer import write_pdf as write_pdf

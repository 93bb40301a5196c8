"""Conversion options for svgbinder runs.

Defaults reproduce the classic behaviour: sequential rendering, one PDF per
input written next to it, and ``merged.pdf`` in the same directory.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from svgbinder.types import A4, LETTER, PageSize


class PageSizePreset(Enum):
    """Fallback page size for documents that declare no size at all."""

    A4 = "a4"
    LETTER = "letter"

    @property
    def size(self) -> PageSize:
        return A4 if self is PageSizePreset.A4 else LETTER


DEFAULT_MERGED_NAME = "merged.pdf"


@dataclass
class ConversionOptions:
    """Pipeline configuration for one directory run."""

    # Worker processes for preprocessing + rendering (1 = sequential, in-process)
    workers: int = 1

    # Where outputs go; None writes next to the inputs
    out_dir: Path | None = None

    merged_name: str = DEFAULT_MERGED_NAME

    # Write one single-page PDF per input in addition to the merged document
    write_pages: bool = True

    recursive: bool = False

    # Store byte-identical leaf streams (fonts, images) once in the merged document
    dedupe: bool = True

    # One outline entry per page, titled after the source file
    bookmarks: bool = True

    default_size: PageSizePreset = PageSizePreset.A4

    @classmethod
    def from_cli(
        cls,
        *,
        workers: int = 1,
        out_dir: Path | None = None,
        merged_name: str = DEFAULT_MERGED_NAME,
        write_pages: bool = True,
        recursive: bool = False,
        dedupe: bool = True,
        bookmarks: bool = True,
        default_size: str = "a4",
    ) -> ConversionOptions:
        """Build ConversionOptions from CLI argument values.

        Raises:
            ValueError: If any argument has an invalid value
        """
        if workers < 1:
            raise ValueError(f"Invalid workers count {workers}. Must be at least 1")

        name = merged_name.strip()
        if not name or Path(name).name != name:
            raise ValueError(f"Invalid merged name '{merged_name}'. Must be a plain file name")
        if not name.lower().endswith(".pdf"):
            name += ".pdf"

        try:
            size_preset = PageSizePreset(default_size.lower())
        except ValueError as exc:
            valid_values = [preset.value for preset in PageSizePreset]
            raise ValueError(
                f"Invalid default size '{default_size}'. Valid values: {valid_values}"
            ) from exc

        return cls(
            workers=workers,
            out_dir=out_dir,
            merged_name=name,
            write_pages=write_pages,
            recursive=recursive,
            dedupe=dedupe,
            bookmarks=bookmarks,
            default_size=size_preset,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "workers": self.workers,
            "out_dir": str(self.out_dir) if self.out_dir is not None else None,
            "merged_name": self.merged_name,
            "write_pages": self.write_pages,
            "recursive": self.recursive,
            "dedupe": self.dedupe,
            "bookmarks": self.bookmarks,
            "default_size": self.default_size.value,
        }


__all__ = [
    "DEFAULT_MERGED_NAME",
    "ConversionOptions",
    "PageSizePreset",
]
